"""Process-wide defaults for the Anthropic client.

Override precedence everywhere: explicit config > mode-specific default >
global default.
"""

# ==============================================================================
# Addressing
# ==============================================================================

DEFAULT_BASE_URL = "https://api.anthropic.com/v1"

# Vertex AI hosts Anthropic models under a regional aiplatform domain.
VERTEX_HOST = "aiplatform.googleapis.com"

# ==============================================================================
# API versioning
# ==============================================================================

DEFAULT_ANTHROPIC_VERSION = "2023-06-01"
VERTEX_ANTHROPIC_VERSION = "vertex-2023-10-16"

# ==============================================================================
# Generation
# ==============================================================================

DEFAULT_MODEL = "claude-3-5-haiku-20241022"

# Both endpoints require an output bound.
DEFAULT_MAX_TOKENS = 2048

DEFAULT_TIMEOUT_S = 60.0

API_KEY_ENV_VAR = "ANTHROPIC_API_KEY"  # noqa: S105

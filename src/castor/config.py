"""Configuration: frozen ProviderConfig shared across calls."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from castor.constants import (
    API_KEY_ENV_VAR,
    DEFAULT_ANTHROPIC_VERSION,
    DEFAULT_BASE_URL,
    DEFAULT_MODEL,
    DEFAULT_TIMEOUT_S,
    VERTEX_ANTHROPIC_VERSION,
)
from castor.errors import ConfigurationError

if TYPE_CHECKING:
    import httpx

load_dotenv()


@dataclass(frozen=True)
class ProviderConfig:
    """Immutable configuration for Anthropic calls.

    Two addressing modes exist. Direct mode sends requests to ``base_url``
    with an ``x-api-key`` header. Delegated mode is active whenever
    ``vertex_project_id`` is set: requests go to the Vertex AI predict endpoint
    and ``api_key`` is sent as a bearer token.

    Example:
        config = ProviderConfig(model="claude-3-5-haiku-20241022")
        # API key is automatically resolved from ANTHROPIC_API_KEY
    """

    #: Auto-resolved from ``ANTHROPIC_API_KEY`` when *None*.
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    vertex_project_id: str | None = None
    vertex_location: str | None = None
    #: Falls back to the mode-specific default when *None*.
    anthropic_version: str | None = None
    #: Injected transport; never closed by Castor.
    http_client: httpx.AsyncClient | None = field(
        default=None, compare=False, repr=False
    )
    #: Only applies to an internally created ``httpx.AsyncClient``.
    timeout_s: float = DEFAULT_TIMEOUT_S
    use_legacy_completions: bool = False

    def __post_init__(self) -> None:
        """Resolve the API key and validate configuration."""
        if not self.model:
            raise ConfigurationError(
                "model must be a non-empty string",
                hint="Pass model='claude-3-5-haiku-20241022' or omit it for the default.",
            )

        if self.timeout_s <= 0:
            raise ConfigurationError(
                f"timeout_s must be > 0, got {self.timeout_s}",
                hint="This bounds each HTTP operation of the internal client.",
            )

        object.__setattr__(
            self, "base_url", (self.base_url or DEFAULT_BASE_URL).rstrip("/")
        )

        if self.vertex_project_id and not self.vertex_location:
            raise ConfigurationError(
                "vertex_location is required when vertex_project_id is set",
                hint="Pass vertex_location='us-east5' (a region serving Claude).",
            )

        if self.api_key is None:
            object.__setattr__(self, "api_key", os.environ.get(API_KEY_ENV_VAR))

        if not self.api_key:
            hint = f"Set {API_KEY_ENV_VAR} environment variable or pass api_key=..."
            if self.is_delegated:
                hint = "Pass a Google Cloud access token as api_key=..."
            raise ConfigurationError("API key required for anthropic", hint=hint)

    @property
    def is_delegated(self) -> bool:
        """Whether requests are routed through Vertex AI."""
        return bool(self.vertex_project_id)

    @property
    def resolved_version(self) -> str:
        """Return the ``anthropic-version`` header value for this config."""
        if self.anthropic_version:
            return self.anthropic_version
        if self.is_delegated:
            return VERTEX_ANTHROPIC_VERSION
        return DEFAULT_ANTHROPIC_VERSION

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"ProviderConfig(model={self.model!r}, base_url={self.base_url!r}, "
            f"vertex_project_id={self.vertex_project_id!r}, "
            f"vertex_location={self.vertex_location!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None})"
        )

    __repr__ = __str__

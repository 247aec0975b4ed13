"""Castor: an async client for Anthropic's completion and Messages APIs.

Public API:
    - AnthropicLLM: the ``generate(request) -> GenerationResult`` contract
    - AnthropicClient: low-level ``create_completion``/``create_message``
    - ProviderConfig: configuration dataclass
    - GenerationRequest / GenerationResult: request and result types
"""

from __future__ import annotations

import logging

from castor.client import AnthropicClient
from castor.config import ProviderConfig
from castor.errors import (
    CastorError,
    ConfigurationError,
    EmptyResponseError,
    InvalidToolChoiceError,
    InvalidToolError,
    ProviderError,
    RateLimitError,
    StreamCallbackError,
    TransportError,
    ValidationError,
)
from castor.llm import AnthropicLLM, LanguageModel, generate_from_single_prompt
from castor.models import (
    FunctionDefinition,
    GenerationRequest,
    GenerationResult,
    Tool,
    ToolCall,
    ToolChoice,
)
from castor.schema import (
    ChatMessage,
    Completion,
    MessageResponse,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("castor-llm")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("castor").addHandler(logging.NullHandler())

__all__ = [
    "AnthropicClient",
    "AnthropicLLM",
    "CastorError",
    "ChatMessage",
    "Completion",
    "ConfigurationError",
    "EmptyResponseError",
    "FunctionDefinition",
    "GenerationRequest",
    "GenerationResult",
    "InvalidToolChoiceError",
    "InvalidToolError",
    "LanguageModel",
    "MessageResponse",
    "ProviderConfig",
    "ProviderError",
    "RateLimitError",
    "StreamCallbackError",
    "TextBlock",
    "Tool",
    "ToolCall",
    "ToolChoice",
    "ToolResultBlock",
    "ToolUseBlock",
    "TransportError",
    "ValidationError",
    "generate_from_single_prompt",
]

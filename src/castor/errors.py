"""Exception hierarchy for Castor."""

from __future__ import annotations


class CastorError(Exception):
    """Base exception for all Castor errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(CastorError):
    """Provider configuration validation or resolution failed."""


class ValidationError(CastorError):
    """A request was malformed; raised before any network call."""


class InvalidToolError(ValidationError):
    """A tool definition has no usable function definition."""


class InvalidToolChoiceError(ValidationError):
    """A tool choice references no usable tool."""


class TransportError(CastorError):
    """Building or sending the HTTP request failed."""


class EmptyResponseError(CastorError):
    """The provider answered successfully but returned no usable content."""


class StreamCallbackError(CastorError):
    """The caller's per-chunk streaming callback failed.

    The original exception is chained as ``__cause__``.
    """


class ProviderError(CastorError):
    """The provider rejected the call or returned an undecodable body.

    ``raw_response`` holds the exact body bytes when the error envelope could
    be parsed, so callers can diagnose provider-side issues without logs.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        error_type: str | None = None,
        error_message: str | None = None,
        raw_response: bytes | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.error_type = error_type
        self.error_message = error_message
        self.raw_response = raw_response


class RateLimitError(ProviderError):
    """Rate limit exceeded (HTTP 429)."""

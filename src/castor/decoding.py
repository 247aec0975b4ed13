"""Response/error decoding for complete (non-streamed) bodies."""

from __future__ import annotations

from typing import TypeVar

import pydantic

from castor.constants import API_KEY_ENV_VAR
from castor.errors import EmptyResponseError, ProviderError, RateLimitError
from castor.schema import Completion, ErrorEnvelope, MessageResponse

ResponseT = TypeVar("ResponseT", Completion, MessageResponse)


def _status_hint(status_code: int, *, is_delegated: bool = False) -> str | None:
    if status_code in {401, 403}:
        if is_delegated:
            return (
                "Check credentials/permissions (pass a fresh Google Cloud access "
                "token as api_key)."
            )
        return f"Check credentials/permissions (try setting {API_KEY_ENV_VAR})."
    if status_code == 429:
        return "Back off and retry later; Castor does not retry on its own."
    return None


def decode_error(
    status_code: int, body: bytes, *, is_delegated: bool = False
) -> ProviderError:
    """Build the ProviderError for a non-2xx response.

    When *body* is not a parseable error envelope, the error carries only the
    status code and the generic message.
    """
    msg = f"API returned unexpected status code: {status_code}"
    err_cls: type[ProviderError] = RateLimitError if status_code == 429 else ProviderError
    hint = _status_hint(status_code, is_delegated=is_delegated)

    try:
        detail = ErrorEnvelope.model_validate_json(body).detail
    except pydantic.ValidationError:
        return err_cls(msg, hint=hint, status_code=status_code)

    return err_cls(
        f"{msg}: {detail.message}",
        hint=hint,
        status_code=status_code,
        error_type=detail.type,
        error_message=detail.message,
        raw_response=body,
    )


def decode_body(body: bytes, model: type[ResponseT], *, status_code: int) -> ResponseT:
    """Parse a successful body into *model*.

    Raises:
        EmptyResponseError: The body is empty or carries no content.
        ProviderError: The body is not valid JSON for the response shape.
    """
    if not body.strip():
        raise EmptyResponseError("empty response")
    try:
        parsed = model.model_validate_json(body)
    except pydantic.ValidationError as e:
        raise ProviderError(
            f"decode response: {e.error_count()} validation error(s) in {model.__name__}",
            status_code=status_code,
            raw_response=body,
        ) from e
    if isinstance(parsed, MessageResponse) and not parsed.content:
        raise EmptyResponseError("empty response")
    return parsed

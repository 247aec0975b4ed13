"""Anthropic HTTP client: completion and Messages endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

import httpx

from castor._http import COMPLETE_PATH, MESSAGES_PATH
from castor.decoding import decode_body, decode_error
from castor.errors import TransportError, ValidationError
from castor.payloads import build_completion_payload, build_message_payload
from castor.schema import Completion, MessageResponse
from castor.streaming import (
    CompletionStreamAccumulator,
    MessageStreamAccumulator,
    StreamAccumulator,
    aiter_frames,
    dispatch_stream,
)
from castor.transport import Transport

if TYPE_CHECKING:
    from types import TracebackType

    from castor.config import ProviderConfig
    from castor.models import GenerationRequest, StreamingFunc
    from castor.schema import Payload

ResponseT = TypeVar("ResponseT", Completion, MessageResponse)


class AnthropicClient:
    """Low-level client for Anthropic's HTTP API.

    One instance may serve many concurrent calls; it holds no per-call state.

    Example:
        async with AnthropicClient(ProviderConfig()) as client:
            reply = await client.create_message(
                GenerationRequest(messages=[{"role": "user", "content": "Hi"}])
            )
            print(reply.text)
    """

    def __init__(self, config: ProviderConfig) -> None:
        """Initialize with a provider configuration."""
        self.config = config
        self._transport = Transport(config)

    @property
    def transport(self) -> Transport:
        return self._transport

    async def create_completion(self, request: GenerationRequest) -> Completion:
        """Call the legacy text completion endpoint."""
        if request.kind != "completion":
            raise ValidationError(
                "create_completion requires a prompt request",
                hint="Use create_message() for messages requests.",
            )
        payload = build_completion_payload(request, model=self.config.model)
        return await self._call(
            payload,
            COMPLETE_PATH,
            Completion,
            CompletionStreamAccumulator() if request.stream else None,
            request.streaming_func,
        )

    async def create_message(self, request: GenerationRequest) -> MessageResponse:
        """Call the Messages endpoint."""
        if request.kind != "messages":
            raise ValidationError(
                "create_message requires a messages request",
                hint="Use create_completion() for prompt requests.",
            )
        payload = build_message_payload(request, model=self.config.model)
        return await self._call(
            payload,
            MESSAGES_PATH,
            MessageResponse,
            MessageStreamAccumulator() if request.stream else None,
            request.streaming_func,
        )

    async def _call(
        self,
        payload: Payload,
        path: str,
        model: type[ResponseT],
        accumulator: StreamAccumulator[ResponseT] | None,
        streaming_func: StreamingFunc | None,
    ) -> ResponseT:
        response = await self._transport.send(payload, path)
        try:
            if not response.is_success:
                body = await response.aread()
                raise decode_error(
                    response.status_code, body, is_delegated=self.config.is_delegated
                )
            if accumulator is not None:
                return await dispatch_stream(
                    aiter_frames(response.aiter_lines()), accumulator, streaming_func
                )
            body = await response.aread()
            return decode_body(body, model, status_code=response.status_code)
        except httpx.HTTPError as e:
            raise TransportError(f"read response: {e}") from e
        finally:
            await response.aclose()

    async def aclose(self) -> None:
        """Close underlying HTTP resources owned by this client."""
        await self._transport.aclose()

    async def __aenter__(self) -> AnthropicClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

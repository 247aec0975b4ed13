"""Server-sent event streaming: frame parsing, accumulation and dispatch.

Frame parsing (``SSEDecoder``, ``iter_frames``) is pure and synchronous.
``dispatch_stream`` is the effectful part: it feeds frames into an
accumulator, calls the caller's streaming function once per text delta and
yields to the event loop between frames so cancellation stops delivery
promptly.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import inspect
import json
import logging
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

import pydantic

from castor.errors import EmptyResponseError, ProviderError, StreamCallbackError
from castor.schema import (
    Completion,
    MessageResponse,
    TextBlock,
    ToolUseBlock,
    content_block_adapter,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator

    from castor.models import StreamingFunc

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", covariant=True)


@dataclass(frozen=True)
class StreamFrame:
    """One server-sent event: its type tag and decoded JSON data."""

    event: str
    data: Any = None


class SSEDecoder:
    """Incremental decoder turning SSE lines into frames.

    Feed lines without their trailing newline. A blank line ends a frame.
    When a frame has no ``event:`` line, the ``type`` field of its data is
    used as the event type.
    """

    def __init__(self) -> None:
        self._event: str | None = None
        self._data: list[str] = []

    def decode(self, line: str) -> StreamFrame | None:
        """Consume one line; return a frame when *line* completes one."""
        line = line.rstrip("\r\n")
        if not line:
            return self.flush()
        if line.startswith(":"):
            return None

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        # id and retry fields carry nothing this client uses.
        return None

    def flush(self) -> StreamFrame | None:
        """Emit any pending frame, e.g. at end of stream."""
        if self._event is None and not self._data:
            return None
        event, raw = self._event, "\n".join(self._data)
        self._event, self._data = None, []

        data: Any = None
        if raw:
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ProviderError(
                    f"decode stream frame: {e}", raw_response=raw.encode("utf-8")
                ) from e
        if event is None:
            event = data.get("type") if isinstance(data, dict) else None
        return StreamFrame(event=event or "message", data=data)


def iter_frames(lines: Iterable[str]) -> Iterator[StreamFrame]:
    """Yield frames parsed from *lines*."""
    decoder = SSEDecoder()
    for line in lines:
        frame = decoder.decode(line)
        if frame is not None:
            yield frame
    frame = decoder.flush()
    if frame is not None:
        yield frame


async def aiter_frames(lines: AsyncIterable[str]) -> AsyncIterator[StreamFrame]:
    """Yield frames parsed from an async line source, reading incrementally."""
    decoder = SSEDecoder()
    async for line in lines:
        frame = decoder.decode(line)
        if frame is not None:
            yield frame
    frame = decoder.flush()
    if frame is not None:
        yield frame


def _stream_error(data: Any) -> ProviderError:
    detail = data.get("error") if isinstance(data, dict) else None
    if not isinstance(detail, dict):
        detail = {}
    error_type = str(detail.get("type", ""))
    error_message = str(detail.get("message", ""))
    return ProviderError(
        f"stream error: {error_type}: {error_message}",
        error_type=error_type,
        error_message=error_message,
        raw_response=json.dumps(data).encode("utf-8"),
    )


class StreamAccumulator(Protocol[ResultT]):
    """Builds a result from frames, reporting text deltas as they arrive."""

    done: bool

    def feed(self, frame: StreamFrame) -> str | None: ...

    def result(self) -> ResultT: ...


class MessageStreamAccumulator:
    """Assemble a MessageResponse from Messages API stream events."""

    def __init__(self) -> None:
        self.done = False
        self._message: MessageResponse | None = None
        self._partial_json: dict[int, list[str]] = {}

    @property
    def message(self) -> MessageResponse:
        if self._message is None:
            self._message = MessageResponse()
        return self._message

    def feed(self, frame: StreamFrame) -> str | None:
        """Apply *frame*; return the text delta it carries, if any."""
        try:
            return self._apply(frame.event, frame.data)
        except (KeyError, TypeError, IndexError, pydantic.ValidationError) as e:
            raise ProviderError(
                f"decode stream event {frame.event!r}: {e}",
                raw_response=json.dumps(frame.data).encode("utf-8"),
            ) from e

    def _apply(self, event: str, data: Any) -> str | None:
        if event == "message_start":
            self._message = MessageResponse.model_validate(data["message"])
        elif event == "content_block_start":
            index = data["index"]
            content = self.message.content
            while len(content) <= index:
                content.append(TextBlock())
            content[index] = content_block_adapter.validate_python(
                data["content_block"]
            )
        elif event == "content_block_delta":
            return self._apply_delta(data["index"], data["delta"])
        elif event == "content_block_stop":
            self._finish_block(data["index"])
        elif event == "message_delta":
            delta = data.get("delta") or {}
            if "stop_reason" in delta:
                self.message.stop_reason = delta["stop_reason"]
            if "stop_sequence" in delta:
                self.message.stop_sequence = delta["stop_sequence"]
            usage = data.get("usage") or {}
            if "output_tokens" in usage:
                self.message.usage.output_tokens = usage["output_tokens"]
        elif event == "message_stop":
            self.done = True
        elif event == "error":
            raise _stream_error(data)
        elif event != "ping":
            logger.debug("Ignoring unknown stream event %r", event)
        return None

    def _apply_delta(self, index: int, delta: dict[str, Any]) -> str | None:
        delta_type = delta.get("type")
        block = self.message.content[index]
        if delta_type == "text_delta":
            text = delta["text"]
            if isinstance(block, TextBlock):
                block.text += text
            return text
        if delta_type == "input_json_delta":
            self._partial_json.setdefault(index, []).append(delta["partial_json"])
        else:
            logger.debug("Ignoring unknown delta type %r", delta_type)
        return None

    def _finish_block(self, index: int) -> None:
        parts = self._partial_json.pop(index, None)
        if parts is None:
            return
        block = self.message.content[index]
        raw = "".join(parts)
        if isinstance(block, ToolUseBlock) and raw:
            try:
                block.input = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ProviderError(
                    f"decode tool input for block {index}: {e}",
                    raw_response=raw.encode("utf-8"),
                ) from e

    def result(self) -> MessageResponse:
        if self._message is None or not self._message.content:
            raise EmptyResponseError("empty response")
        return self._message


class CompletionStreamAccumulator:
    """Assemble a Completion from legacy ``completion`` stream events."""

    def __init__(self) -> None:
        self.done = False
        self._parts: list[str] = []
        self._seen = False
        self._stop_reason: str | None = None
        self._model: str | None = None
        self._id: str | None = None

    def feed(self, frame: StreamFrame) -> str | None:
        """Apply *frame*; return the text delta it carries, if any."""
        data = frame.data if isinstance(frame.data, dict) else {}
        if frame.event == "completion":
            self._seen = True
            self._model = data.get("model", self._model)
            self._id = data.get("log_id", data.get("id", self._id))
            if data.get("stop_reason") is not None:
                self._stop_reason = data["stop_reason"]
            text = data.get("completion") or ""
            if text:
                self._parts.append(text)
                return text
        elif frame.event == "error":
            raise _stream_error(frame.data)
        elif frame.event != "ping":
            logger.debug("Ignoring unknown stream event %r", frame.event)
        return None

    def result(self) -> Completion:
        if not self._seen:
            raise EmptyResponseError("empty response")
        return Completion(
            text="".join(self._parts),
            stop_reason=self._stop_reason,
            model=self._model,
            id=self._id,
        )


async def _invoke(callback: StreamingFunc, chunk: str) -> None:
    try:
        outcome = callback(chunk)
        if inspect.isawaitable(outcome):
            await outcome
    except asyncio.CancelledError:
        raise
    except Exception as e:
        raise StreamCallbackError(f"streaming callback failed: {e}") from e


async def dispatch_stream(
    frames: AsyncIterable[StreamFrame],
    accumulator: StreamAccumulator[ResultT],
    callback: StreamingFunc | None,
) -> ResultT:
    """Feed *frames* into *accumulator*, delivering text deltas to *callback*.

    Stops at the accumulator's terminal event or at end of stream. A failing
    callback raises StreamCallbackError and no further frames are read.
    """
    async for frame in frames:
        delta = accumulator.feed(frame)
        if delta and callback is not None:
            await _invoke(callback, delta)
        # Yield so a pending cancellation lands between frames.
        await asyncio.sleep(0)
        if accumulator.done:
            break
    return accumulator.result()

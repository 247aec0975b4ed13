"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: every client test talks to an
``httpx.MockTransport`` through these helpers instead of the network.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterable
from dataclasses import dataclass, field
import json
from typing import Any

import httpx

from castor.config import ProviderConfig

Reply = httpx.Response | Callable[[httpx.Request], httpx.Response]


@dataclass
class RecordingHandler:
    """MockTransport handler that records requests and replays scripted replies."""

    replies: list[Reply] = field(default_factory=list)
    requests: list[httpx.Request] = field(default_factory=list)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.replies:
            raise AssertionError(f"unexpected request to {request.url}")
        reply = self.replies.pop(0)
        return reply(request) if callable(reply) else reply

    @property
    def last_json(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


def make_config(handler: Callable[[httpx.Request], Any], **overrides: Any) -> ProviderConfig:
    """Build a ProviderConfig whose HTTP client is backed by *handler*."""
    overrides.setdefault("api_key", "test-key")
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ProviderConfig(http_client=client, **overrides)


def sse(events: Iterable[tuple[str, Any]]) -> bytes:
    """Encode (event, data) pairs as a server-sent event body."""
    chunks = [f"event: {name}\ndata: {json.dumps(data)}\n\n" for name, data in events]
    return "".join(chunks).encode("utf-8")


def message_stream_events(
    texts: Iterable[str], *, stop_reason: str = "end_turn"
) -> list[tuple[str, Any]]:
    """Canonical Messages API stream for a single text block."""
    events: list[tuple[str, Any]] = [
        (
            "message_start",
            {
                "type": "message_start",
                "message": {
                    "id": "msg_stream",
                    "type": "message",
                    "role": "assistant",
                    "model": "claude-test",
                    "content": [],
                    "stop_reason": None,
                    "usage": {"input_tokens": 7, "output_tokens": 1},
                },
            },
        ),
        (
            "content_block_start",
            {
                "type": "content_block_start",
                "index": 0,
                "content_block": {"type": "text", "text": ""},
            },
        ),
        ("ping", {"type": "ping"}),
    ]
    for text in texts:
        events.append(
            (
                "content_block_delta",
                {
                    "type": "content_block_delta",
                    "index": 0,
                    "delta": {"type": "text_delta", "text": text},
                },
            )
        )
    events += [
        ("content_block_stop", {"type": "content_block_stop", "index": 0}),
        (
            "message_delta",
            {
                "type": "message_delta",
                "delta": {"stop_reason": stop_reason, "stop_sequence": None},
                "usage": {"output_tokens": 12},
            },
        ),
        ("message_stop", {"type": "message_stop"}),
    ]
    return events


async def trickle(body: bytes, *, chunk_size: int = 16) -> AsyncIterator[bytes]:
    """Yield *body* in small pieces, like a slow network stream."""
    for start in range(0, len(body), chunk_size):
        yield body[start : start + chunk_size]


def message_body(text: str = "Hello!", **extra: Any) -> dict[str, Any]:
    """A minimal non-streamed Messages API response."""
    body: dict[str, Any] = {
        "id": "msg_01",
        "type": "message",
        "role": "assistant",
        "model": "claude-test",
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
        "stop_sequence": None,
        "usage": {"input_tokens": 10, "output_tokens": 5},
    }
    body.update(extra)
    return body

"""Domain models for requests and results."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
import json
from typing import Any, Literal, Union

import pydantic

from castor.errors import ValidationError
from castor.schema import ChatMessage, Completion, MessageResponse, TextBlock

#: Receives each text delta of a streamed response. Raise to stop streaming.
StreamingFunc = Callable[[str], Union[Awaitable[None], None]]

RequestKind = Literal["completion", "messages"]
ToolChoiceKind = Literal["auto", "any", "none", "tool"]


@dataclass(frozen=True)
class FunctionDefinition:
    """A callable function the model may request to invoke."""

    name: str
    description: str = ""
    #: JSON Schema for the arguments; passed through unvalidated.
    parameters: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class Tool:
    """A tool offered to the model.

    ``function`` is optional to mirror multi-provider tool shapes; the request
    builder rejects tools without one.
    """

    function: FunctionDefinition | None = None
    type: str = "function"


@dataclass(frozen=True)
class ToolChoice:
    """Policy constraining whether and which tool the model must select."""

    kind: ToolChoiceKind
    name: str | None = None

    @classmethod
    def auto(cls) -> ToolChoice:
        return cls("auto")

    @classmethod
    def any(cls) -> ToolChoice:
        return cls("any")

    @classmethod
    def none(cls) -> ToolChoice:
        return cls("none")

    @classmethod
    def tool(cls, name: str) -> ToolChoice:
        return cls("tool", name)


ToolChoiceInput = Union[ToolChoice, Tool, str]


@dataclass(frozen=True)
class GenerationRequest:
    """A provider-neutral generation request.

    Exactly one of ``prompt`` (legacy text completion) or ``messages`` (chat)
    must be set. System instructions and tools only apply to chat requests.
    """

    prompt: str | None = None
    messages: Sequence[ChatMessage | Mapping[str, Any]] | None = None
    system: str | None = None
    model: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    max_tokens: int | None = None
    stop_sequences: Sequence[str] | None = None
    tools: Sequence[Tool] | None = None
    tool_choice: ToolChoiceInput | None = None
    stream: bool = False
    streaming_func: StreamingFunc | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        """Validate request shape early for clear errors."""
        if (self.prompt is None) == (self.messages is None):
            raise ValidationError(
                "exactly one of prompt or messages must be set",
                hint="Use prompt=... for text completion or messages=[...] for chat.",
            )

        if self.messages is not None:
            object.__setattr__(self, "messages", _coerce_messages(self.messages))
        elif (
            self.system is not None
            or self.tools
            or self.tool_choice is not None
            or self.top_k is not None
        ):
            raise ValidationError(
                "system, tools, tool_choice and top_k require a messages request",
                hint="Pass messages=[ChatMessage(role='user', content=...)] instead of prompt.",
            )

        if self.stream and self.streaming_func is None:
            raise ValidationError(
                "stream=True requires a streaming_func",
                hint="Pass streaming_func=lambda chunk: print(chunk, end='').",
            )

        if self.max_tokens is not None and self.max_tokens <= 0:
            raise ValidationError(
                f"max_tokens must be a positive integer, got {self.max_tokens}"
            )

        if self.stop_sequences is not None:
            object.__setattr__(self, "stop_sequences", tuple(self.stop_sequences))
        if self.tools is not None:
            object.__setattr__(self, "tools", tuple(self.tools))

    @property
    def kind(self) -> RequestKind:
        """Which endpoint shape this request targets."""
        return "completion" if self.prompt is not None else "messages"


def _coerce_messages(
    messages: Sequence[ChatMessage | Mapping[str, Any]],
) -> tuple[ChatMessage, ...]:
    if isinstance(messages, (str, bytes)):
        raise ValidationError("messages must be a sequence of chat messages")
    coerced: list[ChatMessage] = []
    for i, m in enumerate(messages):
        if isinstance(m, ChatMessage):
            coerced.append(m)
            continue
        try:
            coerced.append(ChatMessage.model_validate(m))
        except pydantic.ValidationError as e:
            raise ValidationError(
                f"messages[{i}] is not a valid chat message",
                hint="Each message needs a 'role' (user/assistant/system) and 'content'.",
            ) from e
    if not coerced:
        raise ValidationError("messages must not be empty")
    return tuple(coerced)


@dataclass(frozen=True)
class ToolCall:
    """A tool call requested by the model."""

    id: str
    name: str
    arguments: str


@dataclass(frozen=True)
class GenerationResult:
    """Finished output of one generation call."""

    text: str
    content: tuple[Any, ...] = ()
    tool_calls: tuple[ToolCall, ...] = ()
    stop_reason: str | None = None
    usage: dict[str, int] = field(default_factory=dict)
    model: str | None = None
    response_id: str | None = None

    @classmethod
    def from_completion(cls, completion: Completion) -> GenerationResult:
        return cls(
            text=completion.text,
            content=(TextBlock(text=completion.text),),
            stop_reason=completion.stop_reason,
            model=completion.model,
            response_id=completion.id,
        )

    @classmethod
    def from_message(cls, message: MessageResponse) -> GenerationResult:
        input_tokens = message.usage.input_tokens
        output_tokens = message.usage.output_tokens
        return cls(
            text=message.text,
            content=tuple(message.content),
            tool_calls=tuple(
                ToolCall(id=b.id, name=b.name, arguments=json.dumps(b.input))
                for b in message.tool_uses
            ),
            stop_reason=message.stop_reason,
            usage={
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "total_tokens": input_tokens + output_tokens,
            },
            model=message.model or None,
            response_id=message.id or None,
        )

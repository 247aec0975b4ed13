"""Wire models for the Anthropic HTTP API.

Outbound models drop ``None`` fields on serialization. Opaque mappings such as
tool input schemas are plain dicts and pass through untouched.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    field_validator,
    model_serializer,
)

Role = Literal["user", "assistant", "system"]


class WireModel(BaseModel):
    """Base for models sent over the wire."""

    model_config = ConfigDict(extra="allow")

    @model_serializer(mode="wrap")
    def omit_none_fields(self, handler: Any) -> Any:
        data = handler(self)
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


# =============================================================================
# Content blocks
# =============================================================================


class TextBlock(WireModel):
    type: Literal["text"] = "text"
    text: str = ""


class ToolUseBlock(WireModel):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(WireModel):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str | list[TextBlock] = ""
    is_error: bool | None = None


class OtherBlock(WireModel):
    """A block type this client does not model; kept verbatim."""

    type: str


_KNOWN_BLOCK_TYPES = frozenset({"text", "tool_use", "tool_result"})


def _block_tag(value: Any) -> str:
    tag = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return tag if tag in _KNOWN_BLOCK_TYPES else "other"


ContentBlock = Annotated[
    Union[
        Annotated[TextBlock, Tag("text")],
        Annotated[ToolUseBlock, Tag("tool_use")],
        Annotated[ToolResultBlock, Tag("tool_result")],
        Annotated[OtherBlock, Tag("other")],
    ],
    Discriminator(_block_tag),
]

content_block_adapter: TypeAdapter[Any] = TypeAdapter(ContentBlock)


class ChatMessage(WireModel):
    """A role-tagged turn in a chat-style request."""

    role: Role
    content: str | list[ContentBlock]

    @property
    def text(self) -> str:
        """Concatenated text of this turn."""
        if isinstance(self.content, str):
            return self.content
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))


# =============================================================================
# Request payloads
# =============================================================================


class ToolSpec(WireModel):
    name: str
    description: str | None = None
    input_schema: dict[str, Any]


class ToolChoicePayload(WireModel):
    type: Literal["auto", "any", "none", "tool"]
    name: str | None = None


class CompletionPayload(WireModel):
    """Legacy ``/complete`` request body."""

    model_config = ConfigDict(extra="forbid")

    model: str
    prompt: str
    max_tokens_to_sample: int
    temperature: float | None = None
    top_p: float | None = None
    stop_sequences: list[str] | None = None
    stream: bool | None = None


class MessagePayload(WireModel):
    """``/messages`` request body."""

    model_config = ConfigDict(extra="forbid")

    model: str
    messages: list[ChatMessage]
    max_tokens: int
    system: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    stop_sequences: list[str] | None = None
    tools: list[ToolSpec] | None = None
    tool_choice: ToolChoicePayload | None = None
    stream: bool | None = None


Payload = Union[CompletionPayload, MessagePayload]


# =============================================================================
# Responses
# =============================================================================


class Usage(BaseModel):
    model_config = ConfigDict(extra="allow")

    input_tokens: int = 0
    output_tokens: int = 0


class Completion(BaseModel):
    """Result of a legacy completion call."""

    model_config = ConfigDict(extra="allow")

    text: str = Field(default="", validation_alias=AliasChoices("completion", "text"))
    stop_reason: str | None = None
    model: str | None = None
    id: str | None = None


class MessageResponse(BaseModel):
    """Result of a Messages API call."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    type: str = "message"
    role: str = "assistant"
    model: str = ""
    content: list[ContentBlock] = Field(default_factory=list)
    stop_reason: str | None = None
    stop_sequence: str | None = None
    usage: Usage = Field(default_factory=Usage)

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        """Tool calls requested by the model, in order."""
        return [b for b in self.content if isinstance(b, ToolUseBlock)]


class ErrorDetail(BaseModel):
    type: str = ""
    message: str = ""

    @field_validator("type", "message", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class ErrorEnvelope(BaseModel):
    """Non-2xx body: ``{"error": {"message": ..., "type": ...}}``.

    Missing or null fields decode as empty strings.
    """

    error: ErrorDetail | None = None

    @property
    def detail(self) -> ErrorDetail:
        return self.error if self.error is not None else ErrorDetail()

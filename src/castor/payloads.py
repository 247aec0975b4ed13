"""Request builder: GenerationRequest -> provider wire payload.

Pure transformations. Validation failures raise before any network call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from castor.constants import DEFAULT_MAX_TOKENS
from castor.errors import InvalidToolChoiceError, InvalidToolError
from castor.models import Tool, ToolChoice
from castor.schema import (
    ChatMessage,
    CompletionPayload,
    MessagePayload,
    ToolChoicePayload,
    ToolSpec,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from castor.models import GenerationRequest, ToolChoiceInput

HUMAN_PROMPT = "\n\nHuman:"
AI_PROMPT = "\n\nAssistant:"

_SIMPLE_CHOICES = {"auto": "auto", "any": "any", "required": "any", "none": "none"}
_CHOICE_KINDS = frozenset({"auto", "any", "none", "tool"})


def resolve_tool_choice(value: ToolChoiceInput) -> ToolChoice:
    """Resolve a loosely typed tool choice into a ToolChoice.

    Accepts a ToolChoice, one of ``"auto"``, ``"any"``, ``"required"``,
    ``"none"``, or a Tool (meaning: call exactly this tool).
    """
    if isinstance(value, ToolChoice):
        choice = value
    elif isinstance(value, str):
        kind = _SIMPLE_CHOICES.get(value)
        if kind is None:
            raise InvalidToolChoiceError(
                f"Unsupported tool_choice: {value!r}",
                hint="Use 'auto', 'any', 'none', or ToolChoice.tool('my_tool').",
            )
        choice = ToolChoice(kind)  # type: ignore[arg-type]
    elif isinstance(value, Tool):
        if value.function is None or not value.function.name:
            raise InvalidToolChoiceError(
                "tool choice function is missing",
                hint="A named tool choice needs Tool(function=FunctionDefinition(name=...)).",
            )
        choice = ToolChoice.tool(value.function.name)
    else:
        raise InvalidToolChoiceError(
            f"tool_choice must be a ToolChoice, Tool or string, got {type(value).__name__}"
        )

    if choice.kind not in _CHOICE_KINDS:
        raise InvalidToolChoiceError(
            f"Unsupported tool choice kind: {choice.kind!r}",
            hint="Use ToolChoice.auto(), .any(), .none() or .tool(name).",
        )
    if choice.kind == "tool" and not choice.name:
        raise InvalidToolChoiceError("named tool choice requires a tool name")
    if choice.kind != "tool" and choice.name is not None:
        raise InvalidToolChoiceError(
            f"tool choice {choice.kind!r} does not take a tool name",
            hint="Use ToolChoice.tool(name) to force a specific tool.",
        )
    return choice


def convert_tools(tools: Sequence[Tool]) -> list[ToolSpec]:
    """Convert tools into ``{name, description, input_schema}`` specs."""
    specs: list[ToolSpec] = []
    for i, tool in enumerate(tools):
        fn = tool.function
        if fn is None or not fn.name:
            raise InvalidToolError(
                f"tools[{i}] has no function definition",
                hint="Each tool needs Tool(function=FunctionDefinition(name=...)).",
            )
        specs.append(
            ToolSpec(
                name=fn.name,
                description=fn.description or None,
                input_schema=dict(fn.parameters)
                if fn.parameters is not None
                else {"type": "object"},
            )
        )
    return specs


def format_completion_prompt(text: str) -> str:
    """Wrap *text* in the Human/Assistant turn markers ``/complete`` requires."""
    if HUMAN_PROMPT in text and text.endswith(AI_PROMPT):
        return text
    return f"{HUMAN_PROMPT} {text}{AI_PROMPT}"


def build_completion_payload(
    request: GenerationRequest, *, model: str
) -> CompletionPayload:
    """Build the legacy completion body. Never carries tools or system."""
    return CompletionPayload(
        model=request.model or model,
        prompt=request.prompt or "",
        max_tokens_to_sample=request.max_tokens or DEFAULT_MAX_TOKENS,
        temperature=request.temperature,
        top_p=request.top_p,
        stop_sequences=list(request.stop_sequences)
        if request.stop_sequences
        else None,
        stream=True if request.stream else None,
    )


def build_message_payload(request: GenerationRequest, *, model: str) -> MessagePayload:
    """Build the Messages API body.

    System-role turns are hoisted into ``system`` since the API only accepts
    user/assistant turns in ``messages``.
    """
    system_parts: list[str] = [request.system] if request.system else []
    turns: list[ChatMessage] = []
    for message in request.messages or ():
        if message.role == "system":
            if message.text:
                system_parts.append(message.text)
        else:
            turns.append(message)

    tools = convert_tools(request.tools) if request.tools else None

    tool_choice: ToolChoicePayload | None = None
    if request.tool_choice is not None:
        choice = resolve_tool_choice(request.tool_choice)
        tool_choice = ToolChoicePayload(type=choice.kind, name=choice.name)

    return MessagePayload(
        model=request.model or model,
        messages=turns,
        max_tokens=request.max_tokens or DEFAULT_MAX_TOKENS,
        system="\n\n".join(system_parts) if system_parts else None,
        temperature=request.temperature,
        top_p=request.top_p,
        top_k=request.top_k,
        stop_sequences=list(request.stop_sequences)
        if request.stop_sequences
        else None,
        tools=tools,
        tool_choice=tool_choice,
        stream=True if request.stream else None,
    )


def build_payload(
    request: GenerationRequest, *, model: str
) -> CompletionPayload | MessagePayload:
    """Build the payload variant matching ``request.kind``."""
    if request.kind == "completion":
        return build_completion_payload(request, model=model)
    return build_message_payload(request, model=model)

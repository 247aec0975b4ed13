"""Request builder characterization tests.

Provider wire formats are consumed externally and drift is hard to detect,
so these tests pin the exact payload shapes.
"""

from __future__ import annotations

import json

from hypothesis import given, settings
from hypothesis import strategies as st
import pydantic
import pytest

from castor.errors import InvalidToolChoiceError, InvalidToolError, ValidationError
from castor.models import FunctionDefinition, GenerationRequest, Tool, ToolChoice
from castor.payloads import (
    build_completion_payload,
    build_message_payload,
    build_payload,
    convert_tools,
    format_completion_prompt,
    resolve_tool_choice,
)
from castor.schema import ChatMessage, CompletionPayload, MessagePayload, ToolResultBlock

pytestmark = pytest.mark.contract

MODEL = "claude-test"

_names = st.from_regex(r"[a-z][a-z0-9_]{0,20}", fullmatch=True)
_valid_tools = st.builds(
    lambda name, desc: Tool(function=FunctionDefinition(name=name, description=desc)),
    _names,
    st.text(),
)


def _dump(payload: CompletionPayload | MessagePayload) -> dict:
    return json.loads(payload.model_dump_json())


def _chat(**kwargs) -> GenerationRequest:
    return GenerationRequest(messages=[ChatMessage(role="user", content="hi")], **kwargs)


# =============================================================================
# Tools
# =============================================================================


@settings(max_examples=50)
@given(
    before=st.lists(_valid_tools, max_size=3),
    after=st.lists(_valid_tools, max_size=3),
)
def test_any_tool_without_function_fails_validation(before, after) -> None:
    tools = [*before, Tool(function=None), *after]
    with pytest.raises(ValidationError):
        build_message_payload(_chat(tools=tools), model=MODEL)


def test_tool_with_empty_function_name_is_invalid() -> None:
    with pytest.raises(InvalidToolError, match=r"tools\[0\]"):
        convert_tools([Tool(function=FunctionDefinition(name=""))])


def test_convert_tools_passes_schema_through_opaquely() -> None:
    schema = {
        "type": "object",
        "properties": {"city": {"type": "string", "default": None}},
        "x-vendor": [1, {"nested": None}],
    }
    tools = [
        Tool(
            function=FunctionDefinition(
                name="get_weather", description="Look up weather", parameters=schema
            )
        )
    ]
    payload = build_message_payload(_chat(tools=tools), model=MODEL)

    assert _dump(payload)["tools"] == [
        {"name": "get_weather", "description": "Look up weather", "input_schema": schema}
    ]


def test_tool_without_parameters_gets_empty_object_schema() -> None:
    specs = convert_tools([Tool(function=FunctionDefinition(name="ping"))])
    assert json.loads(specs[0].model_dump_json()) == {
        "name": "ping",
        "input_schema": {"type": "object"},
    }


# =============================================================================
# Tool choice
# =============================================================================


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("auto", {"type": "auto"}),
        ("none", {"type": "none"}),
        ("any", {"type": "any"}),
        ("required", {"type": "any"}),
        (ToolChoice.auto(), {"type": "auto"}),
        (ToolChoice.none(), {"type": "none"}),
        (ToolChoice.any(), {"type": "any"}),
        (ToolChoice.tool("get_weather"), {"type": "tool", "name": "get_weather"}),
        (
            Tool(function=FunctionDefinition(name="get_weather")),
            {"type": "tool", "name": "get_weather"},
        ),
    ],
)
def test_tool_choice_wire_shape(value, expected) -> None:
    payload = build_message_payload(_chat(tool_choice=value), model=MODEL)
    assert _dump(payload)["tool_choice"] == expected


def test_named_tool_choice_without_function_fails() -> None:
    with pytest.raises(InvalidToolChoiceError):
        resolve_tool_choice(Tool(function=None))


def test_named_tool_choice_without_name_fails() -> None:
    with pytest.raises(ValidationError):
        build_message_payload(_chat(tool_choice=ToolChoice.tool("")), model=MODEL)


def test_unknown_tool_choice_string_fails() -> None:
    with pytest.raises(InvalidToolChoiceError, match="sometimes"):
        resolve_tool_choice("sometimes")


def test_tool_choice_of_wrong_type_fails() -> None:
    with pytest.raises(InvalidToolChoiceError, match="int"):
        resolve_tool_choice(3)  # type: ignore[arg-type]


def test_tool_choice_with_unknown_kind_fails() -> None:
    with pytest.raises(InvalidToolChoiceError, match="required"):
        build_message_payload(
            _chat(tool_choice=ToolChoice("required")),  # type: ignore[arg-type]
            model=MODEL,
        )


@pytest.mark.parametrize("kind", ["auto", "any", "none"])
def test_unnamed_tool_choice_rejects_a_name(kind: str) -> None:
    with pytest.raises(InvalidToolChoiceError, match="does not take a tool name"):
        resolve_tool_choice(ToolChoice(kind, name="x"))  # type: ignore[arg-type]


# =============================================================================
# Payload shapes
# =============================================================================


def test_completion_payload_shape() -> None:
    request = GenerationRequest(
        prompt="\n\nHuman: hi\n\nAssistant:",
        temperature=0.2,
        stop_sequences=["STOP"],
        max_tokens=10,
        top_p=0.9,
    )
    payload = build_payload(request, model=MODEL)

    assert isinstance(payload, CompletionPayload)
    assert _dump(payload) == {
        "model": MODEL,
        "prompt": "\n\nHuman: hi\n\nAssistant:",
        "max_tokens_to_sample": 10,
        "temperature": 0.2,
        "top_p": 0.9,
        "stop_sequences": ["STOP"],
    }


def test_completion_payload_never_carries_chat_fields() -> None:
    payload = build_completion_payload(GenerationRequest(prompt="x"), model=MODEL)
    dumped = _dump(payload)
    for key in ("tools", "tool_choice", "system", "messages", "max_tokens", "top_k"):
        assert key not in dumped
    assert dumped["max_tokens_to_sample"] == 2048


def test_completion_payload_has_no_top_k_field() -> None:
    with pytest.raises(pydantic.ValidationError):
        CompletionPayload(model=MODEL, prompt="p", max_tokens_to_sample=1, top_k=5)


def test_message_payload_minimal_shape() -> None:
    payload = build_payload(_chat(), model=MODEL)

    assert isinstance(payload, MessagePayload)
    assert _dump(payload) == {
        "model": MODEL,
        "messages": [{"role": "user", "content": "hi"}],
        "max_tokens": 2048,
    }


def test_message_payload_full_shape() -> None:
    request = GenerationRequest(
        messages=[
            {"role": "system", "content": "Answer in French."},
            {"role": "user", "content": "hi"},
            {
                "role": "assistant",
                "content": [
                    {"type": "tool_use", "id": "tu_1", "name": "lookup", "input": {"q": 1}}
                ],
            },
            ChatMessage(
                role="user",
                content=[ToolResultBlock(tool_use_id="tu_1", content="42")],
            ),
        ],
        system="Be terse.",
        model="claude-override",
        temperature=0.0,
        top_k=5,
        max_tokens=64,
        stream=True,
        streaming_func=lambda _chunk: None,
    )
    dumped = _dump(build_payload(request, model=MODEL))

    assert dumped["model"] == "claude-override"
    assert dumped["system"] == "Be terse.\n\nAnswer in French."
    assert dumped["temperature"] == 0.0
    assert dumped["top_k"] == 5
    assert dumped["max_tokens"] == 64
    assert dumped["stream"] is True
    assert [m["role"] for m in dumped["messages"]] == ["user", "assistant", "user"]
    assert dumped["messages"][1]["content"] == [
        {"type": "tool_use", "id": "tu_1", "name": "lookup", "input": {"q": 1}}
    ]
    assert dumped["messages"][2]["content"] == [
        {"type": "tool_result", "tool_use_id": "tu_1", "content": "42"}
    ]


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("hi", "\n\nHuman: hi\n\nAssistant:"),
        ("\n\nHuman: hi\n\nAssistant:", "\n\nHuman: hi\n\nAssistant:"),
        ("sys\n\nHuman: hi\n\nAssistant:", "sys\n\nHuman: hi\n\nAssistant:"),
    ],
)
def test_format_completion_prompt(text: str, expected: str) -> None:
    assert format_completion_prompt(text) == expected


# =============================================================================
# Request validation
# =============================================================================


def test_request_requires_exactly_one_input_mode() -> None:
    with pytest.raises(ValidationError, match="exactly one"):
        GenerationRequest()
    with pytest.raises(ValidationError, match="exactly one"):
        GenerationRequest(prompt="a", messages=[{"role": "user", "content": "b"}])


def test_streaming_requires_callback() -> None:
    with pytest.raises(ValidationError, match="streaming_func"):
        GenerationRequest(prompt="a", stream=True)


def test_prompt_request_rejects_chat_only_fields() -> None:
    tool = Tool(function=FunctionDefinition(name="t"))
    with pytest.raises(ValidationError):
        GenerationRequest(prompt="a", tools=[tool])
    with pytest.raises(ValidationError):
        GenerationRequest(prompt="a", system="s")
    with pytest.raises(ValidationError):
        GenerationRequest(prompt="a", tool_choice="auto")
    with pytest.raises(ValidationError, match="top_k"):
        GenerationRequest(prompt="a", top_k=5)


def test_invalid_message_dict_is_a_validation_error() -> None:
    with pytest.raises(ValidationError, match=r"messages\[0\]"):
        GenerationRequest(messages=[{"role": "robot", "content": "beep"}])


def test_empty_messages_rejected() -> None:
    with pytest.raises(ValidationError, match="empty"):
        GenerationRequest(messages=[])


def test_request_kind() -> None:
    assert GenerationRequest(prompt="a").kind == "completion"
    assert _chat().kind == "messages"

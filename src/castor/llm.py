"""The narrow generate contract the multi-provider layer plugs into."""

from __future__ import annotations

from dataclasses import replace
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from castor.client import AnthropicClient
from castor.config import ProviderConfig
from castor.errors import ValidationError
from castor.models import GenerationRequest, GenerationResult
from castor.payloads import AI_PROMPT, HUMAN_PROMPT, format_completion_prompt
from castor.schema import ChatMessage, TextBlock

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

logger = logging.getLogger(__name__)


@runtime_checkable
class LanguageModel(Protocol):
    """Minimal model protocol: one request in, one result out."""

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Generate a completion or chat message for *request*."""
        ...


class AnthropicLLM:
    """Anthropic model behind the LanguageModel protocol.

    Prompt requests use the legacy completion endpoint and message requests
    use the Messages endpoint, unless ``use_legacy_completions`` is set on the
    config, in which case message text is flattened into a Human/Assistant
    prompt.
    """

    def __init__(self, config: ProviderConfig | None = None) -> None:
        """Initialize with a config (defaults resolve from the environment)."""
        self.config = config if config is not None else ProviderConfig()
        self.client = AnthropicClient(self.config)

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Generate a result for *request*."""
        if request.kind == "messages" and self.config.use_legacy_completions:
            logger.debug("Flattening %d messages for /complete", len(request.messages or ()))
            request = _as_completion_request(request)

        if request.kind == "completion":
            request = replace(request, prompt=format_completion_prompt(request.prompt or ""))
            completion = await self.client.create_completion(request)
            return GenerationResult.from_completion(completion)

        message = await self.client.create_message(request)
        return GenerationResult.from_message(message)

    async def aclose(self) -> None:
        """Close underlying HTTP resources."""
        await self.client.aclose()

    async def __aenter__(self) -> AnthropicLLM:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def messages_to_prompt(
    messages: Sequence[ChatMessage], *, system: str | None = None
) -> str:
    """Flatten chat turns into a legacy Human/Assistant prompt."""
    head: list[str] = [system] if system else []
    turns: list[str] = []
    for m in messages:
        if not isinstance(m.content, str) and any(
            not isinstance(b, TextBlock) for b in m.content
        ):
            raise ValidationError(
                "legacy completions only support text content",
                hint="Disable use_legacy_completions to send tool blocks.",
            )
        if m.role == "system":
            head.append(m.text)
        elif m.role == "user":
            turns.append(f"{HUMAN_PROMPT} {m.text}")
        else:
            turns.append(f"{AI_PROMPT} {m.text}")
    return "\n\n".join(head) + "".join(turns) + AI_PROMPT


def _as_completion_request(request: GenerationRequest) -> GenerationRequest:
    if request.tools or request.tool_choice is not None or request.top_k is not None:
        raise ValidationError(
            "legacy completions do not support tools or top_k",
            hint="Disable use_legacy_completions to use tools or top_k.",
        )
    prompt = messages_to_prompt(request.messages or (), system=request.system)
    return replace(request, prompt=prompt, messages=None, system=None)


async def generate_from_single_prompt(
    llm: LanguageModel, prompt: str, **options: Any
) -> str:
    """Send *prompt* as a single user turn and return the reply text.

    Extra keyword arguments are GenerationRequest fields such as
    ``temperature``, ``max_tokens`` or ``streaming_func``.
    """
    request = GenerationRequest(
        messages=[ChatMessage(role="user", content=prompt)], **options
    )
    result = await llm.generate(request)
    return result.text

"""ModelClient — the completion backend, implemented over LiteLLM.

Wraps LiteLLM behind a CMS-native interface so the rest of the system
only ever works with CanonicalMessage and ConversationHistory.
"""

from typing import Any, Protocol, runtime_checkable

import litellm

from tether.core.interface.config import ModelConfig
from tether.core.interface.models import CanonicalMessage, ConversationHistory, ToolCall
from tether.utils.telemetry import (
    ATTR_FINISH_REASON,
    ATTR_MODEL,
    ATTR_PROVIDER,
    ATTR_TOKENS_COMPLETION,
    ATTR_TOKENS_PROMPT,
    ATTR_TOKENS_TOTAL,
    ATTR_TOOL_CALLS,
    get_tracer,
)

_tracer = get_tracer(__name__)


@runtime_checkable
class CompletionBackend(Protocol):
    """Anything that turns a conversation (plus tool schemas) into a reply."""

    async def generate(
        self,
        messages: ConversationHistory,
        tools: list[dict[str, Any]] | None = None,
    ) -> CanonicalMessage:
        """Return the assistant's next turn (text and/or tool calls)."""
        ...


class ModelClient:
    """Async client for generating LLM responses via LiteLLM.

    Usage::

        config = ModelConfig(model="openai/gpt-4o")
        client = ModelClient(config)
        response = await client.generate(history, tools=registry.schemas())
    """

    def __init__(self, config: ModelConfig | None = None) -> None:
        self.config = config or ModelConfig()

    async def generate(
        self,
        messages: ConversationHistory,
        tools: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> CanonicalMessage:
        """Generate a response from the configured model.

        Args:
            messages: The conversation history in CMS format.
            tools: Optional list of tool definitions in OpenAI function schema format.
            **kwargs: Additional parameters passed to LiteLLM.

        Returns:
            A CanonicalMessage representing the model's response.
        """
        with _tracer.start_as_current_span("model.generate") as span:
            span.set_attribute(ATTR_MODEL, self.config.model)
            span.set_attribute(ATTR_PROVIDER, self.config.provider)

            call_kwargs: dict[str, Any] = {
                "model": self.config.model,
                "messages": to_openai_messages(messages),
                "temperature": self.config.temperature,
                "max_tokens": self.config.max_tokens,
                **self.config.extra,
                **kwargs,
            }
            if self.config.api_key:
                call_kwargs["api_key"] = self.config.api_key
            if self.config.api_base:
                call_kwargs["api_base"] = self.config.api_base
            if tools:
                call_kwargs["tools"] = tools

            response = await litellm.acompletion(**call_kwargs)  # pyright: ignore[reportUnknownMemberType]
            result = self._parse_response(response)

            usage: dict[str, Any] | None = result.metadata.get("usage")
            if isinstance(usage, dict):
                span.set_attribute(ATTR_TOKENS_PROMPT, int(usage.get("prompt_tokens") or 0))
                span.set_attribute(ATTR_TOKENS_COMPLETION, int(usage.get("completion_tokens") or 0))
                span.set_attribute(ATTR_TOKENS_TOTAL, int(usage.get("total_tokens") or 0))
            finish_reason = result.metadata.get("finish_reason")
            if finish_reason is not None:
                span.set_attribute(ATTR_FINISH_REASON, str(finish_reason))
            span.set_attribute(ATTR_TOOL_CALLS, len(result.tool_calls or []))

            return result

    def _parse_response(self, response: Any) -> CanonicalMessage:
        """Convert a LiteLLM response to a CanonicalMessage.

        LiteLLM returns OpenAI-compatible response objects regardless of
        the underlying provider. Tool-call arguments stay raw strings.
        """
        choice = response.choices[0]
        message = choice.message

        tool_calls: list[ToolCall] | None = None
        if message.tool_calls:
            tool_calls = [
                ToolCall(
                    id=tc.id,
                    name=tc.function.name,
                    arguments=tc.function.arguments or "",
                )
                for tc in message.tool_calls
            ]

        metadata: dict[str, Any] = {}
        if getattr(response, "usage", None):
            metadata["usage"] = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        metadata["finish_reason"] = choice.finish_reason
        metadata["model"] = response.model

        return CanonicalMessage.assistant(message.content or "", tool_calls=tool_calls, **metadata)


def to_openai_messages(history: ConversationHistory) -> list[dict[str, Any]]:
    """Convert CMS history to the OpenAI chat format LiteLLM expects."""
    messages: list[dict[str, Any]] = []
    for msg in history:
        entry: dict[str, Any] = {"role": msg.role, "content": msg.content}
        if msg.role == "tool":
            entry["tool_call_id"] = msg.tool_call_id
        elif msg.tool_calls:
            entry["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {"name": tc.name, "arguments": tc.arguments},
                }
                for tc in msg.tool_calls
            ]
        messages.append(entry)
    return messages

"""Canonical Message Schema (CMS) — the internal conversation format.

The orchestration loop and the history compactor only ever see these
types; :class:`~tether.core.interface.client.ModelClient` converts them
to and from the provider payloads.
"""

import json
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Tool Calling — structured tool invocations
# ---------------------------------------------------------------------------


class ToolCall(BaseModel):
    """A tool invocation emitted by an assistant message.

    ``arguments`` is kept as the raw JSON string the model produced, so a
    malformed payload can be reported back to the model instead of being
    silently repaired.
    """

    id: str = Field(default_factory=lambda: f"call_{uuid4().hex[:12]}")
    name: str
    arguments: str = "{}"

    def parse_arguments(self) -> dict[str, Any]:
        """Decode ``arguments``; an empty string means no arguments.

        Raises:
            ValueError: If the payload is not valid JSON or not a JSON object.
        """
        if not self.arguments.strip():
            return {}
        parsed = json.loads(self.arguments)
        if not isinstance(parsed, dict):
            msg = f"Tool arguments must be a JSON object, got {type(parsed).__name__}"
            raise ValueError(msg)
        return parsed

    @classmethod
    def create(cls, name: str, arguments: dict[str, Any] | None = None, **kwargs: Any) -> "ToolCall":
        """Build a call from already-structured arguments."""
        return cls(name=name, arguments=json.dumps(arguments or {}), **kwargs)


# ---------------------------------------------------------------------------
# Canonical Message — one conversation turn
# ---------------------------------------------------------------------------


class CanonicalMessage(BaseModel):
    """A single turn in the canonical format.

    Roles:
    - system: instruction/context messages (including compaction summaries)
    - user: human input
    - assistant: LLM-generated messages (may include tool_calls)
    - tool: tool execution results (must include tool_call_id)
    """

    role: Literal["system", "user", "assistant", "tool"]
    content: str = ""
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    metadata: dict[str, Any] = {}

    @property
    def text(self) -> str:
        return self.content

    @classmethod
    def system(cls, text: str, **metadata: Any) -> "CanonicalMessage":
        """Create a system message."""
        return cls(role="system", content=text, metadata=metadata)

    @classmethod
    def user(cls, text: str, **metadata: Any) -> "CanonicalMessage":
        """Create a user message."""
        return cls(role="user", content=text, metadata=metadata)

    @classmethod
    def assistant(
        cls,
        text: str = "",
        tool_calls: list[ToolCall] | None = None,
        **metadata: Any,
    ) -> "CanonicalMessage":
        """Create an assistant message."""
        return cls(role="assistant", content=text, tool_calls=tool_calls, metadata=metadata)

    @classmethod
    def tool(cls, tool_call_id: str, text: str, **metadata: Any) -> "CanonicalMessage":
        """Create a tool-result message answering *tool_call_id*."""
        return cls(role="tool", content=text, tool_call_id=tool_call_id, metadata=metadata)


# ---------------------------------------------------------------------------
# Conversation History — ordered container of messages
# ---------------------------------------------------------------------------


class ConversationHistory(BaseModel):
    """An ordered sequence of canonical messages forming a conversation."""

    messages: list[CanonicalMessage] = []

    def append(self, message: CanonicalMessage) -> None:
        """Append a message to the history."""
        self.messages.append(message)

    @property
    def system_messages(self) -> list[CanonicalMessage]:
        """Return all system messages."""
        return [m for m in self.messages if m.role == "system"]

    @property
    def non_system_messages(self) -> list[CanonicalMessage]:
        """Return all non-system messages."""
        return [m for m in self.messages if m.role != "system"]

    def copy_messages(self) -> "ConversationHistory":
        """Shallow copy: a new list holding the same message objects."""
        return ConversationHistory(messages=list(self.messages))

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self):  # type: ignore[override]
        return iter(self.messages)

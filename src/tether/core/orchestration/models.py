"""Agent configuration and loop state."""

from enum import Enum
from typing import Any

from pydantic import BaseModel

DEFAULT_SYSTEM_PROMPT = (
    "You are $name, a helpful assistant that can use tools to act on the "
    "user's behalf. Think step by step. When a tool is needed, call it; when "
    "you have the answer, reply to the user directly."
)


class LoopState(str, Enum):
    """Phase of a :class:`~tether.core.orchestration.loop.ReActAgent` cycle."""

    IDLE = "idle"
    THINKING = "thinking"
    ACTING = "acting"
    DONE = "done"


class AgentConfig(BaseModel):
    """Behaviour of one conversational agent.

    ``system_prompt`` is a :class:`string.Template` (``$name`` / ``${name}``);
    ``prompt_variables`` are substituted into it, unknown placeholders are
    left as-is.
    """

    name: str = "tether"
    max_iterations: int = 20
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    prompt_variables: dict[str, Any] = {}

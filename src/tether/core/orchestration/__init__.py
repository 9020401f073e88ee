"""Orchestration — the ReAct conversation loop."""

from tether.core.orchestration.loop import MAX_ITERATIONS_MESSAGE, ReActAgent, failure_payload
from tether.core.orchestration.models import DEFAULT_SYSTEM_PROMPT, AgentConfig, LoopState
from tether.core.orchestration.prompt import build_system_prompt, render_prompt

__all__ = [
    "DEFAULT_SYSTEM_PROMPT",
    "MAX_ITERATIONS_MESSAGE",
    "AgentConfig",
    "LoopState",
    "ReActAgent",
    "build_system_prompt",
    "failure_payload",
    "render_prompt",
]

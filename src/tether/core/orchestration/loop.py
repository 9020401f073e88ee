"""ReAct loop — alternate model turns and tool execution until an answer.

Each :meth:`ReActAgent.chat` call appends the user's text, then asks the
completion backend for a reply up to ``max_iterations`` times. Replies
carrying tool calls are executed through the capability registry and fed
back as tool turns; the first reply without tool calls is the answer.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from tether.core.interface.models import CanonicalMessage, ConversationHistory
from tether.core.orchestration.models import AgentConfig, LoopState
from tether.core.orchestration.prompt import build_system_prompt
from tether.utils.telemetry import (
    ATTR_ITERATION,
    ATTR_MAX_ITERATIONS,
    ATTR_TOOL_CALLS,
    get_tracer,
)

if TYPE_CHECKING:
    from tether.core.context.compactor import HistoryCompactor
    from tether.core.interface.client import CompletionBackend
    from tether.core.interface.models import ToolCall
    from tether.protocols.registry import CapabilityRegistry

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

MAX_ITERATIONS_MESSAGE = (
    "I reached the maximum number of reasoning steps without a final answer. "
    "Try rephrasing or breaking the request into smaller parts."
)


def failure_payload(error: str) -> str:
    """The tool-turn text reported for a call that could not complete."""
    return json.dumps({"success": False, "error": error})


class ReActAgent:
    """One conversation driven by a completion backend and a capability registry.

    Usage::

        agent = ReActAgent(ModelClient(config), registry)
        answer = await agent.chat("What's in README.md?")

    Callers must not run two :meth:`chat` calls on the same agent concurrently.
    """

    def __init__(
        self,
        backend: CompletionBackend,
        registry: CapabilityRegistry,
        *,
        config: AgentConfig | None = None,
        compactor: HistoryCompactor | None = None,
    ) -> None:
        self.backend = backend
        self.registry = registry
        self.config = config or AgentConfig()
        self.compactor = compactor
        self._history = ConversationHistory()
        self._state = LoopState.IDLE
        self._iterations = 0
        self.last_error: Exception | None = None

    @property
    def history(self) -> ConversationHistory:
        """A copy of the conversation so far."""
        return self._history.copy_messages()

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def iterations(self) -> int:
        """Backend calls made by the most recent :meth:`chat`."""
        return self._iterations

    def reset(self) -> None:
        """Forget the conversation; the next chat re-seeds the system prompt."""
        self._history = ConversationHistory()
        self._state = LoopState.IDLE
        self._iterations = 0
        self.last_error = None

    async def chat(self, text: str) -> str:
        """Run one user turn to completion and return the assistant's answer."""
        with _tracer.start_as_current_span("agent.chat") as span:
            span.set_attribute(ATTR_MAX_ITERATIONS, self.config.max_iterations)
            self._iterations = 0
            self.last_error = None

            if not len(self._history):
                self._history.append(
                    CanonicalMessage.system(build_system_prompt(self.config, self.registry))
                )
            self._history.append(CanonicalMessage.user(text))
            if self.compactor is not None and self.compactor.needs_compaction(self._history):
                self._history = await self.compactor.compact(self._history)

            tools = self.registry.schemas() or None
            while self._iterations < self.config.max_iterations:
                self._iterations += 1
                span.set_attribute(ATTR_ITERATION, self._iterations)
                self._state = LoopState.THINKING
                try:
                    reply = await self.backend.generate(self._history, tools=tools)
                except Exception as exc:
                    logger.exception("Completion backend failed")
                    self.last_error = exc
                    self._state = LoopState.DONE
                    return f"Error: {exc}"

                self._history.append(reply)
                if not reply.tool_calls:
                    self._state = LoopState.DONE
                    return reply.content

                self._state = LoopState.ACTING
                span.set_attribute(ATTR_TOOL_CALLS, len(reply.tool_calls))
                for call in reply.tool_calls:
                    result = await self._run_tool(call)
                    self._history.append(CanonicalMessage.tool(call.id, result, name=call.name))

            logger.warning("Stopped after %d iterations without a final answer", self._iterations)
            self._state = LoopState.DONE
            return MAX_ITERATIONS_MESSAGE

    async def _run_tool(self, call: ToolCall) -> str:
        try:
            arguments = call.parse_arguments()
        except ValueError as exc:
            logger.info("Rejected arguments for %s: %s", call.name, exc)
            return failure_payload(f"Invalid arguments for {call.name}: {exc}")

        logger.info("Calling tool %s", call.name)
        try:
            return await self.registry.execute(call.name, arguments)
        except Exception as exc:
            logger.info("Tool %s failed: %s", call.name, exc)
            return failure_payload(str(exc))

"""History compaction — folds older turns into a single summary turn.

When the estimated size of a conversation passes ``max_tokens`` the older
turns are summarized by the completion backend and replaced with one
``[Conversation Summary]`` system turn; the system prompt and the most
recent turns are kept verbatim.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel

from tether.core.context.counter import DEFAULT_CHARS_PER_TOKEN, CharacterEstimator
from tether.core.interface.models import CanonicalMessage, ConversationHistory
from tether.utils.telemetry import ATTR_COMPACTED_TURNS, ATTR_HISTORY_TURNS, get_tracer

if TYPE_CHECKING:
    from tether.core.context.counter import TokenCounter
    from tether.core.interface.client import CompletionBackend

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

SUMMARY_PREFIX = "[Conversation Summary]"
SUMMARY_METADATA_KEY = "summary"

_SUMMARIZE_PROMPT = (
    "Summarize the following conversation concisely, preserving key facts, "
    "decisions, tool results and context needed for the assistant to continue "
    "helpfully. Respond with only the summary, no preamble."
)


class CompactionConfig(BaseModel):
    """Thresholds for :class:`HistoryCompactor`."""

    max_tokens: int = 24000
    keep_recent: int = 4
    chars_per_token: int = DEFAULT_CHARS_PER_TOKEN


def is_summary(message: CanonicalMessage) -> bool:
    """True for a system turn produced by an earlier compaction."""
    return message.role == "system" and bool(message.metadata.get(SUMMARY_METADATA_KEY))


def _render_transcript(messages: list[CanonicalMessage]) -> str:
    lines: list[str] = []
    for m in messages:
        if is_summary(m):
            lines.append(f"earlier summary: {m.content}")
            continue
        line = f"{m.role}: {m.content}"
        if m.tool_calls:
            calls = ", ".join(f"{tc.name}({tc.arguments})" for tc in m.tool_calls)
            line = f"{line} [tool calls: {calls}]"
        lines.append(line)
    return "\n".join(lines)


class HistoryCompactor:
    """Summarizes old turns via the completion backend.

    Usage::

        compactor = HistoryCompactor(model_client)
        if compactor.needs_compaction(history):
            history = await compactor.compact(history)
    """

    def __init__(
        self,
        backend: CompletionBackend,
        config: CompactionConfig | None = None,
        counter: TokenCounter | None = None,
    ) -> None:
        self.backend = backend
        self.config = config or CompactionConfig()
        self.counter = counter or CharacterEstimator(self.config.chars_per_token)

    def estimate(self, history: ConversationHistory) -> int:
        return self.counter.count_messages(history)

    def needs_compaction(self, history: ConversationHistory) -> bool:
        return self.estimate(history) > self.config.max_tokens

    async def compact(self, history: ConversationHistory) -> ConversationHistory:
        """Return a compacted copy of *history*, or *history* itself when nothing changes."""
        if not self.needs_compaction(history):
            return history

        preserved = [m for m in history if m.role == "system" and not is_summary(m)]
        summaries = [m for m in history if is_summary(m)]
        non_system = history.non_system_messages

        split = max(len(non_system) - self.config.keep_recent, 0)
        # A tool turn must stay next to the assistant turn that requested it.
        while 0 < split < len(non_system) and non_system[split].role == "tool":
            split -= 1

        old = non_system[:split]
        if not old:
            return history
        recent = non_system[split:]

        with _tracer.start_as_current_span("history.compact") as span:
            span.set_attribute(ATTR_HISTORY_TURNS, len(history))
            span.set_attribute(ATTR_COMPACTED_TURNS, len(summaries) + len(old))

            summary_text = await self._summarize([*summaries, *old])
            summary = CanonicalMessage.system(
                f"{SUMMARY_PREFIX} {summary_text}", **{SUMMARY_METADATA_KEY: True}
            )
            logger.info(
                "Compacted %d turns into a summary (%d recent kept)",
                len(summaries) + len(old),
                len(recent),
            )
            return ConversationHistory(messages=[*preserved, summary, *recent])

    async def _summarize(self, messages: list[CanonicalMessage]) -> str:
        request = ConversationHistory(
            messages=[
                CanonicalMessage.system(_SUMMARIZE_PROMPT),
                CanonicalMessage.user(_render_transcript(messages)),
            ]
        )
        try:
            response = await self.backend.generate(request)
        except Exception as exc:
            logger.warning("History summarization failed: %s", exc)
            return f"(summary unavailable: {exc})"
        return response.content.strip()

"""Context management — token counting and history compaction."""

from tether.core.context.compactor import (
    SUMMARY_PREFIX,
    CompactionConfig,
    HistoryCompactor,
    is_summary,
)
from tether.core.context.counter import (
    CharacterEstimator,
    TiktokenCounter,
    TokenCounter,
    get_counter,
)

__all__ = [
    "SUMMARY_PREFIX",
    "CharacterEstimator",
    "CompactionConfig",
    "HistoryCompactor",
    "TiktokenCounter",
    "TokenCounter",
    "get_counter",
    "is_summary",
]

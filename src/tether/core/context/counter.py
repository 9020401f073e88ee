"""Token counting — protocol and implementations for measuring history size.

The default is a character-based estimate (about three characters per
token) that needs no tokenizer; tiktoken gives an accurate count for
OpenAI-family models when asked for.
"""

from __future__ import annotations

import json
import math
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import tiktoken

if TYPE_CHECKING:
    from tether.core.interface.config import ModelConfig
    from tether.core.interface.models import CanonicalMessage, ConversationHistory

DEFAULT_CHARS_PER_TOKEN = 3


@runtime_checkable
class TokenCounter(Protocol):
    """Protocol for counting tokens in messages."""

    def count_message(self, message: CanonicalMessage) -> int:
        """Return the token count for a single message."""
        ...

    def count_messages(self, messages: ConversationHistory) -> int:
        """Return the total token count for a conversation history."""
        ...


def _tool_calls_json(message: CanonicalMessage) -> str:
    if not message.tool_calls:
        return ""
    return json.dumps([tc.model_dump() for tc in message.tool_calls])


# ---------------------------------------------------------------------------
# Character estimator (default)
# ---------------------------------------------------------------------------


class CharacterEstimator:
    """Estimates tokens as total characters divided by *chars_per_token*, rounded up.

    Characters are summed across the whole history (content plus the JSON
    of any tool calls) before dividing, so short turns don't each round up.
    """

    def __init__(self, chars_per_token: int = DEFAULT_CHARS_PER_TOKEN) -> None:
        if chars_per_token <= 0:
            msg = f"chars_per_token must be positive, got {chars_per_token}"
            raise ValueError(msg)
        self.chars_per_token = chars_per_token

    def count_chars(self, message: CanonicalMessage) -> int:
        return len(message.content) + len(_tool_calls_json(message))

    def count_message(self, message: CanonicalMessage) -> int:
        return math.ceil(self.count_chars(message) / self.chars_per_token)

    def count_messages(self, messages: ConversationHistory) -> int:
        total = sum(self.count_chars(m) for m in messages)
        return math.ceil(total / self.chars_per_token)


# ---------------------------------------------------------------------------
# Tiktoken-based counter (accurate for OpenAI models)
# ---------------------------------------------------------------------------

# Per-message overhead: every message has <|start|>{role}\n ... <|end|> framing.
_MSG_OVERHEAD = 4
# Reply priming tokens added once to the total (OpenAI convention).
_REPLY_PRIMING = 2


class TiktokenCounter:
    """Token counter using tiktoken encodings.

    Falls back to ``cl100k_base`` when the model's encoding is unknown.
    """

    def __init__(self, model: str) -> None:
        try:
            self._enc = tiktoken.encoding_for_model(model)
        except KeyError:
            self._enc = tiktoken.get_encoding("cl100k_base")

    def count_message(self, message: CanonicalMessage) -> int:
        """Count tokens in a single message including per-message overhead."""
        tokens = _MSG_OVERHEAD
        tokens += len(self._enc.encode(message.content))
        if message.tool_calls:
            for tc in message.tool_calls:
                tokens += len(self._enc.encode(tc.name))
                tokens += len(self._enc.encode(tc.arguments))
        return tokens

    def count_messages(self, messages: ConversationHistory) -> int:
        """Count total tokens for a conversation, including reply priming."""
        return sum(self.count_message(m) for m in messages) + _REPLY_PRIMING


# Providers whose tokenization is well-served by tiktoken.
_TIKTOKEN_PROVIDERS = frozenset({"openai", "azure", "azure_ai"})


def get_counter(config: ModelConfig | None = None, *, accurate: bool = False) -> TokenCounter:
    """Return a TokenCounter for *config*.

    The character estimator is the default. With ``accurate=True`` an
    OpenAI/Azure model gets a :class:`TiktokenCounter`; other providers
    keep the estimator.
    """
    if accurate and config is not None and config.provider in _TIKTOKEN_PROVIDERS:
        # tiktoken expects bare model names.
        return TiktokenCounter(config.model.split("/", 1)[-1])
    return CharacterEstimator()

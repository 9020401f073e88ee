"""Completion backend interface and the canonical message schema."""

from tether.core.interface.client import CompletionBackend, ModelClient, to_openai_messages
from tether.core.interface.config import ModelConfig
from tether.core.interface.models import CanonicalMessage, ConversationHistory, ToolCall

__all__ = [
    "CanonicalMessage",
    "CompletionBackend",
    "ConversationHistory",
    "ModelClient",
    "ModelConfig",
    "ToolCall",
    "to_openai_messages",
]

"""Model configuration — provider, model name, sampling parameters."""

import os
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_MODEL = "openai/gpt-4o"


class ModelConfig(BaseModel):
    """Configuration for a specific model/provider combination.

    The ``model`` field uses LiteLLM's naming convention:
    ``provider/model_name`` (e.g. ``openai/gpt-4o``, ``deepseek/deepseek-chat``).
    """

    model: str = DEFAULT_MODEL
    api_key: str | None = None
    api_base: str | None = None
    temperature: float = 0.7
    max_tokens: int = 4096
    extra: dict[str, Any] = Field(default_factory=lambda: dict[str, Any]())

    @property
    def provider(self) -> str:
        """Extract the provider prefix from the model string."""
        if "/" in self.model:
            return self.model.split("/", 1)[0]
        return "openai"

    @classmethod
    def from_env(cls, **overrides: Any) -> "ModelConfig":
        """Build a config from ``TETHER_MODEL`` / ``TETHER_API_KEY`` / ``TETHER_API_BASE``."""
        values: dict[str, Any] = {
            "model": os.environ.get("TETHER_MODEL", DEFAULT_MODEL),
            "api_key": os.environ.get("TETHER_API_KEY"),
            "api_base": os.environ.get("TETHER_API_BASE"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

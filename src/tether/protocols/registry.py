"""CapabilityRegistry — one name → (schema, executor) map for every tool.

Built-in tools and tools discovered from tool servers are registered the
same way; the orchestration loop only ever talks to the registry.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tether.protocols.errors import ToolNotFoundError
from tether.utils.telemetry import ATTR_TOOL_NAME, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

Executor = Callable[[dict[str, Any]], Awaitable[str] | str]


def object_schema(
    properties: dict[str, Any] | None = None,
    required: list[str] | None = None,
) -> dict[str, Any]:
    """Build a ``{"type": "object", ...}`` parameter schema."""
    schema: dict[str, Any] = {"type": "object", "properties": dict(properties or {})}
    if required:
        schema["required"] = list(required)
    return schema


class CapabilityDescriptor(BaseModel):
    """An immutable registry entry."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(default_factory=object_schema)
    executor: Executor = Field(exclude=True, repr=False)

    def function_schema(self) -> dict[str, Any]:
        """The bare ``{name, description, parameters}`` function schema."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }

    def to_schema(self) -> dict[str, Any]:
        """The OpenAI/LiteLLM tool shape wrapping :meth:`function_schema`."""
        return {"type": "function", "function": self.function_schema()}


class CapabilityRegistry:
    """Maintains the name-to-executor map and executes capabilities.

    Usage::

        registry = CapabilityRegistry()
        registry.register("echo", "Echo text", object_schema({"text": {...}}), echo)

        schemas = registry.schemas()                         # for the model
        text = await registry.execute("echo", {"text": "hi"})
    """

    def __init__(self) -> None:
        self._capabilities: dict[str, CapabilityDescriptor] = {}

    def register(
        self,
        name: str,
        description: str,
        parameters: dict[str, Any] | None,
        executor: Executor,
    ) -> CapabilityDescriptor:
        """Register (or replace) a capability. Last registration wins."""
        descriptor = CapabilityDescriptor(
            name=name,
            description=description,
            parameters=parameters or object_schema(),
            executor=executor,
        )
        return self.add(descriptor)

    def add(self, descriptor: CapabilityDescriptor) -> CapabilityDescriptor:
        if descriptor.name in self._capabilities:
            logger.debug("Replacing capability %s", descriptor.name)
        self._capabilities[descriptor.name] = descriptor
        return descriptor

    def unregister(self, name: str) -> bool:
        """Remove *name*; return whether it was registered."""
        return self._capabilities.pop(name, None) is not None

    def get(self, name: str) -> CapabilityDescriptor | None:
        return self._capabilities.get(name)

    def has(self, name: str) -> bool:
        return name in self._capabilities

    def names(self) -> list[str]:
        return list(self._capabilities)

    def schemas(self) -> list[dict[str, Any]]:
        """Return every capability in the function-calling tool shape."""
        return [d.to_schema() for d in self._capabilities.values()]

    def summary(self) -> str:
        """Comma-separated capability names, for the system prompt."""
        return ", ".join(self._capabilities)

    async def execute(self, name: str, arguments: dict[str, Any]) -> str:
        """Run the named capability and return its text result unchanged.

        Raises:
            ToolNotFoundError: If *name* is not registered.
        """
        descriptor = self._capabilities.get(name)
        if descriptor is None:
            raise ToolNotFoundError(name)

        with _tracer.start_as_current_span("capability.execute") as span:
            span.set_attribute(ATTR_TOOL_NAME, name)
            result = descriptor.executor(arguments)
            if inspect.isawaitable(result):
                result = await result
            return result

    def __len__(self) -> int:
        return len(self._capabilities)

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

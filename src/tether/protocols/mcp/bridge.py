"""MCP bridge — exposes discovered server tools through the capability registry.

Each tool ``t`` on server ``s`` is registered as ``mcp_{s}_{t}`` with an
executor that forwards to :meth:`MCPClient.call_tool` and records the
invocation in a bounded :class:`ToolCallLog`.
"""

from __future__ import annotations

import json
import logging
import time
from collections import deque
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from tether.protocols.mcp.client import MCPClient
    from tether.protocols.mcp.models import MCPToolDef
    from tether.protocols.registry import CapabilityRegistry, Executor

logger = logging.getLogger(__name__)

MCP_PREFIX = "mcp_"
DEFAULT_LOG_SIZE = 100
RESULT_PREVIEW_CHARS = 1000


def namespaced_name(server: str, tool: str) -> str:
    """Registry name for *tool* on *server*."""
    return f"{MCP_PREFIX}{server}_{tool}"


# ---------------------------------------------------------------------------
# Tool call log — bounded ring of recent invocations
# ---------------------------------------------------------------------------


class ToolCallRecord(BaseModel):
    """One bridged invocation, kept for display."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    server: str
    tool: str
    arguments: dict[str, Any] = {}
    result: str = ""
    duration_ms: float = 0.0
    success: bool = True


class ToolCallLog:
    """Keeps the most recent *maxlen* records; the oldest are evicted first."""

    def __init__(self, maxlen: int = DEFAULT_LOG_SIZE) -> None:
        self._records: deque[ToolCallRecord] = deque(maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return self._records.maxlen or 0

    def append(self, record: ToolCallRecord) -> None:
        self._records.append(record)

    def recent(self, limit: int = 50) -> list[ToolCallRecord]:
        """Return up to *limit* records, oldest first."""
        if limit <= 0:
            return []
        return list(self._records)[-limit:]

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


# ---------------------------------------------------------------------------
# Bridge
# ---------------------------------------------------------------------------


class MCPBridge:
    """Registers tools from an :class:`MCPClient` into a :class:`CapabilityRegistry`.

    Usage::

        bridge = MCPBridge(client, registry)
        count = await bridge.register_all()
        ...
        bridge.unregister_all()
    """

    def __init__(
        self,
        client: MCPClient,
        registry: CapabilityRegistry,
        *,
        log: ToolCallLog | None = None,
    ) -> None:
        self.client = client
        self.registry = registry
        self.log = log if log is not None else ToolCallLog()

    async def register_all(self) -> int:
        """Connect every configured server and register its tools.

        Returns the number of capabilities registered. Servers that fail to
        connect are skipped (the client already reported them).
        """
        result = await self.client.connect_all()
        for server, error in result.failures.items():
            logger.warning("Skipping tool server %s: %s", server, error)
        return sum(self.register_server(server, tools) for server, tools in result.tools.items())

    def register_server(self, server: str, tools: list[MCPToolDef]) -> int:
        """Register *tools* discovered on *server*; return how many."""
        for tool in tools:
            self.registry.register(
                namespaced_name(server, tool.name),
                f"[MCP:{server}] {tool.description}",
                tool.parameters(),
                self._make_executor(server, tool.name),
            )
        return len(tools)

    def unregister_all(self) -> int:
        """Remove every ``mcp_``-prefixed capability; return how many."""
        names = [n for n in self.registry.names() if n.startswith(MCP_PREFIX)]
        for name in names:
            self.registry.unregister(name)
        return len(names)

    def _make_executor(self, server: str, tool: str) -> Executor:
        async def execute(arguments: dict[str, Any]) -> str:
            started = datetime.now(timezone.utc)
            t0 = time.perf_counter()
            success = True
            text = ""
            try:
                result = await self.client.call_tool(server, tool, arguments)
                text = result.to_text()
                success = not result.is_error
                return text
            except Exception as exc:
                success = False
                text = json.dumps({"error": str(exc)})
                raise
            finally:
                self.log.append(
                    ToolCallRecord(
                        timestamp=started,
                        server=server,
                        tool=tool,
                        arguments=arguments,
                        result=text[:RESULT_PREVIEW_CHARS],
                        duration_ms=(time.perf_counter() - t0) * 1000,
                        success=success,
                    )
                )

        execute.__name__ = namespaced_name(server, tool)
        return execute

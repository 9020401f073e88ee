"""MCPClient — manages named tool-server connections.

Implements the handshake (``initialize`` / ``notifications/initialized``),
tool discovery (``tools/list``) and execution (``tools/call``) across any
number of stdio servers. All connections share one id allocator.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from tether import __version__
from tether.protocols.errors import (
    DiscoveryError,
    ProtocolError,
    ServerNotConfiguredError,
    ServerNotReadyError,
)
from tether.protocols.mcp.config import load_config
from tether.protocols.mcp.correlator import IdAllocator
from tether.protocols.mcp.models import (
    MCP_PROTOCOL_VERSION,
    ConnectionState,
    MCPConfig,
    MCPServerConfig,
    MCPToolDef,
    MCPToolResult,
    ServerEvent,
    ServerStatus,
)
from tether.protocols.mcp.transport import (
    DEFAULT_READY_TIMEOUT,
    DEFAULT_REQUEST_TIMEOUT,
    EventListener,
    MCPConnection,
    StdioConnection,
)
from tether.utils.telemetry import ATTR_RPC_METHOD, ATTR_TOOL_NAME, ATTR_TOOL_SERVER, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


class ConnectAllResult(BaseModel):
    """Outcome of :meth:`MCPClient.connect_all` — partial success is normal."""

    tools: dict[str, list[MCPToolDef]] = {}
    failures: dict[str, str] = {}


class MCPClient:
    """Async context manager owning every tool-server connection.

    Usage::

        async with MCPClient(config_path=".mcp.json") as client:
            result = await client.connect_all()
            out = await client.call_tool("filesystem", "read_file", {"path": "x"})
    """

    def __init__(
        self,
        config: MCPConfig | None = None,
        *,
        config_path: str | Path | None = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        ready_timeout: float = DEFAULT_READY_TIMEOUT,
        client_name: str = "tether",
    ) -> None:
        self._config = config
        self._config_path = config_path
        self._request_timeout = request_timeout
        self._ready_timeout = ready_timeout
        self._client_name = client_name
        self._ids = IdAllocator()
        self._connections: dict[str, MCPConnection] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._listeners: list[EventListener] = []

    async def __aenter__(self) -> MCPClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.disconnect_all()

    # -- configuration ---------------------------------------------------------

    @property
    def config(self) -> MCPConfig:
        if self._config is None:
            self._config = load_config(self._config_path)
        return self._config

    def load_config(self, path: str | Path | None = None) -> MCPConfig:
        """(Re)load the configuration file; a missing file means no servers."""
        self._config_path = path if path is not None else self._config_path
        self._config = load_config(self._config_path)
        return self._config

    def has_servers(self) -> bool:
        return bool(self.config.servers)

    # -- observers ---------------------------------------------------------------

    def add_listener(self, listener: EventListener) -> None:
        """Receive events from every connection plus client-level ready/error events."""
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    def _emit(self, event: ServerEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener failed for %s event", event.kind)

    def _on_connection_event(self, event: ServerEvent) -> None:
        if event.kind == "exit":
            # A connect() in progress owns teardown of its own connection.
            lock = self._locks.get(event.server)
            if lock is None or not lock.locked():
                self._connections.pop(event.server, None)
        self._emit(event)

    # -- connection management ---------------------------------------------------

    async def connect(self, name: str) -> list[MCPToolDef]:
        """Start *name*, perform the handshake, and return its tools.

        Idempotent: a ready connection returns its cached tool list.

        Raises:
            ServerNotConfiguredError: If *name* is not in the configuration.
            DiscoveryError: If spawning, the handshake, or ``tools/list`` fails.
        """
        server_config = self.config.servers.get(name)
        if server_config is None:
            raise ServerNotConfiguredError(name)

        lock = self._locks.setdefault(name, asyncio.Lock())
        async with lock:
            existing = self._connections.get(name)
            if existing is not None and existing.state is ConnectionState.READY:
                return list(existing.tools)
            if existing is not None:
                await self._teardown(name)

            conn = self._create_connection(name, server_config)
            conn.add_listener(self._on_connection_event)
            self._connections[name] = conn

            try:
                await conn.start()
                await conn.wait_until_live()
                await self._handshake(conn)
                tools = await self._list_tools(conn)
            except Exception as exc:
                detail = str(exc)
                logger.warning("Failed to connect tool server %s: %s", name, detail)
                self._emit(ServerEvent(kind="error", server=name, data={"error": detail}))
                await self._teardown(name)
                raise DiscoveryError(name, detail) from exc

            conn.mark_ready(tools)
            logger.info("Tool server %s ready with %d tool(s)", name, len(tools))
            self._emit(ServerEvent(kind="ready", server=name, data={"tools": len(tools)}))
            return list(tools)

    async def connect_all(self) -> ConnectAllResult:
        """Connect every configured server concurrently (best effort).

        A failing server is reported in ``failures`` and never prevents the
        others from connecting.
        """
        names = list(self.config.servers)
        outcomes = await asyncio.gather(
            *(self.connect(name) for name in names), return_exceptions=True
        )
        result = ConnectAllResult()
        for name, outcome in zip(names, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                result.failures[name] = str(outcome)
            else:
                result.tools[name] = outcome
        return result

    async def disconnect(self, name: str) -> None:
        """Close one connection, rejecting its pending requests."""
        await self._teardown(name)

    async def disconnect_all(self) -> None:
        """Close every connection (process-wide shutdown)."""
        await asyncio.gather(*(self._teardown(name) for name in list(self._connections)))

    async def _teardown(self, name: str) -> None:
        conn = self._connections.pop(name, None)
        if conn is not None:
            await conn.close()

    def _create_connection(self, name: str, config: MCPServerConfig) -> MCPConnection:
        """Build the connection for one server."""
        return StdioConnection(
            name,
            config,
            self._ids,
            request_timeout=self._request_timeout,
            ready_timeout=self._ready_timeout,
        )

    # -- protocol ------------------------------------------------------------------

    async def _handshake(self, conn: MCPConnection) -> None:
        """Perform the MCP initialize handshake."""
        await conn.request(
            "initialize",
            {
                "protocolVersion": MCP_PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": self._client_name, "version": __version__},
            },
        )
        await conn.notify("notifications/initialized")

    async def _list_tools(self, conn: MCPConnection) -> list[MCPToolDef]:
        result = await conn.request("tools/list")
        raw_tools = result.get("tools", []) if isinstance(result, dict) else []
        if raw_tools is None:
            return []
        if not isinstance(raw_tools, list):
            msg = f"tools/list returned {type(raw_tools).__name__} instead of a list"
            raise ProtocolError(msg)
        return [MCPToolDef.model_validate(raw) for raw in raw_tools]

    async def call_tool(
        self,
        server: str,
        tool: str,
        arguments: dict[str, Any],
        *,
        timeout: float | None = None,
    ) -> MCPToolResult:
        """Send ``tools/call`` to a ready server.

        Raises:
            ServerNotReadyError: If the server has not completed discovery.
            RPCError: If the server returns a JSON-RPC error.
            RequestTimeoutError: If no response arrives in time.
        """
        conn = self._connections.get(server)
        if conn is None or conn.state is not ConnectionState.READY:
            raise ServerNotReadyError(server)

        with _tracer.start_as_current_span("mcp.call_tool") as span:
            span.set_attribute(ATTR_TOOL_SERVER, server)
            span.set_attribute(ATTR_TOOL_NAME, tool)
            span.set_attribute(ATTR_RPC_METHOD, "tools/call")
            result = await conn.request(
                "tools/call", {"name": tool, "arguments": arguments}, timeout=timeout
            )
        if not isinstance(result, dict):
            return MCPToolResult()
        return MCPToolResult.model_validate(result)

    # -- introspection ---------------------------------------------------------------

    def is_connected(self, name: str) -> bool:
        conn = self._connections.get(name)
        return conn is not None and conn.state is ConnectionState.READY

    def all_tools(self) -> list[tuple[str, MCPToolDef]]:
        """Return ``(server, tool)`` pairs across every ready connection."""
        return [
            (name, tool)
            for name, conn in self._connections.items()
            if conn.state is ConnectionState.READY
            for tool in conn.tools
        ]

    def find_tool_server(self, tool_name: str) -> str | None:
        """Return the first ready server offering *tool_name*."""
        for name, tool in self.all_tools():
            if tool.name == tool_name:
                return name
        return None

    def server_status(self) -> list[ServerStatus]:
        """One status row per configured server."""
        rows: list[ServerStatus] = []
        for name in self.config.servers:
            conn = self._connections.get(name)
            ready = conn is not None and conn.state is ConnectionState.READY
            rows.append(
                ServerStatus(name=name, ready=ready, tool_count=len(conn.tools) if ready and conn else 0)
            )
        return rows

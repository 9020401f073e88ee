"""Stdio transport — one tool-server subprocess and its JSON-RPC channel.

A :class:`StdioConnection` owns the subprocess handle and its three
standard streams. stdout feeds a :class:`RequestCorrelator`; stderr is
surfaced as diagnostic ``log`` events and never parsed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from tether.protocols.errors import ConnectionClosedError, ConnectionError
from tether.protocols.mcp.correlator import IdAllocator, RequestCorrelator
from tether.protocols.mcp.framing import encode_message
from tether.protocols.mcp.models import (
    ConnectionState,
    JsonRpcNotification,
    JsonRpcRequest,
    MCPServerConfig,
    MCPToolDef,
    ServerEvent,
)

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 60.0
DEFAULT_READY_TIMEOUT = 5.0
DEFAULT_KILL_GRACE = 2.0

_READ_CHUNK_SIZE = 65536

EventListener = Callable[[ServerEvent], None]


@runtime_checkable
class MCPConnection(Protocol):
    """What :class:`~tether.protocols.mcp.client.MCPClient` needs from a connection."""

    name: str
    tools: list[MCPToolDef]

    @property
    def state(self) -> ConnectionState: ...
    def add_listener(self, listener: EventListener) -> None: ...
    def mark_ready(self, tools: list[MCPToolDef]) -> None: ...
    async def start(self) -> None: ...
    async def wait_until_live(self) -> None: ...
    async def request(
        self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None
    ) -> Any: ...
    async def notify(self, method: str, params: dict[str, Any] | None = None) -> None: ...
    async def close(self) -> None: ...


class StdioConnection:
    """Communicates with a tool server via subprocess stdin/stdout.

    Usage::

        ids = IdAllocator()
        conn = StdioConnection("fs", MCPServerConfig(command="npx", args=[...]), ids)
        await conn.start()
        await conn.wait_until_live()
        result = await conn.request("tools/list")
        await conn.close()
    """

    def __init__(
        self,
        name: str,
        config: MCPServerConfig,
        ids: IdAllocator,
        *,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        ready_timeout: float = DEFAULT_READY_TIMEOUT,
        kill_grace: float = DEFAULT_KILL_GRACE,
    ) -> None:
        self.name = name
        self.config = config
        self.tools: list[MCPToolDef] = []
        self._request_timeout = request_timeout
        self._ready_timeout = ready_timeout
        self._kill_grace = kill_grace
        self._correlator = RequestCorrelator(
            ids, label=name, on_notification=self._on_notification
        )
        self._process: asyncio.subprocess.Process | None = None
        self._state = ConnectionState.STARTING
        self._listeners: list[EventListener] = []
        self._live = asyncio.Event()
        self._closing = False
        self._readers: list[asyncio.Task[None]] = []

    # -- observers ---------------------------------------------------------

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    def _emit(self, kind: str, **data: Any) -> None:
        event = ServerEvent(kind=kind, server=self.name, data=data)  # type: ignore[arg-type]
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener failed for %s event from %s", kind, self.name)

    # -- state ---------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def pending_ids(self) -> frozenset[int]:
        return self._correlator.pending_ids

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    def mark_ready(self, tools: list[MCPToolDef]) -> None:
        self.tools = list(tools)
        self._state = ConnectionState.READY

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Launch the subprocess and start pumping its output streams."""
        env = {**os.environ, **self.config.env}
        try:
            self._process = await asyncio.create_subprocess_exec(
                self.config.command,
                *self.config.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as exc:
            self._state = ConnectionState.FAILED
            self._emit("error", error=str(exc))
            msg = f"Failed to start tool server {self.name!r}: {exc}"
            raise ConnectionError(msg) from exc

        self._readers = [
            asyncio.create_task(self._pump_stdout(), name=f"{self.name}-stdout"),
            asyncio.create_task(self._pump_stderr(), name=f"{self.name}-stderr"),
        ]

    async def wait_until_live(self) -> None:
        """Wait for the first stdout byte, falling back after the grace period.

        Output is only a heuristic liveness signal: a server that stays silent
        until it receives a request is still allowed to proceed once
        ``ready_timeout`` elapses.
        """
        try:
            await asyncio.wait_for(self._live.wait(), self._ready_timeout)
        except TimeoutError:
            logger.warning(
                "No output from %s within %.1fs; proceeding with handshake",
                self.name,
                self._ready_timeout,
            )
        if self._state in (ConnectionState.CLOSED, ConnectionState.FAILED):
            code = self._process.returncode if self._process is not None else None
            msg = f"Tool server {self.name!r} exited during startup (code {code})"
            raise ConnectionError(msg)

    async def close(self) -> None:
        """Reject pending requests, close stdin, and reap the subprocess."""
        self._closing = True
        self._correlator.reject_all(ConnectionClosedError(self.name))
        process = self._process
        if process is None:
            self._state = ConnectionState.CLOSED
            return

        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()

        if process.returncode is None:
            try:
                await asyncio.wait_for(process.wait(), self._kill_grace)
            except TimeoutError:
                logger.debug("Killing tool server %s after %.1fs", self.name, self._kill_grace)
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        for task in self._readers:
            if not task.done():
                task.cancel()
        await asyncio.gather(*self._readers, return_exceptions=True)
        self._readers = []
        self._state = ConnectionState.CLOSED

    # -- messaging -----------------------------------------------------------

    async def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Send a JSON-RPC request and wait for its result."""
        self._ensure_open()
        request_id, future = self._correlator.open_request()
        message = JsonRpcRequest(id=request_id, method=method, params=params or {})
        try:
            await self._write(message.model_dump())
        except BaseException:
            self._correlator.discard(request_id)
            raise
        return await self._correlator.wait(
            request_id,
            future,
            timeout=timeout if timeout is not None else self._request_timeout,
            method=method,
        )

    async def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a JSON-RPC notification; no response is expected."""
        self._ensure_open()
        await self._write(JsonRpcNotification(method=method, params=params or {}).model_dump())

    def _ensure_open(self) -> None:
        if self._process is None or self._state in (ConnectionState.CLOSED, ConnectionState.FAILED):
            raise ConnectionClosedError(self.name, "is not connected")

    async def _write(self, message: dict[str, Any]) -> None:
        assert self._process is not None
        stdin = self._process.stdin
        if stdin is None or stdin.is_closing():
            raise ConnectionClosedError(self.name)
        try:
            stdin.write(encode_message(message))
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise ConnectionClosedError(self.name, f"write failed: {exc}") from exc

    # -- stream pumps ----------------------------------------------------------

    async def _pump_stdout(self) -> None:
        assert self._process is not None and self._process.stdout is not None
        stdout = self._process.stdout
        while True:
            chunk = await stdout.read(_READ_CHUNK_SIZE)
            if not chunk:
                break
            self._live.set()
            self._correlator.feed(chunk)
        code = await self._process.wait()
        self._on_exit(code)

    async def _pump_stderr(self) -> None:
        assert self._process is not None and self._process.stderr is not None
        stderr = self._process.stderr
        partial = b""
        while True:
            chunk = await stderr.read(_READ_CHUNK_SIZE)
            if not chunk:
                break
            *lines, partial = (partial + chunk).split(b"\n")
            for raw in lines:
                self._log_stderr(raw)
        self._log_stderr(partial)

    def _log_stderr(self, raw: bytes) -> None:
        line = raw.decode("utf-8", errors="replace").strip()
        if line:
            logger.debug("[%s stderr] %s", self.name, line)
            self._emit("log", message=line)

    def _on_notification(self, message: dict[str, Any]) -> None:
        self._emit("notification", message=message)

    def _on_exit(self, code: int | None) -> None:
        self._correlator.reject_all(ConnectionClosedError(self.name, f"exited with code {code}"))
        self._state = ConnectionState.CLOSED if self._closing else ConnectionState.FAILED
        self._live.set()
        self._emit("exit", code=code)

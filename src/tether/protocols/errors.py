"""Shared error types for the protocol layer."""

from __future__ import annotations

from typing import Any


class ProtocolError(Exception):
    """Base error for all protocol-layer failures."""


class ConfigError(ProtocolError):
    """The tool-server configuration file could not be read or validated."""


class ConnectionError(ProtocolError):
    """Failed to start or talk to a tool-server subprocess."""


class ConnectionClosedError(ConnectionError):
    """The connection went away while a request was outstanding."""

    def __init__(self, server: str, detail: str = "disconnected") -> None:
        self.server = server
        self.detail = detail
        super().__init__(f"Server {server!r} {detail}")


class RequestTimeoutError(ProtocolError):
    """No response arrived before the request deadline.

    Call-scoped: the connection itself stays open.
    """

    def __init__(self, server: str, method: str, timeout: float) -> None:
        self.server = server
        self.method = method
        self.timeout = timeout
        super().__init__(f"Request timed out after {timeout}s: {method} ({server})")


class RPCError(ProtocolError):
    """The server answered with a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"RPC error {code}: {message}")


class ServerNotConfiguredError(ProtocolError):
    """No server with this name exists in the configuration."""

    def __init__(self, server: str) -> None:
        self.server = server
        super().__init__(f"Tool server not configured: {server}")


class ServerNotReadyError(ProtocolError):
    """The server has not completed its handshake (or has gone away)."""

    def __init__(self, server: str) -> None:
        self.server = server
        super().__init__(f"Tool server not connected: {server}")


class DiscoveryError(ProtocolError):
    """Handshake or tool listing failed for one server."""

    def __init__(self, server: str, detail: str = "") -> None:
        self.server = server
        self.detail = detail
        super().__init__(f"Discovery failed for {server}" + (f": {detail}" if detail else ""))


class ToolNotFoundError(ProtocolError):
    """Requested capability does not exist in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool not found: {name}")

"""Protocol layer — capability registry and the MCP stdio client."""

from tether.protocols.errors import (
    ConfigError,
    ConnectionClosedError,
    ConnectionError,
    DiscoveryError,
    ProtocolError,
    RequestTimeoutError,
    RPCError,
    ServerNotConfiguredError,
    ServerNotReadyError,
    ToolNotFoundError,
)
from tether.protocols.registry import CapabilityDescriptor, CapabilityRegistry, object_schema

__all__ = [
    "CapabilityDescriptor",
    "CapabilityRegistry",
    "ConfigError",
    "ConnectionClosedError",
    "ConnectionError",
    "DiscoveryError",
    "ProtocolError",
    "RPCError",
    "RequestTimeoutError",
    "ServerNotConfiguredError",
    "ServerNotReadyError",
    "ToolNotFoundError",
    "object_schema",
]

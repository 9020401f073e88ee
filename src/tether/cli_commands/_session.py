"""Shared wiring for commands that need a registry and tool servers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from tether.protocols.mcp.bridge import MCPBridge
from tether.protocols.mcp.client import MCPClient
from tether.protocols.registry import CapabilityRegistry
from tether.tools.builtin import register_builtin_tools


@dataclass
class Session:
    client: MCPClient
    registry: CapabilityRegistry
    bridge: MCPBridge
    failures: dict[str, str] = field(default_factory=dict)


@asynccontextmanager
async def open_session(config_path: str | None, *, use_mcp: bool = True) -> AsyncIterator[Session]:
    """Build the registry (built-ins plus discovered server tools); disconnect on exit."""
    registry = CapabilityRegistry()
    register_builtin_tools(registry)
    client = MCPClient(config_path=config_path)
    bridge = MCPBridge(client, registry)
    session = Session(client=client, registry=registry, bridge=bridge)
    try:
        if use_mcp and client.has_servers():
            result = await client.connect_all()
            session.failures = result.failures
            for server, tools in result.tools.items():
                bridge.register_server(server, tools)
        yield session
    finally:
        bridge.unregister_all()
        await client.disconnect_all()

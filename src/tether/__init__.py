"""Tether — a tool-using conversational agent wired to MCP tool servers over stdio."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from tether.core.interface.client import ModelClient as ModelClient
    from tether.core.orchestration.loop import ReActAgent as ReActAgent
    from tether.protocols.mcp.bridge import MCPBridge as MCPBridge
    from tether.protocols.mcp.client import MCPClient as MCPClient
    from tether.protocols.registry import CapabilityRegistry as CapabilityRegistry

_LAZY_EXPORTS = {
    "CapabilityRegistry": "tether.protocols.registry",
    "MCPBridge": "tether.protocols.mcp.bridge",
    "MCPClient": "tether.protocols.mcp.client",
    "ModelClient": "tether.core.interface.client",
    "ReActAgent": "tether.core.orchestration.loop",
}


def __getattr__(name: str) -> object:
    module_path = _LAZY_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'tether' has no attribute {name!r}")

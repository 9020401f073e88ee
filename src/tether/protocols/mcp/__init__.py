"""MCP protocol — stdio tool-server client and registry bridge."""

from tether.protocols.mcp.bridge import MCPBridge, ToolCallLog, ToolCallRecord, namespaced_name
from tether.protocols.mcp.client import ConnectAllResult, MCPClient
from tether.protocols.mcp.config import load_config
from tether.protocols.mcp.correlator import IdAllocator, RequestCorrelator
from tether.protocols.mcp.framing import LineFramer
from tether.protocols.mcp.models import (
    ConnectionState,
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    MCPConfig,
    MCPServerConfig,
    MCPToolDef,
    MCPToolResult,
    ServerEvent,
    ServerStatus,
)
from tether.protocols.mcp.transport import MCPConnection, StdioConnection

__all__ = [
    "ConnectAllResult",
    "ConnectionState",
    "IdAllocator",
    "JsonRpcError",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "LineFramer",
    "MCPBridge",
    "MCPClient",
    "MCPConfig",
    "MCPConnection",
    "MCPServerConfig",
    "MCPToolDef",
    "MCPToolResult",
    "RequestCorrelator",
    "ServerEvent",
    "ServerStatus",
    "StdioConnection",
    "ToolCallLog",
    "ToolCallRecord",
    "load_config",
    "namespaced_name",
]

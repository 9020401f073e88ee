"""MCP models — JSON-RPC 2.0 messages, server config, and tool payloads.

Implements the message format used by the Model Context Protocol stdio
transport: ``initialize`` → ``notifications/initialized`` → ``tools/list``
→ ``tools/call``.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

MCP_PROTOCOL_VERSION = "2024-11-05"

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcRequest(BaseModel):
    """A JSON-RPC 2.0 request message."""

    jsonrpc: str = "2.0"
    id: int
    method: str
    params: dict[str, Any] = {}


class JsonRpcNotification(BaseModel):
    """A JSON-RPC 2.0 notification (no id, no response expected)."""

    jsonrpc: str = "2.0"
    method: str
    params: dict[str, Any] = {}


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response message."""

    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: Any = None
    error: JsonRpcError | None = None


# ---------------------------------------------------------------------------
# Server configuration (.mcp.json)
# ---------------------------------------------------------------------------


class MCPServerConfig(BaseModel):
    """Launch recipe for one tool server."""

    command: str
    args: list[str] = []
    env: dict[str, str] = {}


class MCPConfig(BaseModel):
    """The whole configuration file: server name → launch recipe."""

    model_config = ConfigDict(populate_by_name=True)

    servers: dict[str, MCPServerConfig] = Field(default_factory=dict, alias="mcpServers")


# ---------------------------------------------------------------------------
# MCP-specific payloads
# ---------------------------------------------------------------------------


class MCPToolDef(BaseModel):
    """A tool definition as returned by ``tools/list``."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")

    def parameters(self) -> dict[str, Any]:
        """Normalise ``inputSchema`` into a function-calling parameter schema."""
        params: dict[str, Any] = {
            "type": "object",
            "properties": self.input_schema.get("properties") or {},
        }
        required = self.input_schema.get("required")
        if required:
            params["required"] = list(required)
        return params


class MCPContent(BaseModel):
    """One item of a ``tools/call`` result."""

    model_config = ConfigDict(extra="allow")

    type: str = "text"
    text: str | None = None


class MCPToolResult(BaseModel):
    """The ``result`` of a ``tools/call`` request."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    content: list[MCPContent] = []
    is_error: bool = Field(default=False, alias="isError")

    def to_text(self) -> str:
        """Flatten the result into the single string handed to the model.

        Text items contribute their text; any other item is rendered as JSON.
        An empty result falls back to the JSON of the whole payload.
        """
        if not self.content:
            return json.dumps(self.model_dump(by_alias=True, exclude_none=True))
        return "\n".join(
            item.text if item.text else json.dumps(item.model_dump(exclude_none=True))
            for item in self.content
        )


# ---------------------------------------------------------------------------
# Connection lifecycle and diagnostics
# ---------------------------------------------------------------------------


class ConnectionState(str, Enum):
    """Liveness of a tool-server connection."""

    STARTING = "starting"
    READY = "ready"
    CLOSED = "closed"
    FAILED = "failed"


class ServerEvent(BaseModel):
    """A diagnostic event emitted by a connection or the client.

    Kinds:
    - log: a line the server wrote to stderr
    - notification: a message that did not resolve a pending request
    - exit: the subprocess exited
    - error: spawn or discovery failure
    - ready: handshake and discovery completed
    """

    kind: Literal["log", "notification", "exit", "error", "ready"]
    server: str
    data: dict[str, Any] = {}


class ServerStatus(BaseModel):
    """Status row for one configured server."""

    name: str
    ready: bool = False
    tool_count: int = 0

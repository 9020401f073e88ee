"""Shared fixtures and helpers."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from tether.protocols.mcp.models import MCPConfig, MCPServerConfig

ECHO_SERVER = Path(__file__).parent / "fixtures" / "echo_server.py"


def echo_server_config(*flags: str) -> MCPServerConfig:
    """Launch recipe for the stub tool server."""
    return MCPServerConfig(command=sys.executable, args=[str(ECHO_SERVER), *flags])


def make_mock_litellm_response(
    content: str = "",
    tool_calls: list[Any] | None = None,
    finish_reason: str = "stop",
    model: str = "openai/gpt-4o",
) -> MagicMock:
    """Create a ``MagicMock`` matching LiteLLM's response structure.

    The mock mirrors ``choices[0].message`` with content, tool_calls,
    plus top-level ``usage`` and ``model`` attributes.
    """
    message = MagicMock()
    message.content = content or None
    message.tool_calls = tool_calls

    choice = MagicMock()
    choice.message = message
    choice.finish_reason = finish_reason

    usage = MagicMock()
    usage.prompt_tokens = 10
    usage.completion_tokens = 20
    usage.total_tokens = 30

    response = MagicMock()
    response.choices = [choice]
    response.usage = usage
    response.model = model

    return response


def make_mock_tool_call(call_id: str, name: str, arguments: dict[str, Any] | str) -> MagicMock:
    """A LiteLLM-style tool call object."""
    tc = MagicMock()
    tc.id = call_id
    tc.function.name = name
    tc.function.arguments = arguments if isinstance(arguments, str) else json.dumps(arguments)
    return tc


@pytest.fixture
def echo_config() -> MCPConfig:
    return MCPConfig(servers={"echo": echo_server_config()})


@pytest.fixture
def mcp_config_file(tmp_path: Path) -> Path:
    """A ``.mcp.json`` pointing at the stub server."""
    path = tmp_path / ".mcp.json"
    server = echo_server_config()
    path.write_text(
        json.dumps({"mcpServers": {"echo": {"command": server.command, "args": server.args}}}),
        encoding="utf-8",
    )
    return path

"""Tool-server configuration loading (``.mcp.json``).

The file maps server names to launch recipes::

    {
      "mcpServers": {
        "filesystem": {
          "command": "npx",
          "args": ["-y", "@modelcontextprotocol/server-filesystem", "."],
          "env": {"DEBUG": "0"}
        }
      }
    }

YAML files (``.yaml`` / ``.yml``) with the same structure are accepted too.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from tether.protocols.errors import ConfigError
from tether.protocols.mcp.models import MCPConfig

DEFAULT_CONFIG_NAME = ".mcp.json"


def default_config_path() -> Path:
    """Return ``$TETHER_MCP_CONFIG`` or ``./.mcp.json``."""
    override = os.environ.get("TETHER_MCP_CONFIG")
    return Path(override) if override else Path.cwd() / DEFAULT_CONFIG_NAME


def load_config(path: str | Path | None = None) -> MCPConfig:
    """Read and validate a tool-server configuration file.

    A missing file means "zero servers configured" and is not an error.
    Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
    before parsing.

    Raises:
        ConfigError: If the file exists but cannot be read, parsed, or validated.
    """
    config_path = Path(path) if path is not None else default_config_path()

    try:
        raw = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return MCPConfig()
    except OSError as exc:
        raise ConfigError(f"Cannot read {config_path}: {exc}") from exc

    expanded = os.path.expandvars(raw)

    data: Any
    try:
        if config_path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(expanded)
        else:
            data = json.loads(expanded)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Failed to parse {config_path}: {exc}") from exc

    if data is None:
        return MCPConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")

    try:
        return MCPConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

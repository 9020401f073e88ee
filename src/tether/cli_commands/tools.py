"""``tether tools`` and ``tether servers`` — inspect the registry and tool servers."""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING

import click
from rich.markup import escape

from tether.cli_commands._output import console, print_servers_table, print_tools_table
from tether.protocols.errors import ProtocolError

if TYPE_CHECKING:
    from tether.protocols.mcp.models import ServerStatus

_CONFIG_HELP = "Tool server config file (default: $TETHER_MCP_CONFIG or ./.mcp.json)."


@click.group()
def tools() -> None:
    """Inspect available tools."""


@tools.command("list")
@click.option("--config", "-c", "config_path", default=None, help=_CONFIG_HELP)
@click.option("--no-mcp", is_flag=True, help="Show built-in tools only.")
def list_tools(config_path: str | None, no_mcp: bool) -> None:
    """List built-in and discovered tools."""
    from tether.cli_commands._session import open_session

    async def _list() -> tuple[list[dict[str, object]], dict[str, str]]:
        async with open_session(config_path, use_mcp=not no_mcp) as session:
            return session.registry.schemas(), session.failures

    try:
        schemas, failures = asyncio.run(_list())
    except ProtocolError as exc:
        console.print(f"[red]Discovery error:[/red] {escape(str(exc))}")
        sys.exit(1)

    for server, error in failures.items():
        console.print(f"[yellow]Server {server} unavailable:[/yellow] {escape(error)}")
    print_tools_table(schemas)


@click.command()
@click.option("--config", "-c", "config_path", default=None, help=_CONFIG_HELP)
def servers(config_path: str | None) -> None:
    """Connect to every configured tool server and show its status."""
    from tether.protocols.mcp.client import MCPClient

    async def _status() -> tuple[list[ServerStatus], dict[str, str]]:
        async with MCPClient(config_path=config_path) as client:
            result = await client.connect_all()
            return client.server_status(), result.failures

    try:
        statuses, failures = asyncio.run(_status())
    except ProtocolError as exc:
        console.print(f"[red]Config error:[/red] {escape(str(exc))}")
        sys.exit(1)

    if not statuses:
        console.print("[yellow]No tool servers configured.[/yellow]")
        return
    print_servers_table(statuses, failures)

"""Shared CLI output formatters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from tether.protocols.mcp.bridge import ToolCallRecord
    from tether.protocols.mcp.models import ServerStatus

console = Console()


def setup_logging(verbose: bool) -> None:
    """Route library logging through rich; DEBUG when *verbose*, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def print_tools_table(tools: list[dict[str, Any]]) -> None:
    """Pretty-print a list of tool schemas as a table."""
    table = Table(title="Available Tools")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Description")

    for tool in tools:
        func = tool.get("function", {})
        table.add_row(
            func.get("name", "?"),
            escape(_truncate(func.get("description", ""))),
        )

    console.print(table)


def print_servers_table(statuses: list[ServerStatus], failures: dict[str, str] | None = None) -> None:
    """Pretty-print server connection status."""
    failures = failures or {}
    table = Table(title="Tool Servers")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Tools", justify="right")
    table.add_column("Error")

    for status in statuses:
        state = "[green]ready[/green]" if status.ready else "[red]offline[/red]"
        table.add_row(
            status.name,
            state,
            str(status.tool_count),
            escape(_truncate(failures.get(status.name, ""))),
        )

    console.print(table)


def print_tool_log(records: list[ToolCallRecord]) -> None:
    """Pretty-print recent bridged tool calls, oldest first."""
    if not records:
        console.print("[yellow]No tool calls yet.[/yellow]")
        return

    table = Table(title="Recent Tool Calls")
    table.add_column("Time")
    table.add_column("Server", style="cyan", no_wrap=True)
    table.add_column("Tool", style="cyan", no_wrap=True)
    table.add_column("OK")
    table.add_column("ms", justify="right")
    table.add_column("Result")

    for record in records:
        table.add_row(
            record.timestamp.strftime("%H:%M:%S"),
            record.server,
            record.tool,
            "[green]yes[/green]" if record.success else "[red]no[/red]",
            f"{record.duration_ms:.0f}",
            escape(_truncate(record.result.replace("\n", " "), 60)),
        )

    console.print(table)


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."

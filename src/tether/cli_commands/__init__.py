"""CLI subcommand registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all subcommands on the CLI group."""
    from tether.cli_commands.chat import chat
    from tether.cli_commands.tools import servers, tools

    cli.add_command(chat)
    cli.add_command(servers)
    cli.add_command(tools)

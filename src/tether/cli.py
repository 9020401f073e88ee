"""Tether CLI entrypoint."""

from __future__ import annotations

import click

from tether import __version__


@click.group()
@click.version_option(version=__version__, prog_name="tether")
def main() -> None:
    """Tether — chat with a tool-using agent backed by MCP servers."""


# Register subcommands
from tether.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()

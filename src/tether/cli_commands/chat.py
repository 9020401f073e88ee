"""``tether chat`` — one-shot question or an interactive session."""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING

import click
from rich.markup import escape

from tether.cli_commands._output import (
    console,
    print_tool_log,
    print_tools_table,
    setup_logging,
)
from tether.protocols.errors import ProtocolError

if TYPE_CHECKING:
    from tether.cli_commands._session import Session
    from tether.core.orchestration.loop import ReActAgent

REPL_HELP = "Commands: /reset clears the conversation, /log shows tool calls, /tools lists tools, /exit quits."


@click.command()
@click.argument("message", required=False)
@click.option("--model", "-m", default=None, help="LiteLLM model string (default: $TETHER_MODEL).")
@click.option(
    "--config",
    "-c",
    "config_path",
    default=None,
    help="Tool server config file (default: $TETHER_MCP_CONFIG or ./.mcp.json).",
)
@click.option("--max-iterations", type=int, default=20, show_default=True, help="Reasoning step bound.")
@click.option("--max-tokens", type=int, default=24000, show_default=True, help="Compaction threshold.")
@click.option("--no-mcp", is_flag=True, help="Use built-in tools only.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--telemetry", is_flag=True, help="Export spans to the console.")
def chat(
    message: str | None,
    model: str | None,
    config_path: str | None,
    max_iterations: int,
    max_tokens: int,
    no_mcp: bool,
    verbose: bool,
    telemetry: bool,
) -> None:
    """Ask MESSAGE and print the answer, or start an interactive session."""
    setup_logging(verbose)
    if telemetry:
        from tether.utils.telemetry import configure_telemetry

        try:
            configure_telemetry()
        except ImportError as exc:
            console.print(f"[red]Telemetry error:[/red] {escape(str(exc))}")
            sys.exit(1)

    try:
        asyncio.run(
            _chat(
                message,
                model=model,
                config_path=config_path,
                max_iterations=max_iterations,
                max_tokens=max_tokens,
                use_mcp=not no_mcp,
            )
        )
    except ProtocolError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(1)


async def _chat(
    message: str | None,
    *,
    model: str | None,
    config_path: str | None,
    max_iterations: int,
    max_tokens: int,
    use_mcp: bool,
) -> None:
    from tether.cli_commands._session import open_session
    from tether.core.context.compactor import CompactionConfig, HistoryCompactor
    from tether.core.interface.client import ModelClient
    from tether.core.interface.config import ModelConfig
    from tether.core.orchestration.loop import ReActAgent
    from tether.core.orchestration.models import AgentConfig

    backend = ModelClient(ModelConfig.from_env(model=model))
    async with open_session(config_path, use_mcp=use_mcp) as session:
        for server, error in session.failures.items():
            console.print(f"[yellow]Server {server} unavailable:[/yellow] {escape(error)}")

        agent = ReActAgent(
            backend,
            session.registry,
            config=AgentConfig(max_iterations=max_iterations),
            compactor=HistoryCompactor(backend, CompactionConfig(max_tokens=max_tokens)),
        )
        if message:
            console.print(await agent.chat(message), markup=False)
            return
        await _repl(agent, session)


async def _repl(agent: ReActAgent, session: Session) -> None:
    console.print(f"[bold]tether[/bold] with {len(session.registry)} tools. {REPL_HELP}")
    while True:
        try:
            line = await asyncio.to_thread(click.prompt, ">", prompt_suffix=" ")
        except (EOFError, click.Abort):
            break
        line = line.strip()
        if not line:
            continue
        if line in ("/exit", "/quit"):
            break
        if line == "/reset":
            agent.reset()
            console.print("[green]Conversation cleared.[/green]")
        elif line == "/log":
            print_tool_log(session.bridge.log.recent())
        elif line == "/tools":
            print_tools_table(session.registry.schemas())
        elif line.startswith("/"):
            console.print(f"[yellow]Unknown command {line}.[/yellow] {REPL_HELP}")
        else:
            with console.status("thinking..."):
                answer = await agent.chat(line)
            console.print(answer, markup=False)

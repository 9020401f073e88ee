"""Built-in ``run_shell_command`` tool.

Commands run on the host through the system shell with no isolation. A
small blocklist refuses obviously destructive commands; it is a guard
against accidents, not a security boundary.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tether.protocols.registry import object_schema

if TYPE_CHECKING:
    from tether.protocols.registry import CapabilityRegistry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30_000

BLOCKED_COMMANDS = (
    "rm -rf /",
    "rm -rf ~",
    "mkfs",
    "dd if=",
    ":(){:|:&};:",
    "> /dev/sda",
    "chmod -r 777 /",
    "chown -r",
)


def _blocked(command: str) -> str | None:
    lowered = command.lower()
    for pattern in BLOCKED_COMMANDS:
        if pattern in lowered:
            return pattern
    return None


def _timeout_seconds(raw: Any) -> float:
    if raw is None or raw == "":
        return DEFAULT_TIMEOUT_MS / 1000
    millis = float(raw)
    if millis <= 0:
        msg = "'timeout' must be a positive number of milliseconds"
        raise ValueError(msg)
    return millis / 1000


async def run_shell_command(arguments: dict[str, Any], *, root: Path) -> str:
    """Run ``command`` in ``cwd`` (relative to *root*) and report its output.

    A non-zero exit status, a timeout, or a blocked command all come back
    as ``{"success": false, ...}`` payloads.
    """
    command = arguments.get("command")
    if not isinstance(command, str) or not command.strip():
        return json.dumps({"success": False, "error": "'command' must be a non-empty string"})

    pattern = _blocked(command)
    if pattern is not None:
        logger.warning("Refused blocked shell command: %s", command)
        return json.dumps(
            {"success": False, "command": command, "error": f"Blocked dangerous command ({pattern})"}
        )

    try:
        timeout = _timeout_seconds(arguments.get("timeout"))
        cwd = (root / arguments["cwd"]).resolve() if arguments.get("cwd") else root
        if not cwd.is_dir():
            msg = f"Not a directory: {cwd}"
            raise NotADirectoryError(msg)
    except (OSError, TypeError, ValueError) as exc:
        return json.dumps({"success": False, "command": command, "error": str(exc)})

    logger.info("Running shell command in %s: %s", cwd, command)
    try:
        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
    except OSError as exc:
        return json.dumps({"success": False, "command": command, "error": str(exc)})

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        return json.dumps(
            {
                "success": False,
                "command": command,
                "error": f"Command timed out after {timeout:g}s",
                "exitCode": proc.returncode,
            }
        )

    payload: dict[str, Any] = {
        "success": proc.returncode == 0,
        "command": command,
        "stdout": stdout.decode(errors="replace").strip(),
        "stderr": stderr.decode(errors="replace").strip(),
        "exitCode": proc.returncode,
    }
    if proc.returncode != 0:
        payload["error"] = f"Command exited with code {proc.returncode}"
    return json.dumps(payload)


def register_shell_tools(registry: CapabilityRegistry, root: Path | None = None) -> list[str]:
    """Register ``run_shell_command``, running commands under *root* (cwd by default)."""
    base = (root or Path.cwd()).resolve()

    async def execute(arguments: dict[str, Any]) -> str:
        return await run_shell_command(arguments, root=base)

    registry.register(
        "run_shell_command",
        "Run a shell command and return its stdout, stderr and exit code.",
        object_schema(
            {
                "command": {"type": "string", "description": "Shell command to run"},
                "cwd": {"type": "string", "description": "Working directory, cwd by default"},
                "timeout": {
                    "type": "integer",
                    "description": f"Timeout in milliseconds, {DEFAULT_TIMEOUT_MS} by default",
                },
            },
            required=["command"],
        ),
        execute,
    )
    return ["run_shell_command"]

"""Tests for the built-in shell tool."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from tether.protocols.registry import CapabilityRegistry
from tether.tools.shell import register_shell_tools, run_shell_command

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell commands")


async def _run(root: Path, **arguments: object) -> dict:
    return json.loads(await run_shell_command(dict(arguments), root=root))


class TestRunShellCommand:
    async def test_captures_stdout_and_stderr(self, tmp_path: Path) -> None:
        result = await _run(tmp_path, command="echo hello; echo oops >&2")
        assert result["success"] is True
        assert result["stdout"] == "hello"
        assert result["stderr"] == "oops"
        assert result["exitCode"] == 0

    async def test_runs_in_root_and_cwd(self, tmp_path: Path) -> None:
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "marker.txt").write_text("")
        result = await _run(tmp_path, command="ls", cwd="sub")
        assert result["stdout"] == "marker.txt"

    async def test_non_zero_exit(self, tmp_path: Path) -> None:
        result = await _run(tmp_path, command="echo partial; exit 4")
        assert result["success"] is False
        assert result["exitCode"] == 4
        assert result["stdout"] == "partial"
        assert "code 4" in result["error"]

    async def test_timeout(self, tmp_path: Path) -> None:
        result = await _run(tmp_path, command="sleep 5", timeout=200)
        assert result["success"] is False
        assert "timed out" in result["error"]

    @pytest.mark.parametrize("command", ["rm -rf /", "sudo MKFS.ext4 /dev/sdb", "dd if=/dev/zero of=x"])
    async def test_blocked_commands(self, tmp_path: Path, command: str) -> None:
        result = await _run(tmp_path, command=command)
        assert result["success"] is False
        assert "Blocked" in result["error"]

    async def test_missing_command(self, tmp_path: Path) -> None:
        result = await _run(tmp_path)
        assert result == {"success": False, "error": "'command' must be a non-empty string"}

    async def test_bad_cwd(self, tmp_path: Path) -> None:
        result = await _run(tmp_path, command="pwd", cwd="missing")
        assert result["success"] is False
        assert "Not a directory" in result["error"]


class TestRegistration:
    async def test_registered_executor(self, tmp_path: Path) -> None:
        registry = CapabilityRegistry()
        assert register_shell_tools(registry, root=tmp_path) == ["run_shell_command"]
        descriptor = registry.get("run_shell_command")
        assert descriptor is not None
        assert descriptor.parameters["required"] == ["command"]

        result = json.loads(await registry.execute("run_shell_command", {"command": "echo hi"}))
        assert result["stdout"] == "hi"

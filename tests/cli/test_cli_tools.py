"""Tests for ``tether tools`` and ``tether servers`` CLI commands."""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner

from tether.cli import main


class TestToolsList:
    def test_builtin_tools(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["tools", "list", "--no-mcp"])

        assert result.exit_code == 0
        assert "read_file" in result.output
        assert "write_file" in result.output
        assert "list_directory" in result.output

    def test_discovered_tools(self, mcp_config_file: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["tools", "list", "--config", str(mcp_config_file)])

        assert result.exit_code == 0
        assert "mcp_echo_echo" in result.output
        assert "read_file" in result.output

    def test_invalid_config(self, tmp_path: Path) -> None:
        bad = tmp_path / ".mcp.json"
        bad.write_text("{broken")
        runner = CliRunner()
        result = runner.invoke(main, ["tools", "list", "--config", str(bad)])

        assert result.exit_code == 1
        assert "Discovery error" in result.output


class TestServers:
    def test_status_table(self, mcp_config_file: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["servers", "--config", str(mcp_config_file)])

        assert result.exit_code == 0
        assert "echo" in result.output
        assert "ready" in result.output

    def test_failed_server_shown(self, tmp_path: Path) -> None:
        path = tmp_path / ".mcp.json"
        path.write_text('{"mcpServers": {"ghost": {"command": "/nonexistent/tether-server"}}}')
        runner = CliRunner()
        result = runner.invoke(main, ["servers", "--config", str(path)])

        assert result.exit_code == 0
        assert "ghost" in result.output
        assert "offline" in result.output

    def test_no_servers(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["servers", "--config", str(tmp_path / "none.json")])

        assert result.exit_code == 0
        assert "No tool servers configured" in result.output


class TestVersion:
    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

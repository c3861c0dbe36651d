"""
Tests for the onboarding-os CLI.

Tests cover:
- list and tools tables
- call with --arg, --json and --envelope
- serve option precedence and error handling
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from onboarding_os import __version__
from onboarding_os.cli import app
from onboarding_os.config import CONFIG_FILENAME

runner = CliRunner()


@pytest.fixture(autouse=True)
def project(tmp_path, monkeypatch):
    """Run every command from an empty project directory with a clean environment."""
    for name in ("ONBOARDING_HOST", "PORT", "ONBOARDING_LOG_LEVEL", "ONBOARDING_COMMAND_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


class TestListCommands:
    """Test `onboarding-os list` and `onboarding-os tools`."""

    def test_list(self):
        result = runner.invoke(app, ["list"])

        assert result.exit_code == 0
        for name in ("github-mcp", "docs-mcp", "terminal-mcp", "slack-mcp", "progress-mcp"):
            assert name in result.output
        assert "4005" in result.output

    def test_tools(self):
        result = runner.invoke(app, ["tools", "progress"])

        assert result.exit_code == 0
        assert "complete_task" in result.output
        assert "get_leaderboard" in result.output

    def test_tools_unknown_server(self):
        result = runner.invoke(app, ["tools", "jira"])

        assert result.exit_code == 1
        assert "Unknown server" in result.output


class TestCallCommand:
    """Test `onboarding-os call`."""

    def test_call_with_arg(self):
        result = runner.invoke(app, ["call", "docs", "get_document", "--arg", "docId=faq"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["id"] == "faq"

    def test_call_by_server_name(self):
        result = runner.invoke(app, ["call", "slack-mcp", "list_channels"])

        assert result.exit_code == 0
        assert "#dev-team" in result.stdout

    def test_call_with_json(self):
        raw = json.dumps({"owner": "acme", "repo": "app", "count": 2})

        result = runner.invoke(app, ["call", "github", "get_recent_prs", "--json", raw])

        assert result.exit_code == 0
        assert len(json.loads(result.stdout)["pullRequests"]) == 2

    def test_arg_overrides_json(self):
        raw = json.dumps({"owner": "acme", "repo": "app", "count": 4})

        result = runner.invoke(app, ["call", "github", "get_recent_prs", "--json", raw, "-a", "count=1"])

        assert len(json.loads(result.stdout)["pullRequests"]) == 1

    def test_call_handler_error(self):
        result = runner.invoke(app, ["call", "docs", "get_document", "--arg", "docId=missing"])

        assert result.exit_code == 1
        assert "Error: Document not found: missing" in result.output

    def test_call_unsafe_command(self):
        result = runner.invoke(app, ["call", "terminal", "run_safe_command", "--arg", "command=rm -rf"])

        assert result.exit_code == 1
        assert "Command not in safe list" in result.output

    def test_envelope_for_unknown_tool(self):
        result = runner.invoke(app, ["call", "docs", "nope", "--envelope"])

        assert result.exit_code == 1
        assert json.loads(result.stdout) == {
            "content": [{"type": "text", "text": "Unknown tool: nope"}],
            "isError": True,
        }

    def test_malformed_arg(self):
        result = runner.invoke(app, ["call", "docs", "search_docs", "--arg", "query"])

        assert result.exit_code == 2

    def test_malformed_json(self):
        result = runner.invoke(app, ["call", "docs", "search_docs", "--json", "{oops"])

        assert result.exit_code == 2


@patch("onboarding_os.cli.commands.server._setup_signal_handlers")
@patch("onboarding_os.cli.commands.server.ToolServer")
class TestServeCommand:
    """Test `onboarding-os serve`."""

    def test_serve_stdio(self, mock_server_class, mock_signals, project):
        mock_server = MagicMock()
        mock_server_class.return_value = mock_server

        result = runner.invoke(app, ["serve", "docs"])

        assert result.exit_code == 0
        assert "Starting Docs MCP server" in result.output
        assert "Transport: stdio" in result.output
        spec, config = mock_server_class.call_args.args
        assert spec.key == "docs"
        assert config.port is None
        assert config.project_root == project
        mock_signals.assert_called_once_with(mock_server)
        mock_server.start.assert_called_once()

    def test_serve_port_option(self, mock_server_class, mock_signals):
        result = runner.invoke(app, ["serve", "slack", "--host", "0.0.0.0", "--port", "9000"])

        assert result.exit_code == 0
        config = mock_server_class.call_args.args[1]
        assert config.host == "0.0.0.0"
        assert config.port == 9000

    def test_serve_loads_config_file(self, mock_server_class, mock_signals, project):
        (project / CONFIG_FILENAME).write_text("servers:\n  terminal:\n    port: 4003\ncommand_timeout: 4\n")

        result = runner.invoke(app, ["serve", "terminal"])

        assert result.exit_code == 0
        config = mock_server_class.call_args.args[1]
        assert config.port == 4003
        assert config.command_timeout == 4.0

    def test_serve_stdio_flag_wins(self, mock_server_class, mock_signals, project):
        (project / CONFIG_FILENAME).write_text("servers:\n  docs:\n    port: 4002\n")

        result = runner.invoke(app, ["serve", "docs", "--stdio"])

        assert result.exit_code == 0
        assert mock_server_class.call_args.args[1].port is None

    def test_serve_no_config_file(self, mock_server_class, mock_signals, project):
        (project / CONFIG_FILENAME).write_text("servers:\n  docs:\n    port: 4002\n")

        result = runner.invoke(app, ["serve", "docs", "--no-config-file"])

        assert result.exit_code == 0
        assert mock_server_class.call_args.args[1].port is None

    def test_serve_invalid_config(self, mock_server_class, mock_signals, project):
        (project / CONFIG_FILENAME).write_text("log_level: loud\n")

        result = runner.invoke(app, ["serve", "docs"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output
        mock_server_class.assert_not_called()

    def test_serve_port_in_use(self, mock_server_class, mock_signals):
        mock_server = MagicMock()
        mock_server.start.side_effect = RuntimeError("Port 4002 already in use.")
        mock_server_class.return_value = mock_server

        result = runner.invoke(app, ["serve", "docs", "--port", "4002"])

        assert result.exit_code == 1
        assert "Error starting server" in result.output

    def test_serve_unknown_server(self, mock_server_class, mock_signals):
        result = runner.invoke(app, ["serve", "jira"])

        assert result.exit_code == 1
        mock_server_class.assert_not_called()

    def test_serve_misshaped_servers_section(self, mock_server_class, mock_signals, project):
        (project / CONFIG_FILENAME).write_text("servers:\n  docs: 4002\n")

        result = runner.invoke(app, ["serve", "docs"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output
        mock_server_class.assert_not_called()

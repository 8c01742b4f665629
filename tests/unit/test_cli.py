"""Tests for the ``metabase-mcp`` command."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from metabase_mcp.cli import main
from metabase_mcp.config import ServerConfig
from metabase_mcp.server import create_gateway

_ENV_VARS = (
    "METABASE_URL",
    "METABASE_API_KEY",
    "METABASE_USERNAME",
    "METABASE_PASSWORD",
    "METABASE_MCP_DISABLED_TOOLS",
    "METABASE_MCP_CONFIG_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(ServerConfig, "setup_logging", lambda self: None)


@pytest.fixture
def runner():
    return CliRunner()


class TestCli:
    def test_list_tools_prints_catalog(self, runner, monkeypatch):
        monkeypatch.setenv("METABASE_URL", "https://metabase.test")
        monkeypatch.setenv("METABASE_API_KEY", "mb_test_key")

        result = runner.invoke(main, ["--list-tools"])

        assert result.exit_code == 0, result.output
        catalog = json.loads(result.output)
        names = {tool["name"] for tool in catalog}
        assert {"list_dashboards", "add_card_to_dashboard", "execute_query"} <= names
        assert all(tool["inputSchema"]["type"] == "object" for tool in catalog)

    def test_list_tools_closes_http_client(self, runner, monkeypatch):
        monkeypatch.setenv("METABASE_URL", "https://metabase.test")
        monkeypatch.setenv("METABASE_API_KEY", "mb_test_key")
        built = []

        def recording_create_gateway(config):
            gateway = create_gateway(config)
            built.append(gateway)
            return gateway

        with patch("metabase_mcp.cli.create_gateway", recording_create_gateway):
            result = runner.invoke(main, ["--list-tools"])

        assert result.exit_code == 0, result.output
        assert built[0].client.is_closed

    def test_disabled_tools_are_not_listed(self, runner, monkeypatch):
        monkeypatch.setenv("METABASE_URL", "https://metabase.test")
        monkeypatch.setenv("METABASE_API_KEY", "mb_test_key")
        monkeypatch.setenv("METABASE_MCP_DISABLED_TOOLS", "delete_user,delete_database")

        result = runner.invoke(main, ["--list-tools"])

        names = {tool["name"] for tool in json.loads(result.output)}
        assert "delete_user" not in names
        assert "delete_database" not in names

    def test_config_file_option(self, runner, tmp_path):
        path = tmp_path / "mb.toml"
        path.write_text('[metabase]\nurl = "https://metabase.test"\napi_key = "mb_file_key"\n')

        result = runner.invoke(main, ["--config", str(path), "--list-tools"])

        assert result.exit_code == 0, result.output

    def test_missing_url_exits_with_usage_error(self, runner, monkeypatch):
        monkeypatch.setenv("METABASE_API_KEY", "mb_test_key")

        result = runner.invoke(main, ["--list-tools"])

        assert result.exit_code == 2
        assert "Configuration error" in result.output

    def test_missing_credentials_exit_with_usage_error(self, runner, monkeypatch):
        monkeypatch.setenv("METABASE_URL", "https://metabase.test")

        result = runner.invoke(main, ["--list-tools"])

        assert result.exit_code == 2
        assert "Configuration error" in result.output

    def test_serves_stdio_by_default(self, runner, monkeypatch):
        monkeypatch.setenv("METABASE_URL", "https://metabase.test")
        monkeypatch.setenv("METABASE_API_KEY", "mb_test_key")
        run_stdio = MagicMock()

        with patch("metabase_mcp.cli.run_stdio", run_stdio):
            result = runner.invoke(main, [])

        assert result.exit_code == 0, result.output
        gateway = run_stdio.call_args.args[0]
        assert gateway.config.base_url == "https://metabase.test"

    def test_keyboard_interrupt_exits_cleanly(self, runner, monkeypatch):
        monkeypatch.setenv("METABASE_URL", "https://metabase.test")
        monkeypatch.setenv("METABASE_API_KEY", "mb_test_key")

        with patch("metabase_mcp.cli.run_stdio", MagicMock(side_effect=KeyboardInterrupt)):
            result = runner.invoke(main, [])

        assert result.exit_code == 0

    def test_log_level_option_overrides_config(self, runner, monkeypatch):
        monkeypatch.setenv("METABASE_URL", "https://metabase.test")
        monkeypatch.setenv("METABASE_API_KEY", "mb_test_key")
        monkeypatch.setenv("METABASE_MCP_LOG_LEVEL", "ERROR")
        run_stdio = MagicMock()

        with patch("metabase_mcp.cli.run_stdio", run_stdio):
            runner.invoke(main, ["--log-level", "debug"])

        assert run_stdio.call_args.args[0].config.log_level == "DEBUG"

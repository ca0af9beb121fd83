"""Tests for the CLI module.

Covers:
- CLI help and version output
- Client commands against an in-process backend (httpx.ASGITransport)
- Client commands with the backend down
- Rejection of unknown user names
- Configuration checking
"""

from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
import yaml
from click.testing import CliRunner

from pairchat import __version__
from pairchat.api import create_app
from pairchat.cache import LocalCache
from pairchat.cli import cli
from pairchat.client import ChatApiClient
from pairchat.config import Config
from pairchat.store import JsonStore


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Config file with data and cache under tmp_path."""
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.dump(
            {
                "data_dir": str(tmp_path / "data"),
                "log_level": "WARNING",
                "log_json": False,
                "client": {"cache_dir": str(tmp_path / "profile")},
            }
        )
    )
    return path


@pytest.fixture
def config(config_file: Path) -> Config:
    return Config.load(config_file)


@pytest.fixture
def store(config: Config) -> JsonStore:
    return JsonStore.from_config(config)


@pytest.fixture
def backend(config: Config, store: JsonStore):
    """Route the CLI's API client to an in-process backend."""
    app = create_app(config)
    app.state.config = config
    app.state.store = store

    def from_config(cfg: Config) -> ChatApiClient:
        return ChatApiClient(cfg.client.api_base_url, transport=httpx.ASGITransport(app=app))

    with patch.object(ChatApiClient, "from_config", from_config):
        yield store


@pytest.fixture
def backend_down():
    """Route the CLI's API client to a backend that refuses connections."""

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    def from_config(cfg: Config) -> ChatApiClient:
        return ChatApiClient(cfg.client.api_base_url, transport=httpx.MockTransport(refuse))

    with patch.object(ChatApiClient, "from_config", from_config):
        yield


def _invoke(runner: CliRunner, config_file: Path, *args: str):
    return runner.invoke(cli, ["--config-file", str(config_file), *args])


# =============================================================================
# Test: Help and version
# =============================================================================


class TestCliHelp:
    """Tests for help and basic command availability."""

    def test_cli_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "two-party messaging" in result.output
        for command in ("serve", "send", "show", "channels", "watch", "users"):
            assert command in result.output

    def test_cli_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert f"pairchat {__version__}" in result.output

    def test_version_with_global_options(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--log-level", "DEBUG", "--log-json", "version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_version_with_config_file_missing(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--config-file", "/nonexistent/config.yaml", "version"])
        assert result.exit_code == 0


# =============================================================================
# Test: Client commands, backend up
# =============================================================================


class TestClientOnline:
    """Tests for client commands with a reachable backend."""

    def test_users(self, cli_runner, config_file, backend) -> None:
        result = _invoke(cli_runner, config_file, "users")
        assert result.exit_code == 0
        assert "Alice" in result.output
        assert "Charlie" in result.output

    def test_send_then_show(self, cli_runner, config_file, backend) -> None:
        sent = _invoke(cli_runner, config_file, "send", "--user", "Alice", "--to", "Bob", "hi Bob")
        assert sent.exit_code == 0
        assert "Sent to Bob" in sent.output
        assert [m.text for m in backend.list_messages()] == ["hi Bob"]

        shown = _invoke(cli_runner, config_file, "show", "--user", "Bob", "--peer", "Alice")
        assert shown.exit_code == 0
        assert "Alice: hi Bob" in shown.output

    def test_channels_show_latest(self, cli_runner, config_file, backend) -> None:
        _invoke(cli_runner, config_file, "send", "-u", "Alice", "-t", "Bob", "first")
        _invoke(cli_runner, config_file, "send", "-u", "Bob", "-t", "Alice", "second")

        result = _invoke(cli_runner, config_file, "channels", "--user", "Alice")

        assert result.exit_code == 0
        assert "Bob: second" in result.output
        assert "Charlie: (no messages yet)" in result.output

    def test_show_empty_channel(self, cli_runner, config_file, backend) -> None:
        result = _invoke(cli_runner, config_file, "show", "-u", "Alice", "-p", "Charlie")
        assert result.exit_code == 0
        assert "No messages with Charlie yet." in result.output

    def test_send_rejects_empty_text(self, cli_runner, config_file, backend) -> None:
        result = _invoke(cli_runner, config_file, "send", "-u", "Alice", "-t", "Bob", "   ")
        assert result.exit_code != 0


# =============================================================================
# Test: Client commands, backend down
# =============================================================================


class TestClientOffline:
    """Tests for client commands when the backend is unreachable."""

    def test_send_is_kept_locally(self, cli_runner, config_file, config, backend_down) -> None:
        result = _invoke(cli_runner, config_file, "send", "-u", "Alice", "-t", "Bob", "offline hi")

        assert result.exit_code == 0
        assert "saved locally" in result.output
        assert [m.text for m in LocalCache(config.cache_dir).read()] == ["offline hi"]

    def test_show_uses_cache(self, cli_runner, config_file, backend_down) -> None:
        _invoke(cli_runner, config_file, "send", "-u", "Alice", "-t", "Bob", "still here")

        result = _invoke(cli_runner, config_file, "show", "-u", "Alice", "-p", "Bob")

        assert result.exit_code == 0
        assert "me: still here" in result.output
        assert "offline" in result.output

    def test_users_fall_back_to_defaults(self, cli_runner, config_file, backend_down) -> None:
        result = _invoke(cli_runner, config_file, "users")
        assert result.exit_code == 0
        assert "Alice" in result.output


# =============================================================================
# Test: Unknown user names
# =============================================================================


class TestUnknownUsers:
    """Tests for rejecting user names the backend does not know."""

    def test_send_from_unknown_user(self, cli_runner, config_file, config, backend) -> None:
        result = _invoke(cli_runner, config_file, "send", "-u", "Mallory", "-t", "Bob", "hi")

        assert result.exit_code == 2
        assert "Unknown user: Mallory" in result.output
        assert LocalCache(config.cache_dir).read() == []
        assert backend.list_messages() == []

    def test_send_to_unknown_user(self, cli_runner, config_file, config, backend) -> None:
        result = _invoke(cli_runner, config_file, "send", "-u", "Alice", "--to", "Nobody", "hi")

        assert result.exit_code == 2
        assert "--to" in result.output
        assert LocalCache(config.cache_dir).read() == []

    def test_show_unknown_peer(self, cli_runner, config_file, backend) -> None:
        result = _invoke(cli_runner, config_file, "show", "-u", "Alice", "-p", "Nobody")
        assert result.exit_code == 2
        assert "Unknown user: Nobody" in result.output

    def test_channels_unknown_user(self, cli_runner, config_file, backend) -> None:
        result = _invoke(cli_runner, config_file, "channels", "-u", "Mallory")
        assert result.exit_code == 2

    def test_offline_checks_seeded_users(self, cli_runner, config_file, config, backend_down) -> None:
        """With the backend down, names are checked against the seeded users."""
        result = _invoke(cli_runner, config_file, "send", "-u", "Mallory", "-t", "Bob", "hi")

        assert result.exit_code == 2
        assert LocalCache(config.cache_dir).read() == []


# =============================================================================
# Test: Config check
# =============================================================================


class TestConfigCheck:
    """Tests for config check command."""

    def test_valid_config(self, cli_runner, config_file) -> None:
        result = cli_runner.invoke(cli, ["config", "check", "--config-file", str(config_file)])
        assert result.exit_code == 0
        assert "Configuration valid" in result.output
        assert "Alice, Bob, Charlie" in result.output

    def test_invalid_config(self, cli_runner, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text(yaml.dump({"log_level": "LOUD"}))
        result = cli_runner.invoke(cli, ["config", "check", "--config-file", str(bad)])
        assert result.exit_code == 1
        assert "Configuration error" in result.output

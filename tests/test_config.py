from pathlib import Path
from typing import Any

import pytest

from invitechan.channels.cache import RefreshPolicy
from invitechan.config import AppConfig, SlackConfig, SlackMode, load_app_config


def _socket(**overrides: Any) -> dict[str, Any]:
    config: dict[str, Any] = {
        "mode": "socket",
        "bot_token": "xoxb-1",
        "user_token": "xoxp-1",
        "app_token": "xapp-1",
    }
    config.update(overrides)
    return config


def _http(**overrides: Any) -> dict[str, Any]:
    config: dict[str, Any] = {
        "mode": "http",
        "signing_secret": "s3cret",
        "client_id": "123.456",
        "client_secret": "shh",
    }
    config.update(overrides)
    return config


class TestSlackConfig:
    def test_socket_mode(self) -> None:
        config = SlackConfig.from_yaml(_socket())

        assert config.mode is SlackMode.SOCKET
        assert config.command == "/plzinviteme"
        assert config.fixed_credential.valid
        assert not config.oauth_enabled

    def test_socket_mode_requires_app_token(self) -> None:
        with pytest.raises(ValueError, match="app_token"):
            SlackConfig.from_yaml(_socket(app_token=""))

    def test_socket_mode_requires_both_tokens(self) -> None:
        with pytest.raises(ValueError, match="user_token"):
            SlackConfig.from_yaml(_socket(user_token=""))

    def test_http_mode_with_oauth(self) -> None:
        config = SlackConfig.from_yaml(_http(port="8080"))

        assert config.mode is SlackMode.HTTP
        assert config.oauth_enabled
        assert not config.fixed_credential.valid
        assert config.port == 8080

    def test_http_mode_with_fixed_tokens(self) -> None:
        config = SlackConfig.from_yaml(
            _http(client_id="", client_secret="", bot_token="xoxb", user_token="xoxp")
        )

        assert config.fixed_credential.valid

    def test_http_mode_requires_signing_secret(self) -> None:
        with pytest.raises(ValueError, match="signing_secret"):
            SlackConfig.from_yaml(_http(signing_secret=""))

    def test_http_mode_requires_some_credentials(self) -> None:
        with pytest.raises(ValueError, match="OAuth"):
            SlackConfig.from_yaml(_http(client_secret=""))

    def test_unknown_mode(self) -> None:
        with pytest.raises(ValueError, match="slack.mode"):
            SlackConfig.from_yaml(_socket(mode="webhook"))

    def test_command_must_be_a_slash_command(self) -> None:
        with pytest.raises(ValueError, match="command"):
            SlackConfig.from_yaml(_socket(command="invite"))


class TestAppConfig:
    def test_defaults(self) -> None:
        config = AppConfig.from_yaml({"slack": _socket()})

        assert config.cache.refresh_policy is RefreshPolicy.ONCE
        assert config.cache.refresh_timeout == 30.0
        assert config.database_url == "sqlite:///invitechan.db"

    def test_cache_settings(self) -> None:
        config = AppConfig.from_yaml(
            {"slack": _socket(), "cache": {"refresh_policy": "every_call", "refresh_timeout": 5}}
        )

        assert config.cache.refresh_policy is RefreshPolicy.EVERY_CALL
        assert config.cache.refresh_timeout == 5.0

    def test_unknown_refresh_policy(self) -> None:
        with pytest.raises(ValueError, match="refresh_policy"):
            AppConfig.from_yaml({"slack": _socket(), "cache": {"refresh_policy": "hourly"}})


class TestLoadAppConfig:
    def test_resolves_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SLACK_TOKEN_BOT", "xoxb-env")
        monkeypatch.setenv("SLACK_TOKEN_USER", "xoxp-env")
        monkeypatch.setenv("SLACK_APP_TOKEN", "xapp-env")
        monkeypatch.delenv("INVITECHAN_MODE", raising=False)
        path = tmp_path / "app.yaml"
        path.write_text(
            "slack:\n"
            "  mode: $(INVITECHAN_MODE:-socket)\n"
            "  bot_token: $(SLACK_TOKEN_BOT)\n"
            "  user_token: $(SLACK_TOKEN_USER)\n"
            "  app_token: $(SLACK_APP_TOKEN)\n"
        )

        config = load_app_config(path)

        assert config.slack.mode is SlackMode.SOCKET
        assert config.slack.fixed_credential.bot_token == "xoxb-env"
        assert config.slack.app_token == "xapp-env"

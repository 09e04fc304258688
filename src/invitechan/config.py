from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from invitechan.channels.cache import RefreshPolicy
from invitechan.credentials.types import Credential
from invitechan.util import PROJECT_ROOT, load_yaml_config

_DEFAULT_CONFIG = PROJECT_ROOT / "config" / "app.yaml"
_DEFAULT_DATABASE_URL = "sqlite:///invitechan.db"


class SlackMode(StrEnum):
    SOCKET = "socket"
    HTTP = "http"


@dataclass
class SlackConfig:
    mode: SlackMode
    command: str
    bot_token: str = ""
    user_token: str = ""
    app_token: str = ""
    signing_secret: str = ""
    client_id: str = ""
    client_secret: str = ""
    port: int = 3000
    http_timeout: int = 10

    @property
    def fixed_credential(self) -> Credential:
        return Credential(user_token=self.user_token, bot_token=self.bot_token)

    @property
    def oauth_enabled(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @classmethod
    def from_yaml(cls, config: dict[str, Any]) -> SlackConfig:
        try:
            mode = SlackMode(config.get("mode") or SlackMode.SOCKET)
        except ValueError:
            raise ValueError(f"Unknown slack.mode: {config.get('mode')!r}") from None

        command = config.get("command") or "/plzinviteme"
        if not command.startswith("/"):
            raise ValueError("slack.command must start with '/'")

        slack = cls(
            mode=mode,
            command=command,
            bot_token=config.get("bot_token", "") or "",
            user_token=config.get("user_token", "") or "",
            app_token=config.get("app_token", "") or "",
            signing_secret=config.get("signing_secret", "") or "",
            client_id=config.get("client_id", "") or "",
            client_secret=config.get("client_secret", "") or "",
            port=int(config.get("port") or 3000),
            http_timeout=int(config.get("http_timeout") or 10),
        )

        if mode is SlackMode.SOCKET:
            if not slack.app_token:
                raise ValueError("Missing slack.app_token")
            if not slack.fixed_credential.valid:
                raise ValueError("Socket mode needs slack.bot_token and slack.user_token")
        else:
            if not slack.signing_secret:
                raise ValueError("Missing slack.signing_secret")
            if not slack.fixed_credential.valid and not slack.oauth_enabled:
                raise ValueError(
                    "HTTP mode needs slack.bot_token and slack.user_token, "
                    "or slack.client_id and slack.client_secret for OAuth installs"
                )

        return slack


@dataclass
class CacheConfig:
    refresh_policy: RefreshPolicy = RefreshPolicy.ONCE
    refresh_timeout: float = 30.0

    @classmethod
    def from_yaml(cls, config: dict[str, Any]) -> CacheConfig:
        raw_policy = config.get("refresh_policy") or RefreshPolicy.ONCE
        try:
            policy = RefreshPolicy(raw_policy)
        except ValueError:
            raise ValueError(f"Unknown cache.refresh_policy: {raw_policy!r}") from None
        return cls(
            refresh_policy=policy,
            refresh_timeout=float(config.get("refresh_timeout") or 30.0),
        )


@dataclass
class AppConfig:
    slack: SlackConfig
    cache: CacheConfig = field(default_factory=CacheConfig)
    database_url: str = _DEFAULT_DATABASE_URL

    @classmethod
    def from_yaml(cls, config: dict[str, Any]) -> AppConfig:
        return cls(
            slack=SlackConfig.from_yaml(config.get("slack") or {}),
            cache=CacheConfig.from_yaml(config.get("cache") or {}),
            database_url=config.get("database_url") or _DEFAULT_DATABASE_URL,
        )


def load_app_config(config_location: Path = _DEFAULT_CONFIG) -> AppConfig:
    return AppConfig.from_yaml(load_yaml_config(config_location))

from unittest.mock import MagicMock

from invitechan.__main__ import build_dispatcher, wire_platform
from invitechan.channels import SlackChannelDirectory
from invitechan.config import AppConfig
from invitechan.credentials import Credential


def _config() -> AppConfig:
    return AppConfig.from_yaml(
        {
            "slack": {
                "mode": "socket",
                "bot_token": "xoxb-1",
                "user_token": "xoxp-1",
                "app_token": "xapp-1",
                "http_timeout": 7,
            },
            "cache": {"refresh_policy": "every_call", "refresh_timeout": 3},
        }
    )


class TestBuildDispatcher:
    def test_fixed_credentials_are_used(self) -> None:
        dispatcher = build_dispatcher(_config(), store=None)

        assert dispatcher.credentials.resolve("T_ANY") == Credential(
            user_token="xoxp-1", bot_token="xoxb-1"
        )
        assert dispatcher.refresh_timeout == 3

    def test_cache_directory_is_a_slack_directory_with_bot_token(self) -> None:
        dispatcher = build_dispatcher(_config(), store=None)
        credential = dispatcher.credentials.resolve("T1")

        cache = dispatcher.caches.get("T1", credential)

        directory = cache._directory
        assert isinstance(directory, SlackChannelDirectory)
        assert directory.client.token == "xoxb-1"
        assert directory.client.timeout == 7


class TestWirePlatform:
    def test_channel_changes_invalidate_the_team_cache(self) -> None:
        dispatcher = build_dispatcher(_config(), store=None)
        platform = MagicMock()
        credential = dispatcher.credentials.resolve("T1")
        cache = dispatcher.caches.get("T1", credential)

        wire_platform(platform, dispatcher)

        platform.on_command.assert_called_once_with(dispatcher.handle)
        on_changed = platform.on_channels_changed.call_args.args[0]
        on_changed("T1")
        assert dispatcher.caches.get("T1", credential) is not cache

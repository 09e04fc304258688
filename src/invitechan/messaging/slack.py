from collections.abc import Callable
from typing import Any

import structlog
from slack_bolt import Ack, App, BoltContext
from slack_bolt.adapter.socket_mode import SocketModeHandler
from slack_bolt.oauth.oauth_settings import OAuthSettings
from slack_sdk.oauth.installation_store import InstallationStore

from invitechan.config import SlackConfig, SlackMode
from invitechan.errors import CommandDecodeError
from invitechan.messaging.decode import (
    CHANNEL_CHANGE_EVENTS,
    decode_channel_change,
    decode_message_event,
    decode_slash_command,
)
from invitechan.messaging.platform import AbstractPlatform
from invitechan.messaging.types import CommandContext

_logger = structlog.get_logger()

# channels:read lists the bot's channels and delivers channel and member events,
# im:history delivers DMs to the bot.
_BOT_SCOPES = ["commands", "channels:read", "chat:write", "im:history"]
# channels:write lets the installer's token invite and kick guests.
_USER_SCOPES = ["channels:write"]


class SlackPlatform(AbstractPlatform):
    def __init__(
        self,
        config: SlackConfig,
        installation_store: InstallationStore | None = None,
        app: App | None = None,
    ) -> None:
        self.config = config
        self.app = app or self._build_app(installation_store)
        self._command_handler: Callable[[CommandContext], object] | None = None
        self._channels_changed_handler: Callable[[str], object] | None = None

    def _build_app(self, installation_store: InstallationStore | None) -> App:
        if self.config.mode is SlackMode.SOCKET:
            return App(token=self.config.bot_token)

        if self.config.fixed_credential.valid:
            return App(token=self.config.bot_token, signing_secret=self.config.signing_secret)

        if installation_store is None:
            raise ValueError("OAuth installs need an installation store")

        return App(
            signing_secret=self.config.signing_secret,
            oauth_settings=OAuthSettings(
                client_id=self.config.client_id,
                client_secret=self.config.client_secret,
                scopes=_BOT_SCOPES,
                user_scopes=_USER_SCOPES,
                installation_store=installation_store,
            ),
        )

    def on_command(self, handler: Callable[[CommandContext], object]) -> None:
        self._command_handler = handler
        self.app.command(self.config.command)(self.handle_slash_command)
        self.app.event("message")(self.handle_message_event)

    def on_channels_changed(self, handler: Callable[[str], object]) -> None:
        self._channels_changed_handler = handler
        for event_type in sorted(CHANNEL_CHANGE_EVENTS):
            self.app.event(event_type)(self.handle_channel_event)

    def handle_slash_command(self, ack: Ack, command: dict[str, Any]) -> None:
        ack()
        try:
            context = decode_slash_command(command)
        except CommandDecodeError as e:
            _logger.warning("slack_command_decode_failed", error=str(e))
            return
        self._dispatch(context)

    def handle_message_event(self, body: dict[str, Any]) -> None:
        try:
            context = decode_message_event(body)
        except CommandDecodeError as e:
            _logger.warning("slack_event_decode_failed", error=str(e))
            return
        if context is None:
            _logger.debug("slack_event_ignored", event_type=body.get("event", {}).get("type"))
            return
        self._dispatch(context)

    def handle_channel_event(self, body: dict[str, Any], context: BoltContext) -> None:
        try:
            team_id = decode_channel_change(body, bot_user_id=context.bot_user_id or "")
        except CommandDecodeError as e:
            _logger.warning("slack_event_decode_failed", error=str(e))
            return
        if team_id is None or self._channels_changed_handler is None:
            return
        _logger.info("slack_channels_changed", team_id=team_id, event_type=body["event"]["type"])
        try:
            self._channels_changed_handler(team_id)
        except Exception:
            _logger.exception("slack_channels_changed_failed", team_id=team_id)

    def _dispatch(self, context: CommandContext) -> None:
        if self._command_handler is None:
            _logger.warning("slack_command_unhandled", source=context.source.value)
            return
        try:
            self._command_handler(context)
        except Exception:
            _logger.exception("slack_handle_command_failed", source=context.source.value)

    def start(self) -> None:
        _logger.info("slack_platform_starting", mode=self.config.mode.value)
        if self.config.mode is SlackMode.SOCKET:
            auth_response = self.app.client.auth_test()
            _logger.info("slack_bot_identified", bot_user_id=auth_response.get("user_id", ""))
            handler = SocketModeHandler(self.app, self.config.app_token)
            handler.connect()  # type: ignore[no-untyped-call]
            _logger.info("slack_platform_started")
            return

        _logger.info("slack_platform_listening", port=self.config.port, oauth=self.config.oauth_enabled)
        self.app.start(port=self.config.port)

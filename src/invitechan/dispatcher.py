from typing import Any

import structlog

from invitechan.channels.cache import ChannelCacheRegistry
from invitechan.channels.types import Channel, ChannelSnapshot
from invitechan.credentials.store import CredentialResolver
from invitechan.credentials.types import Credential
from invitechan.errors import CredentialError, InvitechanError
from invitechan.intent import Intent, JoinChannel, LeaveChannel, ListOpenChannels, ShowHelp, parse_intent
from invitechan.membership import MembershipService
from invitechan.messaging.notifier import AbstractNotifier
from invitechan.messaging.types import CommandContext
from invitechan.util import PROJECT_ROOT, load_yaml_config

_logger = structlog.get_logger()

_MESSAGES_PATH = PROJECT_ROOT / "config" / "messages.yaml"

DEFAULT_MESSAGES: dict[str, str] = {
    "list_header": "Available channels:",
    "list_item": "• {channel}",
    "list_empty": "No channels are open to guests yet.",
    "list_hint": "Tell me “join _channel_” to join one!",
    "not_open": "Sorry, channel #{channel} is not open to multi-channel guests.",
    "joined": "Okay, I invited you to #{channel}!",
    "left": "Okay, I removed you from #{channel}!",
    "error": "Error: {error}",
    "help": (
        "Hello! With me multi-channel guests can join open channels freely.\n"
        "\n"
        "*If you are a multi-channel guest:*\n"
        "Tell me:\n"
        "• “list” to list open channels\n"
        "• “join _channel_” to join one\n"
        "• “leave _channel_” to leave one\n"
        "\n"
        "*If you are a regular user:*\n"
        "Public channels where I’m in are marked open to guests.\n"
        "Invite me to channels so that guests can join them.\n"
    ),
}


def load_messages() -> dict[str, str]:
    """Reply templates from ``config/messages.yaml`` layered over the defaults."""
    overrides = load_yaml_config(_MESSAGES_PATH, defaults={})
    return {**DEFAULT_MESSAGES, **{k: str(v) for k, v in overrides.items()}}


class CommandDispatcher:
    """Handles one command end to end: parse, check, act, reply.

    Nothing escapes :meth:`handle`. Every failure is turned into reply text
    for the requesting user, so one bad request never affects another.
    """

    def __init__(
        self,
        credentials: CredentialResolver,
        caches: ChannelCacheRegistry,
        membership: MembershipService,
        notifier: AbstractNotifier,
        refresh_timeout: float | None = None,
        messages: dict[str, str] | None = None,
    ) -> None:
        self.credentials = credentials
        self.caches = caches
        self.membership = membership
        self.notifier = notifier
        self.refresh_timeout = refresh_timeout
        self.messages = messages if messages is not None else load_messages()

    def handle(self, context: CommandContext) -> str:
        """Handle *context* and return the reply text that was sent."""
        intent = parse_intent(context.text)
        log = _logger.bind(
            team_id=context.team_id,
            user_id=context.user_id,
            channel_id=context.channel_id,
            source=context.source.value,
            intent=type(intent).__name__,
        )
        log.info("command_received")

        credential: Credential | None = None
        try:
            if isinstance(intent, ShowHelp):
                # help needs no credential, one is only looked up to post the reply
                credential = self._reply_credential(context.team_id, log)
                reply = self.messages["help"]
            else:
                credential = self.credentials.resolve(context.team_id)
                reply = self._execute(intent, context, credential)
            log.info("command_handled")
        except InvitechanError as e:
            log.warning("command_failed", error=str(e), error_type=type(e).__name__)
            reply = self.messages["error"].format(error=e)
        except Exception as e:
            log.exception("command_crashed")
            reply = self.messages["error"].format(error=e)

        try:
            self.notifier.reply(
                context.reply_route,
                reply,
                bot_token=credential.bot_token if credential else "",
            )
        except Exception:
            log.exception("reply_failed")

        return reply

    def _execute(self, intent: Intent, context: CommandContext, credential: Credential) -> str:
        match intent:
            case ListOpenChannels():
                return self._render_list(self._snapshot(context, credential))
            case JoinChannel(name=name):
                channel = self._find_open_channel(context, credential, name)
                if channel is None:
                    return self.messages["not_open"].format(channel=name)
                self.membership.invite(credential, channel, context.user_id)
                return self.messages["joined"].format(channel=channel.name)
            case LeaveChannel(name=name):
                channel = self._find_open_channel(context, credential, name)
                if channel is None:
                    return self.messages["not_open"].format(channel=name)
                self.membership.leave(credential, channel, context.user_id)
                return self.messages["left"].format(channel=channel.name)
            case _:
                raise ValueError(f"Unknown intent: {intent!r}")

    def _reply_credential(self, team_id: str, log: Any) -> Credential | None:
        try:
            return self.credentials.resolve(team_id)
        except CredentialError as e:
            log.info("reply_credential_unavailable", error=str(e))
            return None

    def _snapshot(self, context: CommandContext, credential: Credential) -> ChannelSnapshot:
        cache = self.caches.get(context.team_id, credential)
        return cache.snapshot(timeout=self.refresh_timeout)

    def _find_open_channel(
        self,
        context: CommandContext,
        credential: Credential,
        name: str,
    ) -> Channel | None:
        # exact match only, absence is a denial even if the snapshot is stale
        return self._snapshot(context, credential).get(name)

    def _render_list(self, snapshot: ChannelSnapshot) -> str:
        if not snapshot:
            return self.messages["list_empty"]
        lines = [self.messages["list_header"]]
        lines.extend(self.messages["list_item"].format(channel=name) for name in sorted(snapshot))
        lines.append(self.messages["list_hint"])
        return "\n".join(lines)

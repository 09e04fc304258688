"""Decoding of inbound Slack payloads into :class:`CommandContext`.

Both trigger shapes are reduced to the same context here, once, so the
dispatcher never inspects raw payloads.
"""

from collections.abc import Mapping
from typing import Any

from invitechan.errors import CommandDecodeError
from invitechan.messaging.types import CommandContext, CommandSource, ReplyRoute


def _require(payload: Mapping[str, Any], key: str, kind: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise CommandDecodeError(f"{kind} is missing {key!r}")
    return value


def decode_slash_command(payload: Mapping[str, Any]) -> CommandContext:
    """Decode the form fields of a slash command request."""
    text = payload.get("text") or ""
    if not isinstance(text, str):
        raise CommandDecodeError("slash command 'text' must be a string")

    channel_id = _require(payload, "channel_id", "slash command")
    response_url = payload.get("response_url") or None
    return CommandContext(
        text=text,
        user_id=_require(payload, "user_id", "slash command"),
        channel_id=channel_id,
        team_id=_require(payload, "team_id", "slash command"),
        reply_route=ReplyRoute(channel_id=channel_id, response_url=response_url),
        source=CommandSource.SLASH_COMMAND,
    )


def decode_message_event(body: Mapping[str, Any]) -> CommandContext | None:
    """Decode an Events API ``event_callback`` envelope carrying a message.

    Returns ``None`` for events that are not plain user messages: other
    event types, messages with a ``subtype`` (edits, joins, ...) and
    messages posted by bots, including this one's own replies.
    """
    if body.get("type") != "event_callback":
        raise CommandDecodeError(f"unexpected envelope type {body.get('type')!r}")

    event = body.get("event")
    if not isinstance(event, Mapping):
        raise CommandDecodeError("event envelope has no 'event' object")

    if event.get("type") != "message" or event.get("subtype") or event.get("bot_id"):
        return None

    text = event.get("text") or ""
    if not isinstance(text, str):
        raise CommandDecodeError("message 'text' must be a string")

    team_id = body.get("team_id") or event.get("team")
    if not isinstance(team_id, str) or not team_id:
        raise CommandDecodeError("message event is missing 'team_id'")

    channel_id = _require(event, "channel", "message event")
    return CommandContext(
        text=text,
        user_id=_require(event, "user", "message event"),
        channel_id=channel_id,
        team_id=team_id,
        reply_route=ReplyRoute(channel_id=channel_id),
        source=CommandSource.MESSAGE,
    )


# the bot joining or leaving changes which channels are open to guests
_BOT_MEMBERSHIP_EVENTS = frozenset({"member_joined_channel", "member_left_channel"})
_CHANNEL_STATE_EVENTS = frozenset(
    {"channel_archive", "channel_unarchive", "channel_rename", "channel_deleted"}
)
CHANNEL_CHANGE_EVENTS = _BOT_MEMBERSHIP_EVENTS | _CHANNEL_STATE_EVENTS


def decode_channel_change(body: Mapping[str, Any], bot_user_id: str = "") -> str | None:
    """Return the team whose open channels may have changed, or ``None``.

    Membership events only count when they concern the bot itself. When
    *bot_user_id* is unknown every membership event counts.
    """
    if body.get("type") != "event_callback":
        raise CommandDecodeError(f"unexpected envelope type {body.get('type')!r}")

    event = body.get("event")
    if not isinstance(event, Mapping):
        raise CommandDecodeError("event envelope has no 'event' object")

    event_type = event.get("type")
    if event_type not in CHANNEL_CHANGE_EVENTS:
        return None
    if event_type in _BOT_MEMBERSHIP_EVENTS and bot_user_id and event.get("user") != bot_user_id:
        return None

    team_id = body.get("team_id") or event.get("team")
    if not isinstance(team_id, str) or not team_id:
        raise CommandDecodeError(f"{event_type} event is missing 'team_id'")
    return team_id

from dataclasses import dataclass
from enum import StrEnum


class CommandSource(StrEnum):
    SLASH_COMMAND = "slash_command"
    MESSAGE = "message"


@dataclass(frozen=True)
class ReplyRoute:
    """Where a reply goes.

    A ``response_url`` (slash commands) is a one-shot address answered
    ephemerally; without one the reply is posted to ``channel_id``.
    """

    channel_id: str
    response_url: str | None = None


@dataclass(frozen=True)
class CommandContext:
    text: str
    user_id: str
    channel_id: str
    team_id: str
    reply_route: ReplyRoute
    source: CommandSource = CommandSource.MESSAGE

from invitechan.messaging.decode import decode_message_event, decode_slash_command
from invitechan.messaging.notifier import AbstractNotifier, SlackNotifier
from invitechan.messaging.types import CommandContext, CommandSource, ReplyRoute

__all__ = [
    "AbstractNotifier",
    "CommandContext",
    "CommandSource",
    "ReplyRoute",
    "SlackNotifier",
    "decode_message_event",
    "decode_slash_command",
]

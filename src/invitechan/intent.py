"""Classification of free-text commands into intents.

Matching is case-sensitive and prefix-based, checked in a fixed order:
``list``, ``join <channel>``, ``leave <channel>``. Anything else asks for
help. The channel argument is taken verbatim, so ``join #general`` looks up
a channel literally named ``#general``.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ListOpenChannels:
    pass


@dataclass(frozen=True)
class JoinChannel:
    name: str


@dataclass(frozen=True)
class LeaveChannel:
    name: str


@dataclass(frozen=True)
class ShowHelp:
    pass


Intent = ListOpenChannels | JoinChannel | LeaveChannel | ShowHelp

_LIST = "list"
_JOIN = "join "
_LEAVE = "leave "


def parse_intent(text: str) -> Intent:
    if text.startswith(_LIST):
        return ListOpenChannels()
    if text.startswith(_JOIN):
        return JoinChannel(name=text[len(_JOIN) :])
    if text.startswith(_LEAVE):
        return LeaveChannel(name=text[len(_LEAVE) :])
    return ShowHelp()

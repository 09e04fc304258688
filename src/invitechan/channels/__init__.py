from invitechan.channels.cache import ChannelCache, ChannelCacheRegistry, RefreshPolicy
from invitechan.channels.directory import AbstractChannelDirectory, SlackChannelDirectory
from invitechan.channels.types import Channel, ChannelPage, ChannelSnapshot

__all__ = [
    "AbstractChannelDirectory",
    "Channel",
    "ChannelCache",
    "ChannelCacheRegistry",
    "ChannelPage",
    "ChannelSnapshot",
    "RefreshPolicy",
    "SlackChannelDirectory",
]

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Channel:
    id: str
    name: str
    archived: bool = False


@dataclass(frozen=True)
class ChannelPage:
    channels: list[Channel] = field(default_factory=list)
    next_cursor: str = ""


# channel name -> Channel, read-only once published
ChannelSnapshot = Mapping[str, Channel]

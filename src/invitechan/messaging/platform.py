from abc import ABC, abstractmethod
from collections.abc import Callable

from invitechan.messaging.types import CommandContext


class AbstractPlatform(ABC):
    @abstractmethod
    def on_command(self, handler: Callable[[CommandContext], object]) -> None:
        """Register the handler called once per decoded inbound command."""
        ...

    @abstractmethod
    def start(self) -> None:
        """Start receiving commands and calling the registered handler"""
        ...

    @abstractmethod
    def on_channels_changed(self, handler: Callable[[str], object]) -> None:
        """Register the handler called with a team ID when its open channels may have changed."""
        ...

from abc import ABC, abstractmethod
from typing import Any

import structlog
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from invitechan.channels.types import Channel, ChannelPage
from invitechan.errors import DirectoryError

_logger = structlog.get_logger()

_PAGE_LIMIT = 200


class AbstractChannelDirectory(ABC):
    @abstractmethod
    def list_member_channels(self, cursor: str = "") -> ChannelPage:
        """Return one page of public channels the bot account belongs to.

        An empty ``next_cursor`` on the returned page means there is nothing
        left to fetch.

        Raises:
            DirectoryError: the page could not be fetched.
        """
        ...


class SlackChannelDirectory(AbstractChannelDirectory):
    """Lists the bot's public channels through ``users.conversations``.

    The client must carry the bot token: membership is what marks a channel
    as open to guests.
    """

    def __init__(self, client: WebClient, page_limit: int = _PAGE_LIMIT) -> None:
        self.client = client
        self.page_limit = page_limit

    def list_member_channels(self, cursor: str = "") -> ChannelPage:
        try:
            response = self.client.users_conversations(
                types="public_channel",
                exclude_archived=True,
                limit=self.page_limit,
                cursor=cursor or None,
            )
        except SlackApiError as e:
            error = e.response.get("error", "unknown_error")
            _logger.warning("slack_list_channels_failed", error=error, cursor=cursor)
            raise DirectoryError(error) from e
        except Exception as e:
            _logger.exception("slack_list_channels_failed", cursor=cursor)
            raise DirectoryError(str(e)) from e

        raw_channels: list[dict[str, Any]] = response.get("channels", []) or []
        metadata: dict[str, Any] = response.get("response_metadata") or {}
        return ChannelPage(
            channels=[self._to_channel(ch) for ch in raw_channels],
            next_cursor=metadata.get("next_cursor", "") or "",
        )

    @staticmethod
    def _to_channel(raw: dict[str, Any]) -> Channel:
        return Channel(
            id=raw["id"],
            name=raw.get("name", ""),
            archived=bool(raw.get("is_archived", False)),
        )

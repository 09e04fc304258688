from abc import ABC, abstractmethod
from collections.abc import Callable

import structlog
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError
from slack_sdk.webhook import WebhookClient

from invitechan.errors import NotifierError
from invitechan.messaging.types import ReplyRoute

_logger = structlog.get_logger()


class AbstractNotifier(ABC):
    @abstractmethod
    def reply(self, route: ReplyRoute, text: str, bot_token: str = "") -> None:
        """Deliver *text* to *route*.

        *bot_token* is needed only when the route has no ``response_url``.

        Raises:
            NotifierError: the reply could not be delivered.
        """
        ...


class SlackNotifier(AbstractNotifier):
    def __init__(
        self,
        client_factory: Callable[[str], WebClient],
        webhook_factory: Callable[[str], WebhookClient] = WebhookClient,
    ) -> None:
        self._client_factory = client_factory
        self._webhook_factory = webhook_factory

    def reply(self, route: ReplyRoute, text: str, bot_token: str = "") -> None:
        if route.response_url:
            self._reply_ephemeral(route.response_url, text)
            return

        if not bot_token:
            raise NotifierError("no bot token to post the reply with")

        _logger.debug("slack_sending_message", channel_id=route.channel_id)
        try:
            self._client_factory(bot_token).chat_postMessage(channel=route.channel_id, text=text)
        except SlackApiError as e:
            error = e.response.get("error", "unknown_error")
            raise NotifierError(f"chat.postMessage failed: {error}") from e

    def _reply_ephemeral(self, response_url: str, text: str) -> None:
        _logger.debug("slack_sending_response_url")
        response = self._webhook_factory(response_url).send(text=text, response_type="ephemeral")
        if response.status_code != 200:
            raise NotifierError(f"response_url returned {response.status_code}: {response.body}")

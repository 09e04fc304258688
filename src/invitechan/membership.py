from abc import ABC, abstractmethod
from collections.abc import Callable

import structlog
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from invitechan.channels.types import Channel
from invitechan.credentials.types import Credential
from invitechan.errors import ActuatorError, CredentialError

_logger = structlog.get_logger()


class AbstractMembershipActuator(ABC):
    @abstractmethod
    def add_member(self, channel_id: str, user_id: str) -> None:
        """Raises :class:`ActuatorError` when the platform rejects the invite."""
        ...

    @abstractmethod
    def remove_member(self, channel_id: str, user_id: str) -> None:
        """Raises :class:`ActuatorError` when the platform rejects the removal."""
        ...


class SlackMembershipActuator(AbstractMembershipActuator):
    """Invites and kicks through ``conversations.invite`` / ``conversations.kick``.

    The client must carry a user token with ``channels:write``.
    """

    def __init__(self, client: WebClient) -> None:
        self.client = client

    def add_member(self, channel_id: str, user_id: str) -> None:
        try:
            self.client.conversations_invite(channel=channel_id, users=user_id)
        except SlackApiError as e:
            raise ActuatorError(_error_code(e), channel_id=channel_id, user_id=user_id) from e

    def remove_member(self, channel_id: str, user_id: str) -> None:
        try:
            self.client.conversations_kick(channel=channel_id, user=user_id)
        except SlackApiError as e:
            raise ActuatorError(_error_code(e), channel_id=channel_id, user_id=user_id) from e


def _error_code(e: SlackApiError) -> str:
    return str(e.response.get("error", "unknown_error"))


class MembershipService:
    """Changes channel membership on behalf of the requesting guest.

    Only the user token is ever handed to *actuator_factory*: the bot account
    usually cannot add or remove other people.
    """

    def __init__(self, actuator_factory: Callable[[str], AbstractMembershipActuator]) -> None:
        self._actuator_factory = actuator_factory

    def invite(self, credential: Credential, channel: Channel, user_id: str) -> None:
        actuator = self._actuator(credential)
        try:
            actuator.add_member(channel.id, user_id)
        except ActuatorError as e:
            _logger.info(
                "membership_invite_failed",
                channel=channel.name,
                channel_id=channel.id,
                user_id=user_id,
                error=e.code,
            )
            raise
        _logger.info("membership_invited", channel=channel.name, channel_id=channel.id, user_id=user_id)

    def leave(self, credential: Credential, channel: Channel, user_id: str) -> None:
        actuator = self._actuator(credential)
        try:
            actuator.remove_member(channel.id, user_id)
        except ActuatorError as e:
            _logger.info(
                "membership_leave_failed",
                channel=channel.name,
                channel_id=channel.id,
                user_id=user_id,
                error=e.code,
            )
            raise
        _logger.info("membership_removed", channel=channel.name, channel_id=channel.id, user_id=user_id)

    def _actuator(self, credential: Credential) -> AbstractMembershipActuator:
        if not credential.user_token:
            raise CredentialError("user token is missing, reinstall the app to grant channels:write")
        return self._actuator_factory(credential.user_token)

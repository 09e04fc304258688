"""Bridge between slack_bolt's OAuth flow and the credential store.

Bolt hands every completed installation to :meth:`save` and asks
:meth:`find_installation` / :meth:`find_bot` for the bot token to authorize
incoming requests. Only the team-level record is kept: re-installing a
workspace overwrites it.
"""

import logging

import structlog
from slack_sdk.oauth.installation_store import Bot, Installation, InstallationStore

from invitechan.credentials.store import AbstractCredentialStore
from invitechan.credentials.types import Credential
from invitechan.errors import CredentialNotFoundError

_logger = structlog.get_logger()


class CredentialInstallationStore(InstallationStore):
    def __init__(self, store: AbstractCredentialStore) -> None:
        self._store = store
        self._stdlib_logger = logging.getLogger(__name__)

    @property
    def logger(self) -> logging.Logger:
        return self._stdlib_logger

    def save(self, installation: Installation) -> None:
        team_id = installation.team_id or ""
        if not team_id:
            _logger.warning("installation_without_team", enterprise_id=installation.enterprise_id)
            return

        self._store.put(
            team_id,
            Credential(
                user_token=installation.user_token or "",
                bot_token=installation.bot_token or "",
                installer_user_id=installation.user_id or "",
                bot_user_id=installation.bot_user_id or "",
                installed_at=installation.installed_at,
            ),
        )
        _logger.info(
            "workspace_installed",
            team_id=team_id,
            installer=installation.user_id,
            has_user_token=bool(installation.user_token),
        )

    def save_bot(self, bot: Bot) -> None:
        # Bot-only records carry no user token; the full installation is saved via save().
        _logger.debug("bot_installation_ignored", team_id=bot.team_id)

    def find_installation(
        self,
        *,
        enterprise_id: str | None,
        team_id: str | None,
        user_id: str | None = None,
        is_enterprise_install: bool | None = False,
    ) -> Installation | None:
        credential = self._find(team_id)
        if credential is None:
            return None
        if user_id is not None and user_id != credential.installer_user_id:
            return None

        return Installation(
            enterprise_id=enterprise_id,
            team_id=team_id,
            bot_token=credential.bot_token or None,
            bot_user_id=credential.bot_user_id or None,
            user_id=credential.installer_user_id,
            user_token=credential.user_token or None,
            installed_at=credential.installed_at,
        )

    def find_bot(
        self,
        *,
        enterprise_id: str | None,
        team_id: str | None,
        is_enterprise_install: bool | None = False,
    ) -> Bot | None:
        credential = self._find(team_id)
        if credential is None or not credential.bot_token:
            return None

        return Bot(
            enterprise_id=enterprise_id,
            team_id=team_id,
            bot_token=credential.bot_token,
            bot_id="",
            bot_user_id=credential.bot_user_id,
            # 0.0 marks a credential stored without an install time
            installed_at=credential.installed_at if credential.installed_at is not None else 0.0,
        )

    def _find(self, team_id: str | None) -> Credential | None:
        if not team_id:
            return None
        try:
            return self._store.get(team_id)
        except CredentialNotFoundError:
            return None

from abc import ABC, abstractmethod
from datetime import UTC, datetime

import structlog
from sqlalchemy.exc import IntegrityError

from invitechan.credentials.models import TeamCredential
from invitechan.credentials.types import Credential
from invitechan.errors import CredentialError, CredentialNotFoundError
from invitechan.util.db import get_session

_logger = structlog.get_logger()


def _timestamp(value: datetime) -> float:
    # SQLite hands timezone-aware columns back naive
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.timestamp()


class AbstractCredentialStore(ABC):
    @abstractmethod
    def get(self, team_id: str) -> Credential:
        """Return the credential installed for *team_id*.

        Raises:
            CredentialNotFoundError: nothing is installed for the team.
        """
        ...

    @abstractmethod
    def put(self, team_id: str, credential: Credential) -> None:
        """Store *credential* for *team_id*, overwriting any previous install."""
        ...


class SqlCredentialStore(AbstractCredentialStore):
    """Credential store backed by the ``team_credentials`` table."""

    def get(self, team_id: str) -> Credential:
        with get_session() as session:
            row = session.get(TeamCredential, team_id)
            if row is None:
                raise CredentialNotFoundError(team_id)
            return Credential(
                user_token=row.user_token,
                bot_token=row.bot_token,
                installer_user_id=row.installer_user_id,
                bot_user_id=row.bot_user_id,
                installed_at=_timestamp(row.installed_at),
            )

    def put(self, team_id: str, credential: Credential) -> None:
        try:
            self._merge(team_id, credential)
        except IntegrityError:
            # a concurrent install of the same team inserted first, merge onto its row
            _logger.info("credential_store_retry", team_id=team_id)
            self._merge(team_id, credential)
        _logger.info("credential_stored", team_id=team_id, valid=credential.valid)

    def _merge(self, team_id: str, credential: Credential) -> None:
        row = TeamCredential(
            team_id=team_id,
            bot_token=credential.bot_token,
            user_token=credential.user_token,
            installer_user_id=credential.installer_user_id,
            bot_user_id=credential.bot_user_id,
        )
        if credential.installed_at is not None:
            row.installed_at = datetime.fromtimestamp(credential.installed_at, UTC)
        with get_session() as session:
            session.merge(row)
            session.commit()


class CredentialResolver:
    """Single resolution policy for a request's workspace credential.

    A valid *fixed* credential (single-workspace deployment) always wins;
    otherwise the team's installation is looked up in *store*.
    """

    def __init__(
        self,
        store: AbstractCredentialStore | None = None,
        fixed: Credential | None = None,
    ) -> None:
        self._store = store
        self._fixed = fixed if fixed is not None and fixed.valid else None

    def resolve(self, team_id: str) -> Credential:
        if self._fixed is not None:
            return self._fixed

        if self._store is None:
            raise CredentialError("no fixed credentials configured and no credential store")

        try:
            credential = self._store.get(team_id)
        except CredentialError:
            raise
        except Exception as e:
            _logger.exception("credential_lookup_failed", team_id=team_id)
            raise CredentialError(f"credential lookup failed: {e}") from e

        if not credential.valid:
            raise CredentialError(f"incomplete credentials installed for team {team_id!r}")
        return credential

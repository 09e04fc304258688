from unittest.mock import MagicMock

import pytest
from slack_sdk.oauth.installation_store import Bot, Installation
from sqlalchemy.exc import IntegrityError

from invitechan.credentials import Credential, CredentialResolver, SqlCredentialStore
from invitechan.credentials.installation import CredentialInstallationStore
from invitechan.errors import CredentialError, CredentialNotFoundError


class TestCredential:
    def test_valid_needs_both_tokens(self) -> None:
        assert Credential(user_token="u", bot_token="b").valid
        assert not Credential(user_token="", bot_token="b").valid
        assert not Credential(user_token="u", bot_token="").valid


@pytest.mark.usefixtures("memory_db")
class TestSqlCredentialStore:
    def test_get_unknown_team_raises_not_found(self) -> None:
        store = SqlCredentialStore()

        with pytest.raises(CredentialNotFoundError) as exc_info:
            store.get("T404")

        assert exc_info.value.team_id == "T404"

    def test_put_then_get(self) -> None:
        store = SqlCredentialStore()
        credential = Credential(
            user_token="xoxp-1",
            bot_token="xoxb-1",
            installer_user_id="U1",
            bot_user_id="B1",
        )

        store.put("T1", credential)

        assert store.get("T1") == credential

    def test_reinstall_overwrites(self) -> None:
        store = SqlCredentialStore()
        store.put("T1", Credential(user_token="xoxp-old", bot_token="xoxb-old"))

        store.put("T1", Credential(user_token="xoxp-new", bot_token="xoxb-new"))

        assert store.get("T1") == Credential(user_token="xoxp-new", bot_token="xoxb-new")

    def test_teams_are_isolated(self) -> None:
        store = SqlCredentialStore()
        store.put("T1", Credential(user_token="u1", bot_token="b1"))
        store.put("T2", Credential(user_token="u2", bot_token="b2"))

        assert store.get("T1").bot_token == "b1"
        assert store.get("T2").bot_token == "b2"

    def test_installed_at_is_stored(self) -> None:
        store = SqlCredentialStore()

        store.put("T1", Credential(user_token="u", bot_token="b", installed_at=1700000000.0))

        assert store.get("T1").installed_at == 1700000000.0

    def test_reinstall_without_time_keeps_installed_at(self) -> None:
        store = SqlCredentialStore()
        store.put("T1", Credential(user_token="u", bot_token="b", installed_at=1700000000.0))

        store.put("T1", Credential(user_token="u2", bot_token="b2"))

        stored = store.get("T1")
        assert stored.bot_token == "b2"
        assert stored.installed_at == 1700000000.0

    def test_concurrent_insert_is_merged_on_retry(self, monkeypatch: pytest.MonkeyPatch) -> None:
        store = SqlCredentialStore()
        merge = MagicMock(side_effect=[IntegrityError("INSERT", {}, Exception("UNIQUE")), None])
        monkeypatch.setattr(store, "_merge", merge)
        credential = Credential(user_token="u", bot_token="b")

        store.put("T1", credential)

        assert merge.call_count == 2
        merge.assert_called_with("T1", credential)


class TestCredentialResolver:
    def test_valid_fixed_credential_wins(self) -> None:
        store = MagicMock()
        fixed = Credential(user_token="xoxp-fixed", bot_token="xoxb-fixed")

        resolver = CredentialResolver(store=store, fixed=fixed)

        assert resolver.resolve("T1") is fixed
        store.get.assert_not_called()

    def test_incomplete_fixed_credential_falls_back_to_store(self) -> None:
        store = MagicMock()
        stored = Credential(user_token="xoxp-team", bot_token="xoxb-team")
        store.get.return_value = stored

        resolver = CredentialResolver(store=store, fixed=Credential(user_token="", bot_token="xoxb"))

        assert resolver.resolve("T1") is stored
        store.get.assert_called_once_with("T1")

    def test_unknown_team_is_credential_error(self) -> None:
        store = MagicMock()
        store.get.side_effect = CredentialNotFoundError("T1")

        with pytest.raises(CredentialError, match="T1"):
            CredentialResolver(store=store).resolve("T1")

    def test_incomplete_stored_credential_is_rejected(self) -> None:
        store = MagicMock()
        store.get.return_value = Credential(user_token="", bot_token="xoxb")

        with pytest.raises(CredentialError, match="incomplete"):
            CredentialResolver(store=store).resolve("T1")

    def test_store_failure_is_wrapped(self) -> None:
        store = MagicMock()
        store.get.side_effect = RuntimeError("database is locked")

        with pytest.raises(CredentialError, match="database is locked"):
            CredentialResolver(store=store).resolve("T1")

    def test_no_fixed_and_no_store(self) -> None:
        with pytest.raises(CredentialError):
            CredentialResolver().resolve("T1")


class TestCredentialInstallationStore:
    def _installation(self, **overrides: object) -> Installation:
        fields: dict[str, object] = {
            "team_id": "T1",
            "user_id": "U_ADMIN",
            "bot_token": "xoxb-1",
            "bot_user_id": "B1",
            "user_token": "xoxp-1",
        }
        fields.update(overrides)
        return Installation(**fields)  # type: ignore[arg-type]

    def test_save_puts_token_pair(self) -> None:
        store = MagicMock()

        CredentialInstallationStore(store).save(self._installation())

        store.put.assert_called_once_with(
            "T1",
            Credential(
                user_token="xoxp-1",
                bot_token="xoxb-1",
                installer_user_id="U_ADMIN",
                bot_user_id="B1",
            ),
        )

    def test_save_without_team_is_skipped(self) -> None:
        store = MagicMock()

        CredentialInstallationStore(store).save(self._installation(team_id=None))

        store.put.assert_not_called()

    def test_find_installation_for_team(self) -> None:
        store = MagicMock()
        store.get.return_value = Credential(
            user_token="xoxp-1", bot_token="xoxb-1", installer_user_id="U_ADMIN"
        )

        installation = CredentialInstallationStore(store).find_installation(
            enterprise_id=None, team_id="T1"
        )

        assert installation is not None
        assert installation.bot_token == "xoxb-1"
        assert installation.user_token == "xoxp-1"
        assert installation.user_id == "U_ADMIN"

    def test_find_installation_for_other_user_is_none(self) -> None:
        store = MagicMock()
        store.get.return_value = Credential(
            user_token="xoxp-1", bot_token="xoxb-1", installer_user_id="U_ADMIN"
        )

        installation = CredentialInstallationStore(store).find_installation(
            enterprise_id=None, team_id="T1", user_id="U_GUEST"
        )

        assert installation is None

    def test_find_installation_unknown_team(self) -> None:
        store = MagicMock()
        store.get.side_effect = CredentialNotFoundError("T9")

        assert (
            CredentialInstallationStore(store).find_installation(enterprise_id=None, team_id="T9")
            is None
        )

    def test_find_bot(self) -> None:
        store = MagicMock()
        store.get.return_value = Credential(user_token="u", bot_token="xoxb-1", bot_user_id="B1")

        bot = CredentialInstallationStore(store).find_bot(enterprise_id=None, team_id="T1")

        assert isinstance(bot, Bot)
        assert bot.bot_token == "xoxb-1"
        assert bot.bot_user_id == "B1"

    def test_find_bot_reports_stored_install_time(self) -> None:
        store = MagicMock()
        store.get.return_value = Credential(
            user_token="u", bot_token="xoxb-1", installed_at=1700000000.0
        )

        bot = CredentialInstallationStore(store).find_bot(enterprise_id=None, team_id="T1")

        assert bot is not None
        assert bot.installed_at == 1700000000.0

    def test_find_bot_without_team(self) -> None:
        store = MagicMock()

        assert CredentialInstallationStore(store).find_bot(enterprise_id=None, team_id=None) is None
        store.get.assert_not_called()

    @pytest.mark.usefixtures("memory_db")
    def test_round_trip_through_sql_store(self) -> None:
        bridge = CredentialInstallationStore(SqlCredentialStore())

        bridge.save(self._installation())
        installation = bridge.find_installation(enterprise_id=None, team_id="T1")

        assert installation is not None
        assert installation.bot_token == "xoxb-1"
        assert installation.user_token == "xoxp-1"

    @pytest.mark.usefixtures("memory_db")
    def test_install_time_round_trips_through_sql_store(self) -> None:
        bridge = CredentialInstallationStore(SqlCredentialStore())

        bridge.save(self._installation(installed_at=1700000000.0))
        bot = bridge.find_bot(enterprise_id=None, team_id="T1")

        assert bot is not None
        assert bot.installed_at == 1700000000.0

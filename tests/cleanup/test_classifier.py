"""
Unit tests for LdapStatusChecker.

Runs every classification against an in-memory SQLite account store.
"""

from unittest.mock import MagicMock

import pytest

from cleanup.classifier import (
    LdapStatusChecker,
    classify_never_logged_in,
    classify_to_delete,
    classify_to_reactivate,
    classify_to_suspend,
)
from cleanup.diagnostics import ALREADY_ACTIVE, DIRECTORY_EMPTY, MARKED, MISSING_ARCHIVE
from cleanup.exceptions import RepositoryError
from cleanup.models import ArchivedUser
from cleanup.repository import AccountRepository
from directory.snapshot import DirectorySnapshot

DAY = 86400


def usernames(users):
    return [user.username for user in users]


class TestGetToSuspend:
    """Tests for accounts missing from the directory."""

    def test_absent_user_is_marked(self, store, checker, now):
        """Only the account missing from the directory is returned."""
        store.add_user(10, "alice")
        store.add_user(11, "bob", lastaccess=now - DAY)

        result = checker.get_to_suspend(DirectorySnapshot.from_identifiers(["alice"]))

        assert result == [ArchivedUser(11, False, now - DAY, "bob", False)]

    def test_empty_snapshot_suspends_nobody(self, store, checker, observer):
        store.add_user(10, "alice")
        store.add_user(11, "bob")

        assert checker.get_to_suspend(DirectorySnapshot.empty()) == []
        assert checker.get_to_suspend(None) == []
        assert len(observer.of_kind(DIRECTORY_EMPTY)) == 2

    def test_site_admin_is_never_suspended(self, store, checker):
        store.add_user(2, "admin")
        store.add_user(11, "bob")

        result = checker.get_to_suspend(DirectorySnapshot.from_identifiers(["alice"]))

        assert usernames(result) == ["bob"]

    def test_suspended_deleted_and_other_auth_ignored(self, store, checker):
        store.add_user(11, "bob", suspended=1)
        store.add_user(12, "carl", deleted=1)
        store.add_user(13, "dina", auth="manual")
        store.add_user(14, "erin")

        result = checker.get_to_suspend(DirectorySnapshot.from_identifiers(["alice"]))

        assert usernames(result) == ["erin"]

    def test_match_is_case_sensitive(self, store, checker):
        store.add_user(10, "alice")

        result = checker.get_to_suspend(DirectorySnapshot.from_identifiers(["Alice"]))

        assert usernames(result) == ["alice"]

    def test_results_follow_repository_order(self, store, checker):
        store.add_user(30, "zed")
        store.add_user(20, "mia")
        store.add_user(25, "amy")

        result = checker.get_to_suspend(DirectorySnapshot.from_identifiers(["alice"]))

        assert [user.id for user in result] == [20, 25, 30]

    def test_plain_set_works_as_snapshot(self, store, checker):
        store.add_user(10, "alice")
        store.add_user(11, "bob")

        assert usernames(checker.get_to_suspend({"alice"})) == ["bob"]

    def test_callable_privilege_predicate(self, store, config, repository):
        store.add_user(10, "alice")
        store.add_user(11, "bob")
        checker = LdapStatusChecker(
            config, repository, privilege_predicate=lambda account: account.username == "bob"
        )

        assert usernames(checker.get_to_suspend({"carol"})) == ["alice"]


class TestGetNeverLoggedIn:
    """Tests for the never-signed-in report."""

    def test_never_logged_in_selection(self, store, checker):
        store.add_user(10, "alice", lastaccess=0, firstname="Alice")
        store.add_user(11, "bob", lastaccess=0, firstname="Anonym")
        store.add_user(12, "carl", lastaccess=0, deleted=1)
        store.add_user(13, "dina")
        store.add_user(14, "erin", lastaccess=0, auth="manual")
        store.add_user(15, "fred", lastaccess=0, suspended=1)

        result = checker.get_never_logged_in()

        assert usernames(result) == ["alice", "fred"]
        assert result[1].suspended is True

    def test_no_privilege_check(self, store, checker):
        store.add_user(2, "admin", lastaccess=0)

        assert usernames(checker.get_never_logged_in()) == ["admin"]


class TestGetToDelete:
    """Tests for accounts suspended by the tool past the threshold."""

    def test_archive_fields_are_returned(self, store, checker, now):
        """Account 5, suspended 40 days ago with a 30 day threshold."""
        store.suspend_by_tool(5, "dave", days_ago=40, lastaccess=now - 200 * DAY)

        result = checker.get_to_delete()

        assert result == [ArchivedUser(5, False, now - 200 * DAY, "dave", False)]

    def test_missing_archive_is_skipped_and_reported(self, store, checker, observer):
        store.suspend_by_tool(5, "dave", days_ago=40, archive=False)

        assert checker.get_to_delete() == []

        events = observer.of_kind(MISSING_ARCHIVE)
        assert len(events) == 1
        assert events[0].account_id == 5
        assert events[0].operation == "get_to_delete"

    def test_threshold_not_exceeded(self, store, checker, observer):
        store.suspend_by_tool(5, "dave", days_ago=30)
        store.suspend_by_tool(6, "emma", days_ago=10, archive=False)

        assert checker.get_to_delete() == []
        assert observer.of_kind(MISSING_ARCHIVE) == []

    def test_suspended_by_someone_else_is_skipped(self, store, checker, now):
        store.add_user(6, "erin", suspended=1, lastaccess=now - 400 * DAY)
        store.add_archive(6, "erin")

        assert checker.get_to_delete() == []

    def test_suspended_without_login_and_real_name_is_excluded(self, store, checker):
        store.add_user(8, "frank", suspended=1, lastaccess=0, firstname="Frank")
        store.add_marker(8, 0)
        store.add_archive(8, "frank")

        assert checker.get_to_delete() == []

    def test_suspended_with_login_is_candidate(self, store, checker, now):
        store.add_user(8, "frank", suspended=1, lastaccess=now - 90 * DAY, firstname="Frank")
        store.add_marker(8, now - 60 * DAY)
        store.add_archive(8, "frank", lastaccess=now - 90 * DAY)

        assert usernames(checker.get_to_delete()) == ["frank"]

    def test_site_admin_is_never_deleted(self, store, checker):
        store.suspend_by_tool(2, "root", days_ago=400)

        assert checker.get_to_delete() == []

    def test_deleted_accounts_are_ignored(self, store, checker, now):
        store.add_user(9, "gina", suspended=1, deleted=1, lastaccess=now - DAY)
        store.add_marker(9, now - 100 * DAY)
        store.add_archive(9, "gina")

        assert checker.get_to_delete() == []

    def test_marked_event_names_archive_and_live_username(self, store, checker, observer):
        store.suspend_by_tool(5, "dave", days_ago=40)

        checker.get_to_delete()

        marked = observer.of_kind(MARKED)
        assert [event.message for event in marked] == ["dave / anonym5 marked"]


class TestGetToReactivate:
    """Tests for tool-suspended accounts back in the directory."""

    def test_back_in_directory(self, store, checker, now):
        """Account 7 archived as 'carol', present in the directory again."""
        store.suspend_by_tool(7, "carol", days_ago=5, lastaccess=now - 50 * DAY)

        result = checker.get_to_reactivate(DirectorySnapshot.from_identifiers(["carol"]))

        assert result == [ArchivedUser(7, False, now - 50 * DAY, "carol", False)]

    def test_still_absent_from_directory(self, store, checker):
        store.suspend_by_tool(7, "carol", days_ago=5)

        assert checker.get_to_reactivate(DirectorySnapshot.from_identifiers(["dave"])) == []

    def test_empty_snapshot_reactivates_nobody(self, store, checker, observer):
        store.suspend_by_tool(7, "carol", days_ago=5)

        assert checker.get_to_reactivate(DirectorySnapshot.empty()) == []
        assert len(observer.of_kind(DIRECTORY_EMPTY)) == 1

    def test_live_account_with_same_username_is_skipped(self, store, checker, observer):
        store.suspend_by_tool(7, "carol", days_ago=5)
        store.add_user(20, "carol")

        assert checker.get_to_reactivate(DirectorySnapshot.from_identifiers(["carol"])) == []

        events = observer.of_kind(ALREADY_ACTIVE)
        assert [event.account_id for event in events] == [7]

    def test_missing_archive_is_skipped_and_reported(self, store, checker, observer):
        store.suspend_by_tool(7, "carol", days_ago=5, archive=False)

        assert checker.get_to_reactivate(DirectorySnapshot.from_identifiers(["carol"])) == []
        assert [event.account_id for event in observer.of_kind(MISSING_ARCHIVE)] == [7]

    def test_suspended_by_someone_else_is_skipped(self, store, checker):
        store.add_user(7, "anonym7", suspended=1, lastaccess=0, firstname="Anonym")
        store.add_archive(7, "carol")

        assert checker.get_to_reactivate(DirectorySnapshot.from_identifiers(["carol"])) == []

    def test_site_admin_is_never_reactivated(self, store, checker):
        store.suspend_by_tool(2, "root", days_ago=5)

        assert checker.get_to_reactivate(DirectorySnapshot.from_identifiers(["root"])) == []


class TestRunProperties:
    """Tests spanning several operations."""

    def test_repeated_calls_are_identical(self, store, checker):
        store.add_user(11, "bob")
        store.suspend_by_tool(5, "dave", days_ago=40)
        store.suspend_by_tool(7, "carol", days_ago=5)
        snapshot = DirectorySnapshot.from_identifiers(["carol"])

        first = (
            checker.get_to_suspend(snapshot),
            checker.get_never_logged_in(),
            checker.get_to_delete(),
            checker.get_to_reactivate(snapshot),
        )
        second = (
            checker.get_to_suspend(snapshot),
            checker.get_never_logged_in(),
            checker.get_to_delete(),
            checker.get_to_reactivate(snapshot),
        )

        assert first == second
        assert usernames(first[0]) == ["bob"]

    def test_classification_does_not_write(self, store, checker, db_adapter):
        store.add_user(11, "bob")
        store.suspend_by_tool(5, "dave", days_ago=40)
        before = db_adapter.fetch_all('SELECT * FROM "user" ORDER BY id')

        checker.get_to_suspend({"alice"})
        checker.get_to_delete()

        assert db_adapter.fetch_all('SELECT * FROM "user" ORDER BY id') == before

    @pytest.mark.parametrize(
        "call",
        [
            lambda c: c.get_to_suspend({"alice"}),
            lambda c: c.get_never_logged_in(),
            lambda c: c.get_to_delete(),
            lambda c: c.get_to_reactivate({"alice"}),
        ],
    )
    def test_repository_failure_propagates(self, config, call):
        repository = MagicMock(spec=AccountRepository)
        repository.query_accounts.side_effect = RepositoryError("connection lost")
        checker = LdapStatusChecker(config, repository)

        with pytest.raises(RepositoryError):
            call(checker)


class TestModuleFunctions:
    """Tests for the one-shot classify_* helpers."""

    def test_one_shot_helpers(self, store, repository, config, now):
        store.add_user(10, "alice")
        store.add_user(11, "bob", lastaccess=0, firstname="Bob")
        store.suspend_by_tool(5, "dave", days_ago=40)
        store.suspend_by_tool(7, "carol", days_ago=5)
        snapshot = DirectorySnapshot.from_identifiers(["alice", "carol"])
        admins = lambda account: account.id in config.site_admin_ids

        assert usernames(classify_to_suspend(snapshot, repository, admins, config)) == ["bob"]
        assert usernames(classify_never_logged_in(repository, config)) == ["bob"]
        assert usernames(classify_to_delete(repository, admins, config, now=now)) == ["dave"]
        assert usernames(classify_to_reactivate(snapshot, repository, admins, config)) == ["carol"]

    def test_delete_uses_given_time(self, store, repository, config, now):
        store.suspend_by_tool(5, "dave", days_ago=40)

        earlier = now - 20 * DAY
        assert classify_to_delete(repository, lambda a: False, config, now=earlier) == []

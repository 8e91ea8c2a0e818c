"""
Shared fixtures: an in-memory SQLite account store with the user, marker and
archive tables, plus helpers to seed rows.
"""

from datetime import timedelta

import pytest
from sqlalchemy import text

from cleanup.classifier import LdapStatusChecker
from cleanup.config import CleanupConfig
from cleanup.diagnostics import CollectingObserver
from database.adapters.database_adapter import DatabaseAdapter
from database.repositories.account_repository import SQLAccountRepository

DAY = 86400
NOW = 1_700_000_000

SCHEMA = [
    """
    CREATE TABLE "user" (
        id INTEGER PRIMARY KEY,
        auth TEXT NOT NULL,
        suspended INTEGER NOT NULL DEFAULT 0,
        deleted INTEGER NOT NULL DEFAULT 0,
        lastaccess INTEGER NOT NULL DEFAULT 0,
        username TEXT NOT NULL UNIQUE,
        firstname TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE tool_cleanupusers (
        id INTEGER PRIMARY KEY,
        timestamp INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE tool_cleanupusers_archive (
        id INTEGER PRIMARY KEY,
        auth TEXT NOT NULL DEFAULT 'ldap',
        suspended INTEGER NOT NULL DEFAULT 0,
        deleted INTEGER NOT NULL DEFAULT 0,
        lastaccess INTEGER NOT NULL DEFAULT 0,
        username TEXT NOT NULL,
        firstname TEXT NOT NULL DEFAULT ''
    )
    """,
]


class AccountStore:
    """Seeds rows into the test database."""

    def __init__(self, adapter: DatabaseAdapter):
        self.adapter = adapter

    def _insert(self, statement: str, params: dict) -> None:
        with self.adapter.engine.begin() as conn:
            conn.execute(text(statement), params)

    def add_user(
        self,
        id,
        username,
        suspended=0,
        deleted=0,
        lastaccess=NOW - 10 * DAY,
        auth="ldap",
        firstname="Test",
    ):
        self._insert(
            'INSERT INTO "user" (id, auth, suspended, deleted, lastaccess, username, firstname) '
            "VALUES (:id, :auth, :suspended, :deleted, :lastaccess, :username, :firstname)",
            locals_without_self(locals()),
        )

    def add_marker(self, id, timestamp):
        self._insert(
            "INSERT INTO tool_cleanupusers (id, timestamp) VALUES (:id, :timestamp)",
            {"id": id, "timestamp": timestamp},
        )

    def add_archive(
        self,
        id,
        username,
        suspended=0,
        deleted=0,
        lastaccess=NOW - 100 * DAY,
        auth="ldap",
        firstname="Test",
    ):
        self._insert(
            "INSERT INTO tool_cleanupusers_archive "
            "(id, auth, suspended, deleted, lastaccess, username, firstname) "
            "VALUES (:id, :auth, :suspended, :deleted, :lastaccess, :username, :firstname)",
            locals_without_self(locals()),
        )

    def suspend_by_tool(self, id, archived_username, days_ago, archive=True, **archive_fields):
        """Anonymized suspended live row plus marker (and archive unless disabled)."""
        self.add_user(
            id, f"anonym{id}", suspended=1, lastaccess=0, firstname="Anonym"
        )
        self.add_marker(id, NOW - days_ago * DAY)
        if archive:
            self.add_archive(id, archived_username, **archive_fields)


def locals_without_self(values: dict) -> dict:
    return {k: v for k, v in values.items() if k != "self"}


@pytest.fixture
def db_adapter():
    adapter = DatabaseAdapter("sqlite:///:memory:")
    with adapter.engine.begin() as conn:
        for statement in SCHEMA:
            conn.execute(text(statement))
    yield adapter
    adapter.close()


@pytest.fixture
def store(db_adapter):
    return AccountStore(db_adapter)


@pytest.fixture
def repository(db_adapter):
    return SQLAccountRepository(db_adapter)


@pytest.fixture
def config():
    return CleanupConfig(
        auth_method="ldap",
        delete_threshold=timedelta(days=30),
        placeholder_name="Anonym",
        site_admin_ids=frozenset({2}),
    )


@pytest.fixture
def observer():
    return CollectingObserver()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def checker(config, repository, observer):
    return LdapStatusChecker(config, repository, observer=observer, clock=lambda: NOW)

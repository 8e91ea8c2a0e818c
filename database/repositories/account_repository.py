"""
SQL implementation of the account repository.

Reads the live user table, the suspension marker table and the archive table
through a DatabaseAdapter. Statements are built with SQLAlchemy Core
``table()``/``select()`` so values are bound parameters and table names are
quoted by the engine's dialect.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import Select, TableClause, column, or_, select, table
from sqlalchemy.exc import SQLAlchemyError

from cleanup.exceptions import ConfigurationError, RepositoryError
from cleanup.models import AccountRecord
from cleanup.repository import AccountRepository
from database.adapters.database_adapter import DatabaseAdapter

logger = logging.getLogger(__name__)

ACCOUNT_COLUMNS = ("id", "suspended", "lastaccess", "username", "deleted", "auth", "firstname")
ARCHIVE_COLUMNS = ("id", "suspended", "lastaccess", "username", "deleted")
MARKER_COLUMNS = ("id", "timestamp")


def _table(name: str, columns) -> TableClause:
    if not isinstance(name, str) or not name.strip():
        raise ConfigurationError(f"Invalid table name: {name!r}")
    return table(name, *(column(c) for c in columns))


class SQLAccountRepository(AccountRepository):
    """
    Account repository backed by SQL tables.

    Default table names follow the cleanup plugin layout: ``user`` for live
    accounts, ``tool_cleanupusers`` for suspension markers (id, timestamp) and
    ``tool_cleanupusers_archive`` for the archived account copies.
    """

    def __init__(
        self,
        db_adapter: DatabaseAdapter,
        user_table: str = "user",
        marker_table: str = "tool_cleanupusers",
        archive_table: str = "tool_cleanupusers_archive",
    ):
        """
        Args:
            db_adapter: DatabaseAdapter instance for database operations
            user_table: Live account table
            marker_table: Table of accounts suspended by this tool
            archive_table: Table of account copies taken at suspension time
        """
        self.db = db_adapter
        self.user_table = _table(user_table, ACCOUNT_COLUMNS)
        self.marker_table = _table(marker_table, MARKER_COLUMNS)
        self.archive_table = _table(archive_table, ARCHIVE_COLUMNS)
        logger.debug("SQLAccountRepository initialized")

    def _fetch(self, statement: Select) -> List[Dict[str, Any]]:
        try:
            return self.db.fetch_all(statement)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Account store query failed: {e}") from e

    def _exists(self, source: TableClause, column_name: str, value: Any) -> bool:
        key = source.c[column_name]
        return bool(self._fetch(select(key).where(key == value).limit(1)))

    def select_accounts(
        self,
        auth_method: str,
        *,
        suspended: Optional[bool] = None,
        deleted: Optional[bool] = None,
        lastaccess: Optional[int] = None,
        firstname_not: Optional[str] = None,
        lastaccess_nonzero_or_firstname: Optional[str] = None,
    ) -> Select:
        """
        Build the SELECT behind query_accounts.

        Returns:
            Select: Statement over the user table, ordered by id
        """
        users = self.user_table.c
        statement = select(*(users[c] for c in ACCOUNT_COLUMNS)).where(users.auth == auth_method)

        if deleted is not None:
            statement = statement.where(users.deleted == int(deleted))
        if suspended is not None:
            statement = statement.where(users.suspended == int(suspended))
        if lastaccess is not None:
            statement = statement.where(users.lastaccess == lastaccess)
        if firstname_not is not None:
            statement = statement.where(users.firstname != firstname_not)
        if lastaccess_nonzero_or_firstname is not None:
            statement = statement.where(
                or_(users.lastaccess != 0, users.firstname == lastaccess_nonzero_or_firstname)
            )

        return statement.order_by(users.id)

    def query_accounts(
        self,
        auth_method: str,
        *,
        suspended: Optional[bool] = None,
        deleted: Optional[bool] = None,
        lastaccess: Optional[int] = None,
        firstname_not: Optional[str] = None,
        lastaccess_nonzero_or_firstname: Optional[str] = None,
    ) -> List[AccountRecord]:
        statement = self.select_accounts(
            auth_method,
            suspended=suspended,
            deleted=deleted,
            lastaccess=lastaccess,
            firstname_not=firstname_not,
            lastaccess_nonzero_or_firstname=lastaccess_nonzero_or_firstname,
        )
        logger.debug(f"Selecting accounts: {statement}")

        return [AccountRecord.from_row(row) for row in self._fetch(statement)]

    def suspension_marker_exists(self, account_id: int) -> bool:
        return self._exists(self.marker_table, "id", account_id)

    def get_suspension_marker(self, account_id: int) -> Optional[Dict[str, Any]]:
        markers = self.marker_table.c
        rows = self._fetch(select(markers.id, markers.timestamp).where(markers.id == account_id))
        if not rows:
            return None
        return {"id": int(rows[0]["id"]), "timestamp": int(rows[0]["timestamp"])}

    def archive_exists(self, account_id: int) -> bool:
        return self._exists(self.archive_table, "id", account_id)

    def get_archive(self, account_id: int) -> Optional[AccountRecord]:
        archive = self.archive_table.c
        rows = self._fetch(
            select(*(archive[c] for c in ARCHIVE_COLUMNS)).where(archive.id == account_id)
        )
        return AccountRecord.from_row(rows[0]) if rows else None

    def account_exists_by_identity(self, username: str) -> bool:
        return self._exists(self.user_table, "username", username)

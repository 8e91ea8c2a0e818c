"""
SQL database adapter for the account store.

This adapter wraps a SQLAlchemy engine and gives the repositories a small,
read-oriented interface: fetch rows as dictionaries.
"""

import logging
import os
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.sql.expression import Executable

logger = logging.getLogger(__name__)


class DatabaseAdapter:
    """
    Database adapter for account store operations.

    Works against any SQLAlchemy URL. Server databases (PostgreSQL, MySQL)
    get a connection pool; SQLite is used for local runs and tests.
    """

    def __init__(self, database_url: str, pool_size: int = 5, max_overflow: int = 10):
        """
        Initialize database connection with connection pooling.

        Args:
            database_url (str): SQLAlchemy connection string
            pool_size (int): Number of connections to maintain in the pool
            max_overflow (int): Maximum overflow connections beyond pool_size

        Raises:
            ConnectionError: If the database cannot be reached
        """
        self.database_url = database_url
        self.engine = self._create_engine(database_url, pool_size, max_overflow)

        # Test the connection immediately to catch configuration errors early
        self._test_connection()

        logger.info(f"Database adapter initialized for {self.engine.dialect.name}")

    def _create_engine(self, database_url: str, pool_size: int, max_overflow: int) -> Engine:
        echo = os.getenv('ENABLE_SQL_LOGGING', 'false').lower() == 'true'

        if database_url.startswith('sqlite'):
            # In-memory SQLite needs a single shared connection to keep its data
            return create_engine(
                database_url,
                poolclass=StaticPool,
                connect_args={'check_same_thread': False},
                echo=echo,
            )

        return create_engine(
            database_url,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,  # Validates connections before use
            pool_recycle=3600,   # Recycle connections every hour
            echo=echo,
        )

    def _test_connection(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            raise ConnectionError(f"Cannot connect to database: {e}")

    # =========================================================================
    # QUERY OPERATIONS (Reading Data)
    # =========================================================================

    def fetch_all(
        self, query: Union[str, Executable], params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Execute a SQL query and return every row as a dictionary.

        Args:
            query (str or Executable): SQL text with :named parameters, or a
                SQLAlchemy Core statement
            params (Dict, optional): Query parameters for safe parameter binding

        Returns:
            List[Dict[str, Any]]: Rows in the order returned by the database
        """
        try:
            with self.engine.connect() as conn:
                statement = text(query) if isinstance(query, str) else query
                result = conn.execute(statement, params or {})
                rows = [dict(row) for row in result.mappings()]
            logger.debug(f"Query returned {len(rows)} rows")
            return rows

        except SQLAlchemyError as e:
            logger.error(f"Query failed: {e}")
            raise

    def fetch_one(self, query: Union[str, Executable], params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        rows = self.fetch_all(query, params)
        return rows[0] if rows else None

    def close(self) -> None:
        """
        Close the database connection pool.
        """
        if self.engine:
            self.engine.dispose()
            logger.info("Database adapter closed")


def create_database_adapter() -> DatabaseAdapter:
    """
    Create database adapter using environment configuration.

    Raises:
        ValueError: If DATABASE_URL is not set
    """
    database_url = os.getenv('DATABASE_URL')
    if not database_url:
        raise ValueError("DATABASE_URL environment variable is required")

    pool_size = int(os.getenv('DB_POOL_SIZE', '5'))
    max_overflow = int(os.getenv('DB_MAX_OVERFLOW', '10'))

    return DatabaseAdapter(
        database_url=database_url,
        pool_size=pool_size,
        max_overflow=max_overflow
    )

"""
Database connection module.

Provides scoped, read-only access to the SQLite stores inside a backup
(Manifest.db, the AddressBook, sms.db). A connection is acquired per
pipeline invocation and released on every exit path.
"""

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import List, Tuple, Optional, Any, Union
import logging

from backup_extract.errors import CatalogUnavailable

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """
    Connection manager for one SQLite store inside a backup.

    Opens the store read-only and translates connection failures into
    CatalogUnavailable so callers deal with a single error type.
    """

    def __init__(
        self,
        path: Union[str, Path],
        *,
        use_memory: bool = False,
        label: Optional[str] = None,
    ):
        """
        Initialize database connection.

        Args:
            path: Path to the SQLite file.
            use_memory: Copy the store into RAM before querying.
            label: Friendly name used in log messages.

        Raises:
            CatalogUnavailable: If the file does not exist.
        """
        self.path = Path(path)
        self.use_memory = use_memory
        self.label = label or self.path.name
        self._connection: Optional[sqlite3.Connection] = None

        if not self.path.is_file():
            raise CatalogUnavailable(self.path, cause=FileNotFoundError(str(self.path)))

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def connect(self) -> sqlite3.Connection:
        """
        Establish read-only connection to the store.

        Returns:
            SQLite connection object.

        Raises:
            CatalogUnavailable: If the connection cannot be established.
        """
        if self._connection is not None:
            return self._connection

        uri = f"file:{self.path}?mode=ro"
        try:
            if not self.use_memory:
                self._connection = sqlite3.connect(uri, uri=True)
                logger.info(f"Opened {self.label}: {self.path}")
                return self._connection

            # SQLite's backup API gives a consistent copy even for WAL stores
            with closing(sqlite3.connect(uri, uri=True)) as disk_conn:
                mem_conn = sqlite3.connect(":memory:")
                disk_conn.backup(mem_conn)
                self._connection = mem_conn

            logger.info(f"Loaded {self.label} into memory from: {self.path}")
            return self._connection
        except sqlite3.Error as e:
            logger.error(f"Failed to open {self.label}: {e}")
            raise CatalogUnavailable(self.path, cause=e) from e

    def close(self) -> None:
        """Close database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.debug(f"Closed {self.label}")

    @property
    def connection(self) -> sqlite3.Connection:
        """
        Get database connection.

        Raises:
            RuntimeError: If connection not established.
        """
        if self._connection is None:
            raise RuntimeError("Database connection not established. Call connect() first.")
        return self._connection

    def get_table_names(self) -> List[str]:
        """
        Get all table names in the store.

        Raises:
            CatalogUnavailable: If the file is not a readable SQLite database.
        """
        query = "SELECT `name` FROM `sqlite_master` WHERE `type`='table';"
        try:
            return [row[0] for row in self.execute_query(query)]
        except sqlite3.Error as e:
            raise CatalogUnavailable(self.path, cause=e) from e

    def require_tables(self, *table_names: str) -> None:
        """
        Check that the store has the expected tables.

        Raises:
            CatalogUnavailable: If any table is missing (malformed store).
        """
        present = set(self.get_table_names())
        missing = [name for name in table_names if name not in present]
        if missing:
            raise CatalogUnavailable(
                self.path, cause=LookupError(f"missing tables: {', '.join(missing)}")
            )

    def execute_query(
        self, query: str, parameters: Optional[Tuple[Any, ...]] = None
    ) -> List[Tuple[Any, ...]]:
        """
        Execute a query and return results.

        Args:
            query: SQL query string.
            parameters: Optional query parameters.

        Returns:
            List of result rows.
        """
        with closing(self.connection.cursor()) as cursor:
            if parameters:
                cursor.execute(query, parameters)
            else:
                cursor.execute(query)
            return cursor.fetchall()

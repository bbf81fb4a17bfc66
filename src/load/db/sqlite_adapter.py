"""SQLite database adapter implementation."""

import sqlite3
from pathlib import Path
from typing import Any

from .interface import DatabaseAdapter
from .types import ConnectionError as DBConnectionError
from .types import IntegrityError as DBIntegrityError
from .types import Row, SchemaError, StorageError, TransientStorageError

# Seconds sqlite3 waits on a locked database before raising
DEFAULT_BUSY_TIMEOUT = 5.0


def _translate(error: sqlite3.Error, action: str) -> StorageError:
    """Map a sqlite3 error onto the storage exception hierarchy."""
    if isinstance(error, sqlite3.IntegrityError):
        return DBIntegrityError(f"Integrity constraint violation: {error}")
    message = str(error).lower()
    if isinstance(error, sqlite3.OperationalError) and ("locked" in message or "busy" in message):
        return TransientStorageError(f"{action}: {error}")
    return StorageError(f"{action}: {error}")


class SQLiteAdapter(DatabaseAdapter):
    """SQLite database adapter.

    Wraps sqlite3 to implement the DatabaseAdapter interface.
    """

    def __init__(self, db_path: str | Path, busy_timeout: float = DEFAULT_BUSY_TIMEOUT):
        """Initialize SQLite adapter.

        Args:
            db_path: Path to SQLite database file
            busy_timeout: Seconds to wait for a lock held by another connection
        """
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout
        self._conn: sqlite3.Connection | None = None
        self._schema_file = Path(__file__).parent / "schema_sqlite.sql"

    def _require_connection(self) -> sqlite3.Connection:
        if not self._conn:
            raise StorageError("No active connection")
        return self._conn

    def connect(self) -> None:
        """Establish database connection."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), timeout=self.busy_timeout)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        except (sqlite3.Error, OSError) as e:
            raise DBConnectionError(f"Failed to connect to SQLite database: {e}") from e

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def commit(self) -> None:
        """Commit current transaction."""
        conn = self._require_connection()
        try:
            conn.commit()
        except sqlite3.Error as e:
            raise _translate(e, "Failed to commit transaction") from e

    def rollback(self) -> None:
        """Rollback current transaction."""
        conn = self._require_connection()
        try:
            conn.rollback()
        except sqlite3.Error as e:
            raise _translate(e, "Failed to rollback transaction") from e

    def create_schema(self) -> None:
        """Create all database tables and indexes from the SQL file."""
        conn = self._require_connection()

        if not self._schema_file.exists():
            raise SchemaError(f"Schema file not found: {self._schema_file}")

        try:
            conn.executescript(self._schema_file.read_text())
            conn.commit()
        except sqlite3.Error as e:
            raise SchemaError(f"Failed to create schema: {e}") from e
        except OSError as e:
            raise SchemaError(f"Failed to read schema file: {e}") from e

    def get_tables(self) -> list[str]:
        """Get list of all tables in database."""
        rows = self.fetchall("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
        return [row["name"] for row in rows]

    def get_table_schema(self, table_name: str) -> list[Row]:
        """Get schema information for a specific table."""
        rows = self.execute(f"PRAGMA table_info({table_name})").fetchall()
        return [
            {
                "cid": row[0],
                "name": row[1],
                "type": row[2],
                "notnull": row[3],
                "default": row[4],
                "pk": row[5],
            }
            for row in rows
        ]

    def execute(self, query: str, params: tuple | None = None) -> Any:
        """Execute a query and return cursor."""
        conn = self._require_connection()
        try:
            cursor = conn.cursor()
            if params:
                cursor.execute(query, params)
            else:
                cursor.execute(query)
            return cursor
        except sqlite3.Error as e:
            raise _translate(e, "Query execution failed") from e
        except UnicodeEncodeError as e:
            raise StorageError(f"Query execution failed: parameter is not valid UTF-8: {e}") from e

    def fetchone(self, query: str, params: tuple | None = None) -> Row | None:
        """Execute query and fetch one result as dictionary."""
        row = self.execute(query, params).fetchone()
        return dict(row) if row is not None else None

    def fetchall(self, query: str, params: tuple | None = None) -> list[Row]:
        """Execute query and fetch all results as list of dictionaries."""
        return [dict(row) for row in self.execute(query, params).fetchall()]

    def fetchscalar(self, query: str, params: tuple | None = None) -> Any:
        """Execute query and return first column of first row."""
        row = self.execute(query, params).fetchone()
        return row[0] if row is not None else None

    def exists(self) -> bool:
        """Check if SQLite database file exists."""
        return self.db_path.exists()

    def delete(self) -> None:
        """Delete SQLite database file."""
        if self._conn:
            self.close()
        if self.db_path.exists():
            self.db_path.unlink()

    def drop_schema(self) -> None:
        """Drop all tables in SQLite database."""
        conn = self._require_connection()
        conn.execute("PRAGMA foreign_keys = OFF")
        for table in self.get_tables():
            # sqlite_sequence is maintained by SQLite itself
            if table != "sqlite_sequence":
                conn.execute(f"DROP TABLE IF EXISTS {table}")
        conn.commit()
        conn.execute("PRAGMA foreign_keys = ON")

    def __repr__(self) -> str:
        """String representation."""
        status = "connected" if self._conn else "disconnected"
        return f"SQLiteAdapter(db_path={self.db_path}, status={status})"

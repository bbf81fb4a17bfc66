"""Abstract database adapter interface.

The sync code talks to storage only through this interface, so tests can
substitute a failing or slow adapter without touching SQLite.
"""

from abc import ABC, abstractmethod
from typing import Any

from .types import Row


class DatabaseAdapter(ABC):
    """Abstract database adapter interface."""

    @abstractmethod
    def connect(self) -> None:
        """Establish database connection.

        Raises:
            ConnectionError: If connection fails
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close database connection."""
        pass

    @abstractmethod
    def commit(self) -> None:
        """Commit current transaction.

        Raises:
            StorageError: If commit fails
        """
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Rollback current transaction."""
        pass

    @abstractmethod
    def create_schema(self) -> None:
        """Create all tables and indexes if they do not exist.

        Call run_migrations() afterwards to apply pending schema updates.

        Raises:
            SchemaError: If schema creation fails
        """
        pass

    def run_migrations(self) -> int:
        """Run pending database migrations.

        Returns:
            Number of migrations applied
        """
        from .migrations import MigrationRunner

        runner = MigrationRunner(self)
        return runner.run_migrations()

    @abstractmethod
    def get_tables(self) -> list[str]:
        """Get list of all tables in database."""
        pass

    @abstractmethod
    def get_table_schema(self, table_name: str) -> list[Row]:
        """Get column definitions for a table.

        Returns:
            One dictionary per column with keys name, type, notnull,
            default and pk
        """
        pass

    @abstractmethod
    def execute(self, query: str, params: tuple | None = None) -> Any:
        """Execute a query and return cursor.

        Raises:
            StorageError: If execution fails
            IntegrityError: If integrity constraint violated
            TransientStorageError: If the database is locked or busy
        """
        pass

    @abstractmethod
    def fetchone(self, query: str, params: tuple | None = None) -> Row | None:
        """Execute query and fetch one result as dictionary."""
        pass

    @abstractmethod
    def fetchall(self, query: str, params: tuple | None = None) -> list[Row]:
        """Execute query and fetch all results as list of dictionaries."""
        pass

    @abstractmethod
    def fetchscalar(self, query: str, params: tuple | None = None) -> Any:
        """Execute query and return first column of first row, or None."""
        pass

    @abstractmethod
    def exists(self) -> bool:
        """Check if the database exists."""
        pass

    @abstractmethod
    def delete(self) -> None:
        """Delete the database."""
        pass

    @abstractmethod
    def drop_schema(self) -> None:
        """Drop all tables in the database."""
        pass

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        if exc_type is not None:
            self.rollback()
        else:
            self.commit()
        self.close()
        return False

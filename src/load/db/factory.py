"""Database factory for creating database adapters."""

from dataclasses import dataclass
from pathlib import Path

from .interface import DatabaseAdapter
from .sqlite_adapter import DEFAULT_BUSY_TIMEOUT, SQLiteAdapter


@dataclass
class DatabaseConfig:
    """Database configuration container.

    Attributes:
        db_path: Path to the SQLite database file
        busy_timeout: Seconds to wait on a lock held by another connection
    """

    db_path: Path | str
    busy_timeout: float = DEFAULT_BUSY_TIMEOUT

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.db_path:
            raise ValueError("db_path is required")
        self.db_path = Path(self.db_path)
        if self.busy_timeout < 0:
            raise ValueError(f"busy_timeout must not be negative, got {self.busy_timeout}")


def create_database(config: DatabaseConfig) -> DatabaseAdapter:
    """Create a database adapter.

    Example:
        >>> config = DatabaseConfig(db_path=Path("./highlights.db"))
        >>> adapter = create_database(config)
    """
    return SQLiteAdapter(config.db_path, busy_timeout=config.busy_timeout)


def get_adapter(db_path: Path | str | None = None) -> DatabaseAdapter:
    """Get a database adapter, reading DATABASE_PATH when no path is given.

    Example:
        >>> adapter = get_adapter()
    """
    if db_path is None:
        from common.env import env

        db_path = env.database_path()

    return create_database(DatabaseConfig(db_path=db_path))

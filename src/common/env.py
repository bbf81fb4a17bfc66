"""Environment configuration for koreader-highlights.

All environment variable access goes through this module. Values from a
``.env`` file in the working directory are loaded on import; variables that
are already set in the process environment take precedence over the file.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from .constants import DEFAULT_BOOKS_PATH, DEFAULT_DATABASE_PATH, DEFAULT_MAX_DEPTH

load_dotenv()


class Environment:
    """Interface for accessing environment configuration."""

    @staticmethod
    def books_path() -> Path:
        """Get the directory holding the books and their ``.sdr`` folders.

        Returns:
            Path from BOOKS_PATH, defaults to /Volumes/Kindle/livros
        """
        return Path(os.getenv("BOOKS_PATH", DEFAULT_BOOKS_PATH))

    @staticmethod
    def database_path() -> Path:
        """Get the SQLite database file path.

        Returns:
            Path from DATABASE_PATH, defaults to ./highlights.db
        """
        return Path(os.getenv("DATABASE_PATH", DEFAULT_DATABASE_PATH))

    @staticmethod
    def from_date() -> str | None:
        """Get the start of the sync window (YYYY-MM-DD), if configured."""
        return os.getenv("FROM_DATE") or None

    @staticmethod
    def to_date() -> str | None:
        """Get the end of the sync window (YYYY-MM-DD), if configured."""
        return os.getenv("TO_DATE") or None

    @staticmethod
    def sync_workers() -> int:
        """Get the number of extraction workers.

        Returns:
            Worker count, defaults to 1
        """
        return int(os.getenv("SYNC_WORKERS", "1"))

    @staticmethod
    def lua_max_depth() -> int:
        """Get the maximum table nesting accepted by the decoder.

        Returns:
            Depth limit, defaults to 500
        """
        return int(os.getenv("LUA_MAX_DEPTH", str(DEFAULT_MAX_DEPTH)))

    @staticmethod
    def log_level() -> str:
        """Get the logging level, defaults to INFO."""
        return os.getenv("LOG_LEVEL", "INFO").upper()


env = Environment()

"""Database abstraction layer for the highlights database.

Example:
    >>> from load.db import DatabaseConfig, create_database
    >>>
    >>> adapter = create_database(DatabaseConfig(db_path="highlights.db"))
    >>> adapter.connect()
    >>> adapter.create_schema()
    >>> adapter.run_migrations()
    >>> adapter.close()
"""

from .factory import DatabaseConfig, create_database, get_adapter
from .interface import DatabaseAdapter
from .types import (
    ConnectionError,
    IntegrityError,
    Row,
    SchemaError,
    StorageError,
    TransientStorageError,
)

__all__ = [
    # Factory
    "DatabaseConfig",
    "create_database",
    "get_adapter",
    # Interface
    "DatabaseAdapter",
    # Types and exceptions
    "StorageError",
    "ConnectionError",
    "IntegrityError",
    "SchemaError",
    "TransientStorageError",
    "Row",
]

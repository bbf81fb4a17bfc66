"""Shared types and exceptions for the storage layer."""

from typing import Any


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


class ConnectionError(StorageError):
    """Error connecting to the database."""

    pass


class IntegrityError(StorageError):
    """Database integrity constraint violation."""

    pass


class SchemaError(StorageError):
    """Error with database schema."""

    pass


class TransientStorageError(StorageError):
    """Contention that may clear on retry (database locked or busy)."""

    pass


# Type alias for database rows
Row = dict[str, Any]

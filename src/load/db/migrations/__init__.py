"""Schema migrations for the highlights database.

Tracks applied schema versions and applies newer migration files in order.
"""

from .runner import MigrationRunner

__all__ = ["MigrationRunner"]

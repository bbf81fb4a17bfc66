"""Shared constants for koreader-highlights.

For environment-based configuration use the env module:
    from common.env import env
    books_path = env.books_path()
"""

DEFAULT_BOOKS_PATH = "/Volumes/Kindle/livros"
DEFAULT_DATABASE_PATH = "./highlights.db"

# Nesting limit for decoded metadata tables
DEFAULT_MAX_DEPTH = 500

# KOReader keeps per-book data in "<book file name minus extension>.sdr/"
SIDECAR_SUFFIX = ".sdr"
METADATA_GLOB = "metadata.*.lua"

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

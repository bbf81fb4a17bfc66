"""Logging helpers backed by rich.

Every module gets its logger through ``get_logger(__name__)``. CLI entry
points call ``setup_logging()`` once; the console helpers at the bottom print
the per-file and per-run summaries.

Usage:
    from common.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Syncing 12 metadata files...")
    logger.warning("Skipped malformed file")
"""

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

# Shared console so log records and summary lines interleave correctly
console = Console()
error_console = Console(stderr=True)


def _rich_handler(show_time: bool = False, show_path: bool = False) -> RichHandler:
    handler = RichHandler(
        console=console,
        show_time=show_time,
        show_path=show_path,
        rich_tracebacks=True,
        tracebacks_show_locals=True,
        markup=True,
    )
    handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
    return handler


def get_logger(
    name: str,
    level: str | None = None,
    show_time: bool = False,
    show_path: bool = False,
) -> logging.Logger:
    """Get a logger that writes through rich.

    Args:
        name: Logger name (usually ``__name__``)
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Falls back to the
            LOG_LEVEL environment variable, then INFO.
        show_time: Prefix records with a timestamp
        show_path: Append the emitting file and line

    Returns:
        Configured logger. Calling twice with the same name returns the same
        logger without stacking handlers.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(level.upper())

    logger.addHandler(_rich_handler(show_time=show_time, show_path=show_path))

    # pytest's caplog captures through propagation
    logger.propagate = True

    return logger


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure the root logger for a CLI run.

    Args:
        level: Default level; LOG_LEVEL in the environment wins
        log_file: Optional path that also receives timestamped records
    """
    level = os.getenv("LOG_LEVEL", level).upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(_rich_handler())

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)


def progress(message: str) -> None:
    """Print a plain progress line."""
    console.print(message)


def success(message: str) -> None:
    """Print a line with a green check mark."""
    console.print(f"[green]✓[/green] {message}")


def warning(message: str) -> None:
    """Print a line with a yellow warning sign."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def error(message: str) -> None:
    """Print a line with a red cross to stderr."""
    error_console.print(f"[red]✗[/red] {message}")

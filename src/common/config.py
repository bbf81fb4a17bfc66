"""Run configuration and date-window resolution.

Values are resolved with the precedence: explicit CLI flag, then the
environment (including ``.env``), then built-in defaults. The result is an
immutable ``RunConfig`` handed to the pipeline, which never reads the
environment itself.
"""

import argparse
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path

from .constants import DATE_FORMAT, DEFAULT_MAX_DEPTH
from .env import env
from .errors import ConfigError, InvalidRangeError


@dataclass(frozen=True)
class RunConfig:
    """Everything a sync run needs, resolved up front."""

    books_path: Path
    database_path: Path
    from_date: date
    to_date: date
    workers: int = 1
    max_depth: int = DEFAULT_MAX_DEPTH

    def __post_init__(self):
        if self.from_date > self.to_date:
            raise InvalidRangeError(self.from_date, self.to_date)
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
        if self.max_depth < 1:
            raise ConfigError(f"max_depth must be at least 1, got {self.max_depth}")


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string.

    Raises:
        ConfigError: If the string is not a valid date
    """
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError as e:
        raise ConfigError(f"Invalid date format: '{value}'. Expected YYYY-MM-DD") from e


def week_range(today: date) -> tuple[date, date]:
    """Last Sunday through yesterday.

    On a Sunday the window reaches back to the previous Sunday.
    """
    yesterday = today - timedelta(days=1)
    # date.weekday(): Monday=0 ... Sunday=6
    days_since_sunday = (today.weekday() + 1) % 7 or 7
    return today - timedelta(days=days_since_sunday), yesterday


def last_n_days(today: date, days: int) -> tuple[date, date]:
    """The N days before today, ending yesterday."""
    if days < 1:
        raise ConfigError(f"--last must be a positive number of days, got {days}")
    return today - timedelta(days=days), today - timedelta(days=1)


def resolve_dates(
    from_value: str | None,
    to_value: str | None,
    last: int | None,
    today: date,
) -> tuple[date, date]:
    """Turn the date options of one precedence level into a window.

    Args:
        from_value: Start date string, if given
        to_value: End date string, if given
        last: Number of days back from today, if given
        today: Reference date for relative windows

    Returns:
        (from_date, to_date)

    Raises:
        ConfigError: On conflicting or malformed options
        InvalidRangeError: If the start lies after the end
    """
    if (from_value or to_value) and last is not None:
        raise ConfigError("Use --from/--to OR --last, not both")

    if last is not None:
        return last_n_days(today, last)

    if to_value and not from_value:
        raise ConfigError("Use --from together with --to")

    if from_value:
        from_date = parse_date(from_value)
        to_date = parse_date(to_value) if to_value else today - timedelta(days=1)
        if from_date > to_date:
            raise InvalidRangeError(from_date, to_date)
        return from_date, to_date

    return week_range(today)


def build_config(
    books_path: str | Path | None = None,
    database_path: str | Path | None = None,
    from_value: str | None = None,
    to_value: str | None = None,
    last: int | None = None,
    workers: int | None = None,
    today: date | None = None,
) -> RunConfig:
    """Resolve a ``RunConfig`` from flag values, the environment and defaults.

    Date flags are taken as a group: when none of ``from_value``,
    ``to_value`` or ``last`` is given, FROM_DATE/TO_DATE from the
    environment apply, and when those are unset too the window defaults to
    last Sunday through yesterday.
    """
    today = today or date.today()

    if from_value is None and to_value is None and last is None:
        from_value, to_value = env.from_date(), env.to_date()

    from_date, to_date = resolve_dates(from_value, to_value, last, today)

    try:
        if workers is None:
            workers = env.sync_workers()
        max_depth = env.lua_max_depth()
    except ValueError as e:
        raise ConfigError(f"SYNC_WORKERS and LUA_MAX_DEPTH must be integers: {e}") from e

    return RunConfig(
        books_path=Path(books_path) if books_path else env.books_path(),
        database_path=Path(database_path) if database_path else env.database_path(),
        from_date=from_date,
        to_date=to_date,
        workers=workers,
        max_depth=max_depth,
    )


def add_config_arguments(parser: argparse.ArgumentParser) -> None:
    """Register the flags understood by ``config_from_args``."""
    parser.add_argument(
        "--books-path",
        "-b",
        help="Directory containing the books and their .sdr folders (env: BOOKS_PATH)",
    )
    parser.add_argument(
        "--database-path",
        "-d",
        help="SQLite database file (env: DATABASE_PATH)",
    )
    parser.add_argument("--from", dest="from_date", help="Start date, YYYY-MM-DD")
    parser.add_argument("--to", dest="to_date", help="End date, YYYY-MM-DD")
    parser.add_argument(
        "--last",
        "-l",
        type=int,
        help="Highlights from the last N days (exclusive with --from/--to)",
    )
    parser.add_argument(
        "--workers",
        "-w",
        type=int,
        help="Parallel extraction workers (env: SYNC_WORKERS, default: 1)",
    )


def config_from_args(args: argparse.Namespace, today: date | None = None) -> RunConfig:
    """Build a ``RunConfig`` from parsed ``add_config_arguments`` flags."""
    return build_config(
        books_path=args.books_path,
        database_path=args.database_path,
        from_value=args.from_date,
        to_value=args.to_date,
        last=args.last,
        workers=args.workers,
        today=today,
    )

#!/usr/bin/env python3
"""CLI interface for extract module."""

import argparse
from datetime import datetime
from pathlib import Path

from rich.markup import escape

from common.config import add_config_arguments, config_from_args
from common.errors import ConfigError, InvalidRangeError
from common.logger import error, get_logger, setup_logging, success, warning

from .date_filter import DateRange
from .extraction_io import write_export_file
from .file_utils import find_metadata_files, generate_export_filename
from .main import extract_files

logger = get_logger(__name__)


def cmd_highlights(args):
    """Extract highlights in the date window without touching the database.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    try:
        config = config_from_args(args)
    except (ConfigError, InvalidRangeError) as e:
        error(escape(str(e)))
        return 1

    if not config.books_path.is_dir():
        error(escape(f"{config.books_path} is not a directory"))
        return 1

    paths = find_metadata_files(config.books_path)
    if not paths:
        warning(escape(f"No metadata files found in {config.books_path}"))
        return 0

    logger.info(
        f"Extracting highlights from [bold]{len(paths)}[/bold] file(s), "
        f"{config.from_date} to {config.to_date}"
    )

    window = DateRange(config.from_date, config.to_date)
    extractions = []
    for outcome in extract_files(paths, window, config.max_depth, config.workers):
        if not outcome.ok:
            warning(escape(f"Skipped {outcome.path}: {outcome.error}"))
            continue
        extractions.append(outcome.extraction)
        for highlight in outcome.extraction.highlights:
            logger.info(
                f"[bold]{escape(outcome.extraction.book.title)}[/bold] "
                f"p.{escape(highlight.position)}"
            )
            logger.info(f"  {escape(highlight.text)}")
            if highlight.note:
                logger.info(f"  [italic]{escape(highlight.note)}[/italic]")

    total = sum(len(e.highlights) for e in extractions)

    if args.output or args.output_dir:
        output = args.output or args.output_dir / generate_export_filename(
            datetime.now(), config.from_date, config.to_date
        )
        write_export_file(output, config.from_date, config.to_date, extractions)
        success(escape(f"Wrote {total} highlight(s) to {output}"))
    else:
        success(f"Found {total} highlight(s) in {len(extractions)} book(s)")

    return 0


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Extract highlights from KOReader metadata")

    subparsers = parser.add_subparsers(dest="command", required=True)

    highlights_parser = subparsers.add_parser(
        "highlights", help="List or export highlights in a date window (dry run)"
    )
    add_config_arguments(highlights_parser)
    output_group = highlights_parser.add_mutually_exclusive_group()
    output_group.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Write the highlights to this JSON file",
    )
    output_group.add_argument(
        "--output-dir",
        type=Path,
        help="Write the highlights to a timestamped JSON file in this directory",
    )
    highlights_parser.set_defaults(func=cmd_highlights)

    args = parser.parse_args()
    setup_logging()
    return args.func(args)


if __name__ == "__main__":
    exit(main())

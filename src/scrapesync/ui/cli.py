from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from scrapesync.app import (
    collection_stats,
    normalize_fields,
    run_blacklist_update,
    run_import,
    run_phone_update,
)
from scrapesync.config import ConfigurationError, configure_logging
from scrapesync.domain.model import RunStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from scrapesync.domain.model import ProgressSnapshot

log = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Not an integer: {value}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"Must be at least 1: {value}")
    return number


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest and maintain crawl results")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug output (skipped rows, per-batch details)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("import", help="Import every CSV in the import directory")

    blacklist = subparsers.add_parser("blacklist", help="Flag domains listed in blacklist feeds")
    blacklist.add_argument(
        "--url-column",
        type=_positive_int,
        default=1,
        help="1-based column holding the domain (default: %(default)s)",
    )

    subparsers.add_parser("phones", help="Merge phone numbers from phone feeds")

    normalize = subparsers.add_parser(
        "normalize-fields",
        help="Re-clean stored text fields and re-format stored phones",
    )
    normalize.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        help="Records per page (defaults to config)",
    )

    subparsers.add_parser("stats", help="Print the number of stored records")

    return parser.parse_args(list(argv))


def _report(snapshot: ProgressSnapshot) -> None:
    for error in snapshot.errors:
        log.warning("Run %s error: %s", snapshot.run_id, error)
    if snapshot.status is RunStatus.FAILED:
        raise RuntimeError(f"Run {snapshot.run_id} failed")


def _dispatch(parsed_args: argparse.Namespace) -> None:
    if parsed_args.command == "import":
        _report(asyncio.run(run_import()))
    elif parsed_args.command == "blacklist":
        _report(asyncio.run(run_blacklist_update(url_column=parsed_args.url_column)))
    elif parsed_args.command == "phones":
        _report(asyncio.run(run_phone_update()))
    elif parsed_args.command == "normalize-fields":
        result = asyncio.run(normalize_fields(batch_size=parsed_args.batch_size))
        log.info(
            "Field normalization finished: scanned=%s, updated=%s, phones_dropped=%s, "
            "phones_nonstandard=%s",
            result.scanned,
            result.updated,
            result.phones_dropped,
            result.phones_nonstandard,
        )
    elif parsed_args.command == "stats":
        total = asyncio.run(collection_stats())
        print(total)  # noqa: T201
    else:
        raise ValueError(f"Unsupported command: {parsed_args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        _dispatch(parsed_args)
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during run")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def cli() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    cli()

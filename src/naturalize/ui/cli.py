# ruff: noqa: T201

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from naturalize.app import (
    naturalize_pending_names,
    naturalize_until_drained,
    processing_status,
    purge_identity_cache_entries,
    reset_resolved_names,
)
from naturalize.config import ConfigurationError, configure_logging, get_pipeline_config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from naturalize.config import PipelineConfig

log = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {number}")
    return number


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Naturalize business display names")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log at DEBUG level (overrides LOG_LEVEL)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Naturalize pending records")
    run.add_argument(
        "--limit",
        type=_positive_int,
        default=None,
        help="Maximum number of records to fetch per run (defaults to config)",
    )
    run.add_argument(
        "--category",
        type=str,
        help="Only process records of this category",
    )
    run.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        help="Names per model call (defaults to config)",
    )
    run.add_argument(
        "--concurrency",
        type=_positive_int,
        default=None,
        help="Maximum batches in flight (defaults to config)",
    )
    run.add_argument(
        "--continuous",
        action="store_true",
        help="Keep running until no pending records remain",
    )
    run.add_argument(
        "--max-iterations",
        type=_positive_int,
        default=1000,
        help="Upper bound on runs in continuous mode (default: %(default)s)",
    )

    status = subparsers.add_parser("status", help="Show processing progress")
    status.add_argument("--category", type=str, help="Restrict counts to one category")

    subparsers.add_parser(
        "purge-identity",
        help="Delete cached names whose value equals the original",
    )

    reset = subparsers.add_parser("reset", help="Clear resolved names so they are recomputed")
    reset.add_argument("--category", type=str, help="Only reset records of this category")

    return parser.parse_args(list(argv))


def _pipeline_config(args: argparse.Namespace) -> PipelineConfig:
    config = get_pipeline_config()
    overrides: dict[str, int] = {}
    if args.batch_size is not None:
        overrides["batch_size"] = args.batch_size
    if args.concurrency is not None:
        overrides["concurrency"] = args.concurrency
    return dataclasses.replace(config, **overrides) if overrides else config


def _run(args: argparse.Namespace, config: PipelineConfig) -> int:
    if args.continuous:
        history = naturalize_until_drained(
            limit=args.limit,
            category=args.category,
            max_iterations=args.max_iterations,
            config=config,
        )
        processed = sum(stats.processed for stats in history)
        print(f"{len(history)} runs, {processed} records updated")
        return 1 if history and history[-1].failed else 0

    stats = naturalize_pending_names(limit=args.limit, category=args.category, config=config)
    print(f"{stats.state}: {stats.processed} records updated, {stats.errors} errors")
    return 1 if stats.failed else 0


def _status(args: argparse.Namespace) -> int:
    report = processing_status(category=args.category)
    records = report.records
    print(f"Total records:  {records.total}")
    print(f"Resolved:       {records.resolved} ({records.percent_done}%)")
    print(f"Pending:        {records.pending}")
    print(f"Cached names:   {report.cached_names}")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    config: PipelineConfig | None = None
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else None)
        if parsed_args.command == "run":
            config = _pipeline_config(parsed_args)
    except (ValueError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    try:
        if parsed_args.command == "run":
            if config is None:
                raise RuntimeError("Pipeline configuration was not resolved")  # noqa: TRY301
            code = _run(parsed_args, config)
        elif parsed_args.command == "status":
            code = _status(parsed_args)
        elif parsed_args.command == "purge-identity":
            print(f"Removed {purge_identity_cache_entries()} identity cache entries")
            code = 0
        elif parsed_args.command == "reset":
            print(f"Reset {reset_resolved_names(category=parsed_args.category)} records")
            code = 0
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except Exception as exc:
        log.exception("Fatal error during naturalization")
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if code:
        sys.exit(code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()

"""Command line entry point for the burst probe."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import DEFAULT_DATABASE_URL, StressConfig
from .stress import run

logger = logging.getLogger("txburst")

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(message)s"


def _item_list(value: str) -> tuple[str, ...]:
    items = tuple(part.strip() for part in value.split(",") if part.strip())
    if not items:
        raise argparse.ArgumentTypeError("expected at least one item id")
    return items


def build_parser() -> argparse.ArgumentParser:
    defaults = StressConfig()
    parser = argparse.ArgumentParser(
        prog="txburst",
        description="Run bursts of read-modify-write transactions against a local SQLite file",
    )
    parser.add_argument(
        "--url", default=DEFAULT_DATABASE_URL, help="Database URL (file:<path> or :memory:)"
    )
    parser.add_argument("--driver", choices=["sqlite3", "apsw"], default=defaults.driver)
    parser.add_argument("--seed-count", type=int, default=defaults.seed_count)
    parser.add_argument(
        "--items",
        type=_item_list,
        default=defaults.item_ids,
        help="Comma separated ids updated by every transaction",
    )
    parser.add_argument("--bursts", type=int, default=defaults.num_bursts)
    parser.add_argument(
        "--transactions-per-burst", type=int, default=defaults.transactions_per_burst
    )
    parser.add_argument(
        "--short-delay",
        type=float,
        default=defaults.delay_short,
        help="Seconds between transactions in a burst",
    )
    parser.add_argument(
        "--long-delay",
        type=float,
        default=defaults.delay_long,
        help="Seconds between bursts",
    )
    parser.add_argument("--busy-timeout-ms", type=int, default=defaults.busy_timeout_ms)
    parser.add_argument("--journal-mode", default=defaults.journal_mode)
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> StressConfig:
    return StressConfig(
        database_url=args.url,
        driver=args.driver,
        seed_count=args.seed_count,
        item_ids=args.items,
        num_bursts=args.bursts,
        transactions_per_burst=args.transactions_per_burst,
        delay_short=args.short_delay,
        delay_long=args.long_delay,
        busy_timeout_ms=args.busy_timeout_ms,
        journal_mode=args.journal_mode,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )

    logger.info("--- txburst: sequential write transaction bursts ---")
    try:
        asyncio.run(run(config))
    except Exception:
        logger.exception("FATAL: Unhandled error from top-level run")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Command-line entry point for the recall feed."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import ConfigError, RecallConfig
from .filters import FeedFilters, view
from .logging_config import setup_logging
from .models import SEVERITIES, RecallRecord
from .service import RecallFeedService
from .sharing import share_message
from .store import SQLiteStore, StoreError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="FDA/USDA food recall feed")
    parser.add_argument("--config", type=Path, help="Path to sources YAML (default: config/recall_sources.yaml)")
    parser.add_argument("--cache-db", type=Path, help="Override the cache database path")
    parser.add_argument("--log-file", type=Path, help="Write logs to file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    feed = subparsers.add_parser("feed", help="Show the merged recall feed")
    feed.add_argument("--archive", action="store_true", help="Include recalls older than the date window")
    feed.add_argument("--severity", choices=SEVERITIES, help="Only show one severity")
    feed.add_argument("--query", "-q", help="Keyword filter on product, brand, reason or company")
    feed.add_argument("--refresh", action="store_true", help="Ignore the cache and refetch")
    feed.add_argument("--json", action="store_true", help="Output records as JSON")

    match = subparsers.add_parser("match", help="Check a scanned product against cached recalls")
    match.add_argument("name", help="Scanned product name")
    match.add_argument("--brand", default="", help="Scanned brand name")
    match.add_argument("--json", action="store_true", help="Output the match as JSON")

    subparsers.add_parser("status", help="Show cache age")
    subparsers.add_parser("clear", help="Clear all cached feeds")
    return parser


def _print_records(records: List[RecallRecord], as_json: bool) -> None:
    if as_json:
        print(json.dumps([record.to_dict() for record in records], indent=2))
        return
    for record in records:
        print(f"[{record.severity.upper():8}] {record.recall_date}  {record.source:4}  {record.product_name}")
        print(f"           {record.company}: {record.reason}")
    print(f"{len(records)} recall(s)")


async def _run(args: argparse.Namespace, service: RecallFeedService) -> int:
    if args.command == "feed":
        records = await service.fetch_feed(force_refresh=args.refresh)
        filters = FeedFilters(
            archive=args.archive,
            severity=args.severity,
            query=args.query,
            window_days=service.window_days,
        )
        _print_records(view(records, filters), args.json)
        return 0

    if args.command == "match":
        record = service.match_scan(args.name, args.brand)
        if record is None:
            print("No recall match found")
            return 0
        if args.json:
            print(json.dumps({**record.to_dict(), "official_link": service.official_link(record)}, indent=2))
        else:
            print(share_message(record))
            link = service.official_link(record)
            if link:
                print(f"\n{link}")
        return 2

    if args.command == "status":
        info = service.get_last_update_time()
        if info is None:
            print("No cached recall data")
            return 0
        state = "stale" if info.needs_refresh else "fresh"
        print(f"Updated {info.minutes_ago} min ago ({state}) at {info.last_update.isoformat()}")
        return 0

    if args.command == "clear":
        service.clear_cache()
        print("Recall caches cleared")
        return 0

    return 1


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Exit code 2 signals a recall match."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    logger = setup_logging(
        log_file=args.log_file,
        level=logging.DEBUG if args.verbose else logging.WARNING,
    )

    try:
        config = RecallConfig(args.config)
        store = SQLiteStore(args.cache_db or config.cache_db_path)
        service = RecallFeedService.from_config(config, store=store)
        return asyncio.run(_run(args, service))
    except (ConfigError, StoreError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception as exc:
        logger.exception(f"Fatal error: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from pydantic import BaseModel

from oddsnap.core.config import get_settings
from oddsnap.core.errors import OddsApiError
from oddsnap.core.logging import setup_logging
from oddsnap.services.market_catalog import crawl_market_catalog, log_event_market_catalog
from oddsnap.services.odds_api import OddsApiClient
from oddsnap.services.smoke import DEFAULT_SMOKE_HOURS_AHEAD, DEFAULT_SMOKE_MAX_MARKETS, run_odds_smoke_test
from oddsnap.services.snapshot_log import SnapshotLogSink, parse_snapshot_log
from oddsnap.services.snapshots import (
    create_market_snapshot,
    create_player_names_snapshot,
    create_sport_names_snapshot,
    create_team_names_snapshot,
    resolve_snapshot_options,
)

SNAPSHOT_KINDS = {
    "market": create_market_snapshot,
    "sport-names": create_sport_names_snapshot,
    "team-names": create_team_names_snapshot,
    "player-names": create_player_names_snapshot,
}


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Odds API snapshot CLI")
    subparsers = parser.add_subparsers(dest="command")

    snapshot_parser = subparsers.add_parser("snapshot", help="Capture a snapshot and write its log file")
    snapshot_parser.add_argument("kind", choices=sorted(SNAPSHOT_KINDS))
    snapshot_parser.add_argument("--hours-ahead", default=None, help="Event window in hours (default 48)")
    snapshot_parser.add_argument("--max-sports", default=None, help="Sports to scan (default 3)")
    snapshot_parser.add_argument("--max-events-per-sport", default=None, help="Events per sport (default 10)")
    snapshot_parser.add_argument("--regions", default=None, help="Comma-separated region keys")
    snapshot_parser.add_argument("--bookmakers", default=None, help="Comma-separated bookmaker keys")
    snapshot_parser.add_argument("--sports", default=None, help="Comma-separated sport keys, or 'all'")
    snapshot_parser.add_argument("--use-cache", action="store_true", help="Reuse cached sports/events/markets")
    snapshot_parser.add_argument("--log-dir", default=None, help="Directory for the snapshot log")

    catalog_parser = subparsers.add_parser("catalog", help="Crawl upcoming events and index every market key")
    catalog_parser.add_argument("--dangerous", action="store_true", help="Acknowledge the upstream quota cost")
    catalog_parser.add_argument("--sports", default=None, help="Comma-separated sport keys (default all)")
    catalog_parser.add_argument("--max-sports", type=int, default=None)
    catalog_parser.add_argument("--max-events-per-sport", type=int, default=None)
    catalog_parser.add_argument("--regions", default=None)
    catalog_parser.add_argument("--bookmakers", default=None)

    event_parser = subparsers.add_parser("event-markets", help="Write the market catalog log for one event")
    event_parser.add_argument("sport_key")
    event_parser.add_argument("event_id")
    event_parser.add_argument("--regions", default="us")
    event_parser.add_argument("--bookmakers", default=None)
    event_parser.add_argument("--log-dir", default=None)

    smoke_parser = subparsers.add_parser("smoke", help="Run a one-event connectivity check against the Odds API")
    smoke_parser.add_argument("--hours-ahead", type=int, default=DEFAULT_SMOKE_HOURS_AHEAD)
    smoke_parser.add_argument("--max-markets", type=int, default=DEFAULT_SMOKE_MAX_MARKETS)

    parse_parser = subparsers.add_parser("parse-log", help="Summarize a market snapshot log file")
    parse_parser.add_argument("path", type=Path)

    return parser


def _split_csv(raw: str | None) -> list[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def _print_model(model: BaseModel) -> None:
    print(json.dumps(model.model_dump(mode="json"), indent=2, sort_keys=True))


def _sink(log_dir: str | None) -> SnapshotLogSink:
    return SnapshotLogSink(log_dir or get_settings().snapshot_log_dir)


async def _run_snapshot(args: argparse.Namespace) -> int:
    options = resolve_snapshot_options(
        hours_ahead=args.hours_ahead,
        max_sports=args.max_sports,
        max_events_per_sport=args.max_events_per_sport,
        regions=args.regions,
        bookmakers=args.bookmakers,
        sports=args.sports,
        use_cache=args.use_cache,
    )
    snapshot = await SNAPSHOT_KINDS[args.kind](OddsApiClient(), options, sink=_sink(args.log_dir))
    _print_model(snapshot)
    return 0


async def _run_catalog(args: argparse.Namespace) -> int:
    result = await crawl_market_catalog(
        OddsApiClient(),
        sports=_split_csv(args.sports) or None,
        max_sports=args.max_sports,
        max_events_per_sport=args.max_events_per_sport,
        regions=args.regions,
        bookmakers=_split_csv(args.bookmakers),
    )
    _print_model(result)
    return 0


async def _run_event_markets(args: argparse.Namespace) -> int:
    result = await log_event_market_catalog(
        OddsApiClient(),
        args.sport_key,
        args.event_id,
        sink=_sink(args.log_dir),
        regions=args.regions,
        bookmakers=_split_csv(args.bookmakers),
    )
    _print_model(result)
    return 0


async def _run_smoke(args: argparse.Namespace) -> int:
    result = await run_odds_smoke_test(OddsApiClient(), hours_ahead=args.hours_ahead, max_markets=args.max_markets)
    _print_model(result)
    return 0


def _run_parse_log(path: Path) -> int:
    summary = parse_snapshot_log(path.read_text(encoding="utf-8"))
    _print_model(summary)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    setup_logging()

    try:
        if args.command == "snapshot":
            return asyncio.run(_run_snapshot(args))
        if args.command == "catalog":
            if not args.dangerous:
                print("The market catalog crawl is quota-expensive. Pass --dangerous to run it.", file=sys.stderr)
                return 2
            return asyncio.run(_run_catalog(args))
        if args.command == "event-markets":
            return asyncio.run(_run_event_markets(args))
        if args.command == "smoke":
            return asyncio.run(_run_smoke(args))
        if args.command == "parse-log":
            return _run_parse_log(args.path)
    except OddsApiError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())

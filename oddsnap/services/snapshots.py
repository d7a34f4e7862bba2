import asyncio
import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from oddsnap.core.bookmakers import bookmaker_region
from oddsnap.core.config import get_settings
from oddsnap.core.errors import NoActiveSportsError
from oddsnap.schemas.odds import EventSummary, Sport
from oddsnap.schemas.snapshot import (
    MarketSnapshotResult,
    PlayerNameSummary,
    PlayerNamesSnapshotResult,
    SnapshotEventEntry,
    SnapshotOptions,
    SportMarketSummary,
    SportNameEntry,
    SportNamesSnapshotResult,
    TeamNameSummary,
    TeamNamesSnapshotResult,
)
from oddsnap.services.fanout import bounded_gather, scope
from oddsnap.services.names import (
    extract_player_outcome_names,
    filter_player_names,
    is_player_market,
    normalize_teams,
)
from oddsnap.services.odds_api import OddsApiClient
from oddsnap.services.snapshot_log import SnapshotSink

logger = logging.getLogger(__name__)

DEFAULT_HOURS_AHEAD = 48
DEFAULT_MAX_SPORTS = 3
DEFAULT_MAX_EVENTS_PER_SPORT = 10

T = TypeVar("T")


def _positive_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, (int, float)) and math.isfinite(value) and value > 0:
        return float(value)
    return None


def positive_count(value: object, default: int) -> int:
    number = _positive_number(value)
    if number is None or int(number) < 1:
        return default
    return int(number)


def _hours(value: object, default: int) -> int | float:
    number = _positive_number(value)
    if number is None:
        return default
    return int(number) if number.is_integer() else number


def _clean_list(value: object) -> list[str]:
    if isinstance(value, str):
        items: Iterable[object] = value.split(",")
    elif isinstance(value, Iterable):
        items = value
    else:
        return []
    return [item.strip() for item in items if isinstance(item, str) and item.strip()]


def resolve_snapshot_options(
    *,
    hours_ahead: object = None,
    max_sports: object = None,
    max_events_per_sport: object = None,
    regions: object = None,
    bookmakers: object = None,
    use_cache: object = None,
    sports: object = None,
) -> SnapshotOptions:
    """Fill defaults for anything missing or unusable; never raises on bad input."""
    settings = get_settings()
    resolved_regions = regions.strip() if isinstance(regions, str) else ""
    resolved_books = _clean_list(bookmakers) or settings.snapshot_default_bookmakers_list
    sport_keys = [key for key in _clean_list(sports) if key != "all"]

    unknown_books = [book for book in resolved_books if bookmaker_region(book) is None]
    if unknown_books:
        logger.warning("Bookmaker keys not in the known region table", extra={"bookmakers": unknown_books})

    return SnapshotOptions(
        hours_ahead=_hours(hours_ahead, DEFAULT_HOURS_AHEAD),
        max_sports=positive_count(max_sports, DEFAULT_MAX_SPORTS),
        max_events_per_sport=positive_count(max_events_per_sport, DEFAULT_MAX_EVENTS_PER_SPORT),
        regions=resolved_regions or settings.snapshot_default_regions,
        bookmakers=resolved_books,
        use_cache=use_cache if isinstance(use_cache, bool) else False,
        sports=sport_keys or None,
    )


def no_events_warning(sport_key: str, hours_ahead: int | float) -> str:
    return f"No events found for sport {sport_key} within the next {hours_ahead} hours."


@dataclass
class _SportScan(Generic[T]):
    sport: Sport
    events: list[EventSummary] = field(default_factory=list)
    items: list[T] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _concurrency(value: int | None) -> int:
    return value if value and value > 0 else get_settings().snapshot_concurrency


def _request_slots(limit: int) -> asyncio.Semaphore:
    """One pool per run, held only around upstream calls.

    Sport and event fan-out both draw from it, so ``limit`` bounds the calls in
    flight for the whole run rather than per level. A worker never holds a slot
    while it waits on nested work.
    """
    return asyncio.Semaphore(limit)


async def _load_scoped_sports(client: OddsApiClient, options: SnapshotOptions) -> list[Sport]:
    sports = await client.fetch_sports(use_cache=options.use_cache)
    active = [sport for sport in sports if sport.active]
    if options.sports:
        wanted = set(options.sports)
        active = [sport for sport in active if sport.key in wanted]
    return scope(active, options.max_sports)


async def _load_scoped_events(
    client: OddsApiClient,
    sport: Sport,
    options: SnapshotOptions,
    *,
    sort_by_start: bool = False,
) -> list[EventSummary]:
    events = await client.fetch_events_for_sport(
        sport.key,
        hours_ahead=options.hours_ahead,
        use_cache=options.use_cache,
    )
    if sort_by_start:
        events = sorted(events, key=lambda event: event.start_time)
    return scope(events, options.max_events_per_sport)


def _merge_warnings(scans: Iterable[_SportScan]) -> list[str]:
    return [warning for scan in scans for warning in scan.warnings]


async def create_market_snapshot(
    client: OddsApiClient,
    options: SnapshotOptions | None = None,
    *,
    sink: SnapshotSink,
    concurrency: int | None = None,
) -> MarketSnapshotResult:
    """Capture fresh odds for every market of the first events of the first active sports."""
    options = options or resolve_snapshot_options()
    client.require_api_key()
    limit = _concurrency(concurrency)
    slots = _request_slots(limit)

    sports = await _load_scoped_sports(client, options)
    if not sports:
        raise NoActiveSportsError()

    async def scan_sport(sport: Sport) -> _SportScan[SnapshotEventEntry]:
        async with slots:
            events = await _load_scoped_events(client, sport, options, sort_by_start=True)
        if not events:
            return _SportScan(sport, warnings=[no_events_warning(sport.key, options.hours_ahead)])

        async def scan_event(event: EventSummary) -> SnapshotEventEntry:
            async with slots:
                markets = await client.fetch_markets_for_event(
                    sport.key,
                    event.event_id,
                    regions=options.regions,
                    bookmakers=options.bookmakers,
                    use_cache=options.use_cache,
                )
                odds = await client.fetch_odds_for_event(
                    sport.key,
                    event.event_id,
                    markets.market_keys,
                    regions=options.regions,
                    bookmakers=options.bookmakers,
                )
            return SnapshotEventEntry(
                sport_key=sport.key,
                sport_title=sport.title or None,
                event_id=event.event_id,
                teams=normalize_teams(event),
                start_time=event.start_time,
                market_keys=markets.market_keys,
                odds_fetched_at=odds.fetched_at,
                odds=odds.raw,
            )

        entries = await bounded_gather(events, scan_event, limit=limit)
        return _SportScan(sport, events=events, items=entries)

    scans = await bounded_gather(sports, scan_sport, limit=limit)

    entries = [entry for scan in scans for entry in scan.items]
    markets_by_sport = [
        SportMarketSummary(
            sport_key=scan.sport.key,
            sport_title=scan.sport.title or None,
            market_keys=list(dict.fromkeys(key for entry in scan.items for key in entry.market_keys)),
        )
        for scan in scans
        if scan.items
    ]
    snapshot = MarketSnapshotResult(
        captured_at=client.now(),
        options=options,
        sports_checked=len(sports),
        events_captured=len(entries),
        entries=entries,
        markets_by_sport=markets_by_sport,
        warnings=_merge_warnings(scans),
    )

    log_path = await sink.write_market_snapshot(snapshot)
    logger.info(
        "Market snapshot captured",
        extra={"entries": len(entries), "warnings": len(snapshot.warnings), "log_path": log_path},
    )
    return snapshot.model_copy(update={"log_path": log_path})


async def create_sport_names_snapshot(
    client: OddsApiClient,
    options: SnapshotOptions | None = None,
    *,
    sink: SnapshotSink,
) -> SportNamesSnapshotResult:
    options = options or resolve_snapshot_options()
    client.require_api_key()

    sports = await _load_scoped_sports(client, options)
    warnings = [] if sports else ["No active sports available from Odds API."]

    snapshot = SportNamesSnapshotResult(
        captured_at=client.now(),
        options=options,
        sports_checked=len(sports),
        sport_names=[
            SportNameEntry(
                sport_key=sport.key,
                sport_title=sport.title,
                group=sport.group,
                description=sport.description,
                has_outrights=sport.has_outrights,
            )
            for sport in sports
        ],
        warnings=warnings,
    )

    log_path = await sink.write_sport_names_snapshot(snapshot)
    logger.info("Sport names snapshot captured", extra={"sports": len(sports), "log_path": log_path})
    return snapshot.model_copy(update={"log_path": log_path})


async def create_team_names_snapshot(
    client: OddsApiClient,
    options: SnapshotOptions | None = None,
    *,
    sink: SnapshotSink,
    concurrency: int | None = None,
) -> TeamNamesSnapshotResult:
    options = options or resolve_snapshot_options()
    client.require_api_key()
    limit = _concurrency(concurrency)

    sports = await _load_scoped_sports(client, options)
    if not sports:
        raise NoActiveSportsError("No active sports available for team name capture.")

    async def scan_sport(sport: Sport) -> _SportScan[str]:
        events = await _load_scoped_events(client, sport, options)
        if not events:
            return _SportScan(sport, warnings=[no_events_warning(sport.key, options.hours_ahead)])
        teams = sorted({team for event in events for team in normalize_teams(event)})
        return _SportScan(sport, events=events, items=teams)

    scans = await bounded_gather(sports, scan_sport, limit=limit)

    teams_by_sport = [
        TeamNameSummary(
            sport_key=scan.sport.key,
            sport_title=scan.sport.title or None,
            teams=scan.items,
            events_checked=len(scan.events),
        )
        for scan in scans
        if scan.events
    ]
    events_captured = sum(len(scan.events) for scan in scans)
    snapshot = TeamNamesSnapshotResult(
        captured_at=client.now(),
        options=options,
        sports_checked=len(sports),
        events_captured=events_captured,
        teams_by_sport=teams_by_sport,
        warnings=_merge_warnings(scans),
    )

    log_path = await sink.write_team_names_snapshot(snapshot)
    logger.info("Team names snapshot captured", extra={"events": events_captured, "log_path": log_path})
    return snapshot.model_copy(update={"log_path": log_path})


@dataclass
class _EventPlayers:
    markets_checked: int
    names: list[str]


async def create_player_names_snapshot(
    client: OddsApiClient,
    options: SnapshotOptions | None = None,
    *,
    sink: SnapshotSink,
    concurrency: int | None = None,
) -> PlayerNamesSnapshotResult:
    """Collect player-like outcome names from ``player_`` markets per sport.

    Names matching a team of the scanned events or a generic outcome label
    are dropped before they are reported.
    """
    options = options or resolve_snapshot_options()
    client.require_api_key()
    limit = _concurrency(concurrency)
    slots = _request_slots(limit)

    sports = await _load_scoped_sports(client, options)
    if not sports:
        raise NoActiveSportsError("No active sports available for player name capture.")

    async def scan_sport(sport: Sport) -> _SportScan[_EventPlayers]:
        async with slots:
            events = await _load_scoped_events(client, sport, options)
        if not events:
            return _SportScan(sport, warnings=[no_events_warning(sport.key, options.hours_ahead)])

        async def scan_event(event: EventSummary) -> _EventPlayers:
            async with slots:
                markets = await client.fetch_markets_for_event(
                    sport.key,
                    event.event_id,
                    regions=options.regions,
                    bookmakers=options.bookmakers,
                    use_cache=options.use_cache,
                )
            player_markets = [market for market in markets.raw_markets if is_player_market(market)]
            names = [name for market in player_markets for name in extract_player_outcome_names(market)]
            return _EventPlayers(markets_checked=len(player_markets), names=names)

        results = await bounded_gather(events, scan_event, limit=limit)
        known_teams = {team for event in events for team in normalize_teams(event)}
        player_names = filter_player_names((name for result in results for name in result.names), known_teams)
        warnings = [] if player_names else [f"No player-like outcome names found for sport {sport.key}."]
        summary = _EventPlayers(markets_checked=sum(result.markets_checked for result in results), names=player_names)
        return _SportScan(sport, events=events, items=[summary], warnings=warnings)

    scans = await bounded_gather(sports, scan_sport, limit=limit)

    player_names_by_sport = [
        PlayerNameSummary(
            sport_key=scan.sport.key,
            sport_title=scan.sport.title or None,
            player_names=scan.items[0].names,
            events_checked=len(scan.events),
            markets_checked=scan.items[0].markets_checked,
        )
        for scan in scans
        if scan.items
    ]
    snapshot = PlayerNamesSnapshotResult(
        captured_at=client.now(),
        options=options,
        sports_checked=len(sports),
        events_captured=sum(len(scan.events) for scan in scans),
        markets_captured=sum(summary.markets_checked for summary in player_names_by_sport),
        player_names_by_sport=player_names_by_sport,
        warnings=_merge_warnings(scans),
    )

    log_path = await sink.write_player_names_snapshot(snapshot)
    logger.info(
        "Player names snapshot captured",
        extra={
            "events": snapshot.events_captured,
            "markets": snapshot.markets_captured,
            "log_path": log_path,
        },
    )
    return snapshot.model_copy(update={"log_path": log_path})

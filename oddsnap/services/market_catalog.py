import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from oddsnap.core.config import get_settings
from oddsnap.core.errors import NoActiveSportsError
from oddsnap.schemas.odds import EventMarkets, MarketDefinition
from oddsnap.schemas.snapshot import (
    EventMarketCatalogResult,
    MarketCatalogCrawlResult,
    MarketCatalogEntry,
    MarketInfo,
)
from oddsnap.services.fanout import scope
from oddsnap.services.odds_api import OddsApiClient
from oddsnap.services.snapshot_log import MARKET_CATALOG_LOG_FILENAME, SnapshotLogSink

logger = logging.getLogger(__name__)

ADDITIONAL_MARKETS_SOURCE_NOTE = (
    "Additional markets are retrieved with a one-time call to /events/{eventId}/odds "
    "using the additional_markets selector."
)

CORE_MARKETS: tuple[MarketInfo, ...] = (
    MarketInfo(
        key="h2h",
        name="Head to head / Moneyline",
        description="Bet on the winning team or player of a game (includes the draw for soccer).",
        source="core",
    ),
    MarketInfo(
        key="spreads",
        name="Points spread / Handicap",
        description="Bet on the winning team after a points handicap has been applied to each team.",
        source="core",
    ),
    MarketInfo(
        key="totals",
        name="Total points / Over-Under",
        description="Bet on the total score of the game being above or below a threshold.",
        source="core",
    ),
    MarketInfo(
        key="outrights",
        name="Outrights / Futures",
        description="Bet on a final outcome of a tournament or competition.",
        source="core",
    ),
    MarketInfo(
        key="h2h_lay",
        name="Head to head lay",
        description="Bet against a head to head outcome (betting exchange only).",
        source="core",
        notes="Applicable to betting exchanges.",
    ),
    MarketInfo(
        key="outrights_lay",
        name="Outrights lay",
        description="Bet against an outrights outcome (betting exchange only).",
        source="core",
        notes="Applicable to betting exchanges.",
    ),
)

CORE_MARKET_KEYS = frozenset(market.key for market in CORE_MARKETS)


def market_name_from_key(key: str) -> str:
    return " ".join(part[:1].upper() + part[1:] for part in key.split("_") if part)


def build_market_catalog(additional_markets: Iterable[MarketDefinition] = ()) -> list[MarketInfo]:
    """Core markets followed by every unseen key from ``additional_markets``."""
    catalog: dict[str, MarketInfo] = {market.key: market for market in CORE_MARKETS}
    for market in additional_markets:
        key = (market.key or "").strip()
        if not key or key in catalog:
            continue
        catalog[key] = MarketInfo(
            key=key,
            name=market_name_from_key(key),
            description="Additional market fetched from Odds API additional_markets payload.",
            source="additional",
            notes=ADDITIONAL_MARKETS_SOURCE_NOTE,
        )
    return list(catalog.values())


@dataclass
class MarketAggregate:
    sports: set[str] = field(default_factory=set)
    bookmakers: set[str] = field(default_factory=set)
    event_ids: set[str] = field(default_factory=set)


class MarketCatalogAggregator:
    """Accumulates which sports, bookmakers and events offer each market key."""

    def __init__(self) -> None:
        self._markets: dict[str, MarketAggregate] = {}

    def __len__(self) -> int:
        return len(self._markets)

    def __contains__(self, market_key: object) -> bool:
        return market_key in self._markets

    def get(self, market_key: str) -> MarketAggregate | None:
        return self._markets.get(market_key)

    def add(self, market_key: str, sport_key: str, event_id: str, bookmakers: Iterable[str]) -> None:
        if not market_key:
            return
        aggregate = self._markets.setdefault(market_key, MarketAggregate())
        aggregate.sports.add(sport_key)
        aggregate.event_ids.add(event_id)
        aggregate.bookmakers.update(book for book in bookmakers if book)

    def add_event(
        self,
        sport_key: str,
        event_id: str,
        markets: EventMarkets,
        requested_bookmakers: Sequence[str],
    ) -> None:
        # A flat market list cannot be attributed to one bookmaker, so every requested book is credited.
        if markets.shape == "bookmakers" and markets.bookmaker_markets:
            for group in markets.bookmaker_markets:
                for market in group.markets:
                    self.add(market.key or "", sport_key, event_id, [group.key])
            return

        for market_key in markets.market_keys:
            self.add(market_key, sport_key, event_id, requested_bookmakers)

    def finalize(self) -> dict[str, MarketCatalogEntry]:
        return {
            market_key: MarketCatalogEntry(
                sports=sorted(aggregate.sports),
                bookmakers=sorted(aggregate.bookmakers),
                event_count=len(aggregate.event_ids),
            )
            for market_key, aggregate in sorted(self._markets.items())
        }


async def crawl_market_catalog(
    client: OddsApiClient,
    *,
    sports: Sequence[str] | None = None,
    max_sports: int | None = None,
    max_events_per_sport: int | None = None,
    regions: str | None = None,
    bookmakers: Sequence[str] | None = None,
) -> MarketCatalogCrawlResult:
    """Walk sports -> events -> markets and index every market key seen.

    Expensive in upstream quota: one markets call per scanned event, never
    cached. ``sports=None`` scans every active sport.
    """
    settings = get_settings()
    client.require_api_key()
    max_sports = max_sports if max_sports and max_sports > 0 else settings.catalog_default_max_sports
    max_events_per_sport = (
        max_events_per_sport
        if max_events_per_sport and max_events_per_sport > 0
        else settings.catalog_default_max_events_per_sport
    )
    regions = (regions or "").strip() or settings.catalog_default_regions
    requested_books = [book.strip() for book in bookmakers or [] if book.strip()]
    requested_books = requested_books or settings.catalog_default_bookmakers_list

    logger.warning(
        "Full market catalog crawl requested; this is quota-expensive",
        extra={
            "sports": list(sports) if sports else "all",
            "max_sports": max_sports,
            "max_events_per_sport": max_events_per_sport,
            "bookmakers": requested_books,
            "regions": regions,
        },
    )

    active = [sport for sport in await client.fetch_sports(use_cache=True) if sport.active]
    requested = [sport for sport in active if sport.key in set(sports)] if sports else active
    scoped_sports = scope(requested, max_sports)
    if not scoped_sports:
        raise NoActiveSportsError(
            "No active sports matched the request. Adjust the sports filter or try again later."
        )

    aggregator = MarketCatalogAggregator()
    events_scanned = 0
    for sport in scoped_sports:
        events = await client.fetch_events_for_sport(sport.key, use_cache=True)
        scoped_events = scope(sorted(events, key=lambda event: event.start_time), max_events_per_sport)
        logger.info(
            "Scanning events for market catalog",
            extra={"sport_key": sport.key, "events_scanned": len(scoped_events), "events_seen": len(events)},
        )
        for event in scoped_events:
            markets = await client.fetch_markets_for_event(
                sport.key,
                event.event_id,
                regions=regions,
                bookmakers=requested_books,
                use_cache=False,
            )
            events_scanned += 1
            aggregator.add_event(sport.key, event.event_id, markets, requested_books)

    result = MarketCatalogCrawlResult(
        generated_at=client.now(),
        bookmakers=requested_books,
        sports_scanned=len(scoped_sports),
        events_scanned=events_scanned,
        markets=aggregator.finalize(),
    )
    logger.info(
        "Market catalog crawl completed",
        extra={
            "sports_scanned": result.sports_scanned,
            "events_scanned": result.events_scanned,
            "markets_seen": len(result.markets),
        },
    )
    return result


async def log_event_market_catalog(
    client: OddsApiClient,
    sport_key: str,
    event_id: str,
    *,
    sink: SnapshotLogSink,
    regions: str = "us",
    bookmakers: Sequence[str] = (),
    use_cache: bool = False,
) -> EventMarketCatalogResult:
    """Write the core catalog plus one event's additional markets to the catalog log."""
    client.require_api_key()
    markets = await client.fetch_markets_for_event(
        sport_key,
        event_id,
        regions=regions,
        bookmakers=bookmakers,
        use_cache=use_cache,
    )
    catalog = build_market_catalog(markets.raw_markets)

    books = f", bookmakers={','.join(bookmakers)}" if bookmakers else ""
    generated_at = client.now()
    log_path = await sink.write_market_catalog(
        catalog,
        source_description=f"Markets for sport {sport_key} event {event_id} (regions={regions}{books})",
        generated_at=generated_at,
    )
    core_count = sum(1 for market in catalog if market.source == "core")
    return EventMarketCatalogResult(
        generated_at=generated_at,
        sport_key=sport_key,
        event_id=event_id,
        regions=regions,
        bookmakers=list(bookmakers),
        total_markets=len(catalog),
        core_markets=core_count,
        additional_markets=len(catalog) - core_count,
        log_file=MARKET_CATALOG_LOG_FILENAME,
        log_path=log_path,
    )

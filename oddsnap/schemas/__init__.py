from oddsnap.schemas.odds import (
    ApiEvent,
    ApiUsage,
    BookmakerEventMarkets,
    BookmakerMarketGroup,
    EventMarkets,
    EventSummary,
    FlatEventMarkets,
    MarketDefinition,
    OddsSnapshot,
    Sport,
)
from oddsnap.schemas.snapshot import (
    EventMarketCatalogResult,
    MarketCatalogCrawlResult,
    MarketCatalogEntry,
    MarketInfo,
    MarketSnapshotResult,
    OddsSmokeResult,
    PlayerNameSummary,
    PlayerNamesSnapshotResult,
    SmokeSampleEvent,
    SnapshotEventEntry,
    SnapshotLogSport,
    SnapshotLogSummary,
    SnapshotOptions,
    SportMarketSummary,
    SportNameEntry,
    SportNamesSnapshotResult,
    SportRef,
    TeamNameSummary,
    TeamNamesSnapshotResult,
)

__all__ = [
    "ApiEvent",
    "ApiUsage",
    "BookmakerEventMarkets",
    "BookmakerMarketGroup",
    "EventMarkets",
    "EventMarketCatalogResult",
    "EventSummary",
    "FlatEventMarkets",
    "MarketCatalogCrawlResult",
    "MarketCatalogEntry",
    "MarketDefinition",
    "MarketInfo",
    "MarketSnapshotResult",
    "OddsSmokeResult",
    "OddsSnapshot",
    "PlayerNameSummary",
    "PlayerNamesSnapshotResult",
    "SmokeSampleEvent",
    "SnapshotEventEntry",
    "SnapshotLogSport",
    "SnapshotLogSummary",
    "SnapshotOptions",
    "Sport",
    "SportMarketSummary",
    "SportNameEntry",
    "SportNamesSnapshotResult",
    "SportRef",
    "TeamNameSummary",
    "TeamNamesSnapshotResult",
]

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class SnapshotOptions(BaseModel):
    hours_ahead: int | float
    max_sports: int
    max_events_per_sport: int
    regions: str
    bookmakers: list[str]
    use_cache: bool
    sports: list[str] | None = None


class SnapshotEventEntry(BaseModel):
    sport_key: str
    sport_title: str | None = None
    event_id: str
    teams: list[str]
    start_time: datetime
    market_keys: list[str]
    odds_fetched_at: datetime
    odds: Any = None


class SportMarketSummary(BaseModel):
    sport_key: str
    sport_title: str | None = None
    market_keys: list[str]


class MarketSnapshotResult(BaseModel):
    captured_at: datetime
    log_path: str | None = None
    options: SnapshotOptions
    sports_checked: int
    events_captured: int
    entries: list[SnapshotEventEntry]
    markets_by_sport: list[SportMarketSummary] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class SportNameEntry(BaseModel):
    sport_key: str
    sport_title: str
    group: str
    description: str | None = None
    has_outrights: bool | None = None


class SportNamesSnapshotResult(BaseModel):
    captured_at: datetime
    log_path: str | None = None
    options: SnapshotOptions
    sports_checked: int
    sport_names: list[SportNameEntry]
    warnings: list[str] = Field(default_factory=list)


class TeamNameSummary(BaseModel):
    sport_key: str
    sport_title: str | None = None
    teams: list[str]
    events_checked: int


class TeamNamesSnapshotResult(BaseModel):
    captured_at: datetime
    log_path: str | None = None
    options: SnapshotOptions
    sports_checked: int
    events_captured: int
    teams_by_sport: list[TeamNameSummary]
    warnings: list[str] = Field(default_factory=list)


class PlayerNameSummary(BaseModel):
    sport_key: str
    sport_title: str | None = None
    player_names: list[str]
    events_checked: int
    markets_checked: int


class PlayerNamesSnapshotResult(BaseModel):
    captured_at: datetime
    log_path: str | None = None
    options: SnapshotOptions
    sports_checked: int
    events_captured: int
    markets_captured: int
    player_names_by_sport: list[PlayerNameSummary]
    warnings: list[str] = Field(default_factory=list)


class MarketCatalogEntry(BaseModel):
    sports: list[str]
    bookmakers: list[str]
    event_count: int


class MarketCatalogCrawlResult(BaseModel):
    generated_at: datetime
    bookmakers: list[str]
    sports_scanned: int
    events_scanned: int
    markets: dict[str, MarketCatalogEntry]
    warning: str = (
        "This endpoint performs a full snapshot-style crawl of the Odds API for schema discovery. "
        "Use sparingly to conserve quota."
    )


class MarketInfo(BaseModel):
    key: str
    name: str
    description: str
    source: str
    notes: str | None = None


class SnapshotLogSport(BaseModel):
    sport_key: str
    sport_title: str | None = None


class SnapshotLogSummary(BaseModel):
    sports: list[SnapshotLogSport]
    teams: list[str]
    players: list[str]
    markets: list[str]


class EventMarketCatalogResult(BaseModel):
    generated_at: datetime
    sport_key: str
    event_id: str
    regions: str
    bookmakers: list[str]
    total_markets: int
    core_markets: int
    additional_markets: int
    log_file: str
    log_path: str


class SportRef(BaseModel):
    key: str
    title: str


class SmokeSampleEvent(BaseModel):
    event_id: str
    teams: list[str]
    start_time: datetime
    markets_requested: list[str]
    total_markets_available: int
    odds: Any = None


class OddsSmokeResult(BaseModel):
    tested_at: datetime
    primary_sport: SportRef
    events_checked: int
    sample_event: SmokeSampleEvent | None = None
    note: str | None = None

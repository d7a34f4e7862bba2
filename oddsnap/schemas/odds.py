from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Sport(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    key: str
    group: str = ""
    title: str = ""
    description: str | None = None
    active: bool = False
    has_outrights: bool | None = None


class ApiEvent(BaseModel):
    """Event row as returned by ``/sports/{sport}/events``."""

    model_config = ConfigDict(extra="ignore")

    id: str
    sport_key: str
    commence_time: datetime
    home_team: str | None = None
    away_team: str | None = None
    teams: list[str] = Field(default_factory=list)


class EventSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: str
    sport_key: str
    teams: list[str] = Field(default_factory=list)
    home_team: str | None = None
    away_team: str | None = None
    start_time: datetime


class MarketDefinition(BaseModel):
    model_config = ConfigDict(extra="allow")

    key: str | None = None
    last_update: datetime | None = None
    outcomes: list[Any] | None = None


class BookmakerMarketGroup(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str
    title: str | None = None
    last_update: datetime | None = None
    markets: list[MarketDefinition]


class FlatEventMarkets(BaseModel):
    shape: Literal["flat"] = "flat"
    event_id: str
    market_keys: list[str]
    raw_markets: list[MarketDefinition]


class BookmakerEventMarkets(BaseModel):
    shape: Literal["bookmakers"] = "bookmakers"
    event_id: str
    market_keys: list[str]
    raw_markets: list[MarketDefinition]
    bookmaker_markets: list[BookmakerMarketGroup]


EventMarkets = FlatEventMarkets | BookmakerEventMarkets


class OddsSnapshot(BaseModel):
    event_id: str
    markets: list[str] | None = None
    fetched_at: datetime
    raw: Any = None


class ApiUsage(BaseModel):
    requests_remaining: int | None = None
    requests_used: int | None = None
    requests_last: int | None = None

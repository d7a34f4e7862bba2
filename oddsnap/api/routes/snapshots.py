from fastapi import APIRouter, Depends, Query

from oddsnap.api.deps import get_odds_client, get_snapshot_sink, odds_api_http_error
from oddsnap.schemas.snapshot import (
    MarketSnapshotResult,
    PlayerNamesSnapshotResult,
    SnapshotOptions,
    SportNamesSnapshotResult,
    TeamNamesSnapshotResult,
)
from oddsnap.services.odds_api import OddsApiClient
from oddsnap.services.snapshot_log import SnapshotLogSink
from oddsnap.services.snapshots import (
    create_market_snapshot,
    create_player_names_snapshot,
    create_sport_names_snapshot,
    create_team_names_snapshot,
    resolve_snapshot_options,
)

router = APIRouter()


def snapshot_options(
    hours_ahead: str | None = Query(None, alias="hoursAhead"),
    max_sports: str | None = Query(None, alias="maxSports"),
    max_events_per_sport: str | None = Query(None, alias="maxEventsPerSport"),
    regions: str | None = Query(None),
    bookmakers: str | None = Query(None),
    sports: str | None = Query(None),
    use_cache: str | None = Query(None, alias="useCache"),
) -> SnapshotOptions:
    # Raw strings so malformed values fall back to defaults instead of a 422.
    return resolve_snapshot_options(
        hours_ahead=hours_ahead,
        max_sports=max_sports,
        max_events_per_sport=max_events_per_sport,
        regions=regions,
        bookmakers=bookmakers,
        sports=sports,
        use_cache=use_cache == "true",
    )


@router.get("/market", response_model=MarketSnapshotResult)
async def market_snapshot(
    options: SnapshotOptions = Depends(snapshot_options),
    client: OddsApiClient = Depends(get_odds_client),
    sink: SnapshotLogSink = Depends(get_snapshot_sink),
) -> MarketSnapshotResult:
    try:
        return await create_market_snapshot(client, options, sink=sink)
    except Exception as exc:
        raise odds_api_http_error(exc, "Market snapshot failed", options=options.model_dump()) from exc


@router.get("/sport-names", response_model=SportNamesSnapshotResult)
async def sport_names_snapshot(
    options: SnapshotOptions = Depends(snapshot_options),
    client: OddsApiClient = Depends(get_odds_client),
    sink: SnapshotLogSink = Depends(get_snapshot_sink),
) -> SportNamesSnapshotResult:
    try:
        return await create_sport_names_snapshot(client, options, sink=sink)
    except Exception as exc:
        raise odds_api_http_error(exc, "Sport names snapshot failed", options=options.model_dump()) from exc


@router.get("/team-names", response_model=TeamNamesSnapshotResult)
async def team_names_snapshot(
    options: SnapshotOptions = Depends(snapshot_options),
    client: OddsApiClient = Depends(get_odds_client),
    sink: SnapshotLogSink = Depends(get_snapshot_sink),
) -> TeamNamesSnapshotResult:
    try:
        return await create_team_names_snapshot(client, options, sink=sink)
    except Exception as exc:
        raise odds_api_http_error(exc, "Team names snapshot failed", options=options.model_dump()) from exc


@router.get("/player-names", response_model=PlayerNamesSnapshotResult)
async def player_names_snapshot(
    options: SnapshotOptions = Depends(snapshot_options),
    client: OddsApiClient = Depends(get_odds_client),
    sink: SnapshotLogSink = Depends(get_snapshot_sink),
) -> PlayerNamesSnapshotResult:
    try:
        return await create_player_names_snapshot(client, options, sink=sink)
    except Exception as exc:
        raise odds_api_http_error(exc, "Player names snapshot failed", options=options.model_dump()) from exc

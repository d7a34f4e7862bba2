import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from oddsnap.api.deps import get_odds_client, get_snapshot_sink, odds_api_http_error
from oddsnap.core.config import get_settings
from oddsnap.schemas.snapshot import EventMarketCatalogResult, MarketCatalogCrawlResult
from oddsnap.services.market_catalog import crawl_market_catalog, log_event_market_catalog
from oddsnap.services.odds_api import OddsApiClient
from oddsnap.services.snapshot_log import SnapshotLogSink
from oddsnap.services.snapshots import positive_count

router = APIRouter()
logger = logging.getLogger(__name__)

DANGEROUS_GATE_DETAIL = (
    "The market catalog crawl is intentionally disabled by default. "
    "Pass dangerous=true to acknowledge the API quota cost."
)


def _split_csv(raw: str | None) -> list[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


@router.get("/markets", response_model=MarketCatalogCrawlResult)
async def market_catalog(
    dangerous: str | None = Query(None),
    sports: str = Query("all"),
    max_sports: str | None = Query(None, alias="maxSports"),
    max_events_per_sport: str | None = Query(None, alias="maxEventsPerSport"),
    regions: str | None = Query(None),
    bookmakers: str | None = Query(None),
    client: OddsApiClient = Depends(get_odds_client),
) -> MarketCatalogCrawlResult:
    if dangerous != "true":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DANGEROUS_GATE_DETAIL)

    settings = get_settings()
    sport_filter = None if sports.strip() == "all" else _split_csv(sports)
    try:
        return await crawl_market_catalog(
            client,
            sports=sport_filter,
            max_sports=positive_count(max_sports, settings.catalog_default_max_sports),
            max_events_per_sport=positive_count(
                max_events_per_sport, settings.catalog_default_max_events_per_sport
            ),
            regions=regions,
            bookmakers=_split_csv(bookmakers),
        )
    except Exception as exc:
        raise odds_api_http_error(
            exc,
            "Failed to build market catalog",
            sports=sports,
            regions=regions,
            bookmakers=bookmakers,
        ) from exc


@router.get("/event-markets", response_model=EventMarketCatalogResult)
async def event_market_catalog(
    sport_key: str = Query("", alias="sportKey"),
    event_id: str = Query("", alias="eventId"),
    regions: str | None = Query(None),
    bookmakers: str | None = Query(None),
    use_cache: str | None = Query(None, alias="useCache"),
    client: OddsApiClient = Depends(get_odds_client),
    sink: SnapshotLogSink = Depends(get_snapshot_sink),
) -> EventMarketCatalogResult:
    sport_key, event_id = sport_key.strip(), event_id.strip()
    if not sport_key or not event_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Both sportKey and eventId are required to generate a market catalog log.",
        )

    try:
        return await log_event_market_catalog(
            client,
            sport_key,
            event_id,
            sink=sink,
            regions=(regions or "").strip() or "us",
            bookmakers=_split_csv(bookmakers),
            use_cache=use_cache == "true",
        )
    except Exception as exc:
        raise odds_api_http_error(
            exc,
            "Failed to generate market catalog log",
            sport_key=sport_key,
            event_id=event_id,
        ) from exc

from fastapi import APIRouter, Depends, Query

from oddsnap.api.deps import get_odds_client, odds_api_http_error
from oddsnap.schemas.snapshot import OddsSmokeResult
from oddsnap.services.odds_api import OddsApiClient
from oddsnap.services.smoke import DEFAULT_SMOKE_HOURS_AHEAD, DEFAULT_SMOKE_MAX_MARKETS, run_odds_smoke_test
from oddsnap.services.snapshots import positive_count

router = APIRouter()


@router.get("/odds", response_model=OddsSmokeResult)
async def odds_smoke_test(
    hours_ahead: str | None = Query(None, alias="hoursAhead"),
    max_markets: str | None = Query(None, alias="maxMarkets"),
    client: OddsApiClient = Depends(get_odds_client),
) -> OddsSmokeResult:
    try:
        return await run_odds_smoke_test(
            client,
            hours_ahead=positive_count(hours_ahead, DEFAULT_SMOKE_HOURS_AHEAD),
            max_markets=positive_count(max_markets, DEFAULT_SMOKE_MAX_MARKETS),
        )
    except Exception as exc:
        raise odds_api_http_error(exc, "Odds API smoke test failed") from exc

import logging
from typing import Any

from oddsnap.core.errors import NoActiveSportsError
from oddsnap.schemas.snapshot import OddsSmokeResult, SmokeSampleEvent, SportRef
from oddsnap.services.names import normalize_teams
from oddsnap.services.odds_api import OddsApiClient

logger = logging.getLogger(__name__)

DEFAULT_SMOKE_HOURS_AHEAD = 24
DEFAULT_SMOKE_MAX_MARKETS = 3


async def run_odds_smoke_test(
    client: OddsApiClient,
    *,
    hours_ahead: int = DEFAULT_SMOKE_HOURS_AHEAD,
    max_markets: int = DEFAULT_SMOKE_MAX_MARKETS,
) -> OddsSmokeResult:
    """Walk sports -> events -> markets -> odds once, uncached, for the first active sport."""
    client.require_api_key()
    hours_ahead = hours_ahead if hours_ahead > 0 else DEFAULT_SMOKE_HOURS_AHEAD
    max_markets = max_markets if max_markets > 0 else DEFAULT_SMOKE_MAX_MARKETS
    context: dict[str, Any] = {"hours_ahead": hours_ahead, "max_markets": max_markets}

    try:
        active = [sport for sport in await client.fetch_sports(use_cache=False) if sport.active]
        if not active:
            raise NoActiveSportsError("No active sports returned by Odds API.")

        sport = active[0]
        primary = SportRef(key=sport.key, title=sport.title)
        context["sport_key"] = sport.key

        events = await client.fetch_events_for_sport(sport.key, hours_ahead=hours_ahead, use_cache=False)
        context["events_checked"] = len(events)
        if not events:
            return OddsSmokeResult(
                tested_at=client.now(),
                primary_sport=primary,
                events_checked=0,
                note=f"No events found for {sport.key} in the next {hours_ahead} hours.",
            )

        event = events[0]
        context["event_id"] = event.event_id
        markets = await client.fetch_markets_for_event(sport.key, event.event_id, use_cache=False)
        selected = markets.market_keys[:max_markets]
        context["markets_requested"] = selected

        odds = await client.fetch_odds_for_event(sport.key, event.event_id, selected, regions="us")
    except NoActiveSportsError:
        raise
    except Exception:
        logger.warning("Odds API smoke test failed", extra={"last_step": context})
        raise

    logger.info("Odds API smoke test passed", extra=context)
    return OddsSmokeResult(
        tested_at=client.now(),
        primary_sport=primary,
        events_checked=len(events),
        sample_event=SmokeSampleEvent(
            event_id=event.event_id,
            teams=normalize_teams(event),
            start_time=event.start_time,
            markets_requested=selected,
            total_markets_available=len(markets.market_keys),
            odds=odds.model_dump(mode="json"),
        ),
    )

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlencode

import httpx
from pydantic import TypeAdapter, ValidationError

from oddsnap.core.config import get_settings
from oddsnap.core.errors import (
    MalformedPayloadError,
    MissingCredentialError,
    UpstreamHttpError,
    UpstreamTransportError,
)
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
from oddsnap.services.response_cache import ResponseCache

logger = logging.getLogger(__name__)
settings = get_settings()

_SPORTS = TypeAdapter(list[Sport])
_EVENTS = TypeAdapter(list[ApiEvent])
_MARKETS = TypeAdapter(list[MarketDefinition])
_BOOKMAKER_GROUPS = TypeAdapter(list[BookmakerMarketGroup])

ParamValue = str | int | float | bool | None


def _parse_header_int(headers: httpx.Headers, key: str) -> int | None:
    raw = headers.get(key)
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _format_param(value: str | int | float | bool) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def canonical_params(params: Mapping[str, ParamValue]) -> list[tuple[str, str]]:
    """Drop unset values and order by name so equal requests share one cache key."""
    return [(key, _format_param(value)) for key, value in sorted(params.items()) if value is not None]


def join_csv(values: Iterable[str] | None) -> str | None:
    if values is None:
        return None
    cleaned = [value.strip() for value in values if value and value.strip()]
    return ",".join(cleaned) or None


def unique_market_keys(markets: Iterable[MarketDefinition]) -> list[str]:
    keys: dict[str, None] = {}
    for market in markets:
        if isinstance(market.key, str) and market.key.strip():
            keys.setdefault(market.key, None)
    return list(keys)


def _validate(adapter: TypeAdapter, payload: object, path: str) -> Any:
    try:
        return adapter.validate_python(payload)
    except ValidationError as exc:
        raise MalformedPayloadError(path, f"{exc.error_count()} validation error(s)") from exc


def normalize_markets_payload(event_id: str, payload: object, *, path: str = "") -> EventMarkets:
    """Turn either markets response shape into a tagged ``EventMarkets`` value.

    The provider answers with a flat list of market definitions or with an
    object carrying a ``bookmakers`` list, each holding its own ``markets``.
    Bookmaker rows without a ``markets`` list are ignored.
    """
    if isinstance(payload, list):
        markets = _validate(_MARKETS, payload, path)
        return FlatEventMarkets(event_id=event_id, market_keys=unique_market_keys(markets), raw_markets=markets)

    if isinstance(payload, dict) and isinstance(payload.get("bookmakers"), list):
        rows = [row for row in payload["bookmakers"] if isinstance(row, dict) and isinstance(row.get("markets"), list)]
        groups = _validate(_BOOKMAKER_GROUPS, rows, path)
        markets = [market for group in groups for market in group.markets]
        return BookmakerEventMarkets(
            event_id=event_id,
            market_keys=unique_market_keys(markets),
            raw_markets=markets,
            bookmaker_markets=groups,
        )

    raise MalformedPayloadError(path, f"expected a market list or bookmaker groups, got {type(payload).__name__}")


class OddsApiClient:
    """Async client for The Odds API v4 with an optional shared response cache.

    ``http_client`` lets the caller share one connection pool (the FastAPI app
    does); when omitted a short-lived ``httpx.AsyncClient`` is opened per call.
    The credential is sent as the ``apiKey`` query parameter but is never part
    of a cache key.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        cache: ResponseCache | None = None,
        http_client: httpx.AsyncClient | None = None,
        now: Callable[[], datetime] | None = None,
        base_url: str | None = None,
    ) -> None:
        self._api_key = api_key
        self.cache = cache if cache is not None else ResponseCache()
        self._http_client = http_client
        self._now = now or (lambda: datetime.now(UTC))
        self._base_url = (base_url or settings.odds_api_base_url).rstrip("/")
        self.last_usage = ApiUsage()

    def require_api_key(self) -> str:
        api_key = self._api_key or settings.odds_api_key
        if not api_key:
            raise MissingCredentialError()
        return api_key

    def now(self) -> datetime:
        return self._now()

    async def get(
        self,
        path: str,
        params: Mapping[str, ParamValue] | None = None,
        *,
        use_cache: bool = True,
        cache_ttl_seconds: float | None = None,
    ) -> Any:
        api_key = self.require_api_key()
        query = canonical_params(params or {})

        if not use_cache:
            return await self._request(path, query, api_key)

        cache_key = f"{path}?{urlencode(query)}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("Odds API cache hit", extra={"cache_key": cache_key})
            return cached

        async with self.cache.get_lock(cache_key):
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached
            payload = await self._request(path, query, api_key)
            ttl = cache_ttl_seconds if cache_ttl_seconds is not None else settings.odds_api_cache_ttl_seconds
            self.cache.set(cache_key, payload, ttl)
            return payload

    async def _request(self, path: str, query: list[tuple[str, str]], api_key: str) -> Any:
        url = f"{self._base_url}{path}"
        params = [*query, ("apiKey", api_key)]
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url, params=params)
            else:
                async with httpx.AsyncClient(timeout=settings.odds_api_timeout_seconds) as client:
                    response = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise UpstreamTransportError(path, exc.__class__.__name__) from exc

        self.last_usage = ApiUsage(
            requests_remaining=_parse_header_int(response.headers, "x-requests-remaining"),
            requests_used=_parse_header_int(response.headers, "x-requests-used"),
            requests_last=_parse_header_int(response.headers, "x-requests-last"),
        )

        if not response.is_success:
            logger.warning(
                "Odds API request failed",
                extra={"path": path, "status_code": response.status_code},
            )
            raise UpstreamHttpError(response.status_code, response.text, path)

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedPayloadError(path, "response body is not valid JSON") from exc

        logger.info(
            "Odds API response received",
            extra={
                "path": path,
                "requests_remaining": self.last_usage.requests_remaining,
                "requests_used": self.last_usage.requests_used,
                "requests_last": self.last_usage.requests_last,
            },
        )
        return payload

    async def fetch_sports(self, *, use_cache: bool = True) -> list[Sport]:
        path = "/sports"
        sports: list[Sport] = _validate(_SPORTS, await self.get(path, use_cache=use_cache), path)
        logger.info("Fetched sports from Odds API", extra={"sports_seen": len(sports)})
        return sports

    async def fetch_events_for_sport(
        self,
        sport_key: str,
        *,
        hours_ahead: float = 48,
        use_cache: bool = True,
        cache_ttl_seconds: float | None = None,
    ) -> list[EventSummary]:
        path = f"/sports/{sport_key}/events"
        payload = await self.get(path, use_cache=use_cache, cache_ttl_seconds=cache_ttl_seconds)
        events: list[ApiEvent] = _validate(_EVENTS, payload, path)

        now = _as_utc(self._now())
        try:
            cutoff = now + timedelta(hours=hours_ahead)
        except OverflowError:
            # Window reaches past the last representable datetime: no upper bound.
            cutoff = datetime.max.replace(tzinfo=UTC)
        summaries = [
            EventSummary(
                event_id=event.id,
                sport_key=event.sport_key,
                teams=event.teams,
                home_team=event.home_team,
                away_team=event.away_team,
                start_time=_as_utc(event.commence_time),
            )
            for event in events
            if now <= _as_utc(event.commence_time) <= cutoff
        ]

        logger.info(
            "Fetched events in window",
            extra={
                "sport_key": sport_key,
                "hours_ahead": hours_ahead,
                "events_seen": len(events),
                "events_in_window": len(summaries),
            },
        )
        return summaries

    async def fetch_markets_for_event(
        self,
        sport_key: str,
        event_id: str,
        *,
        regions: str = "us",
        bookmakers: Iterable[str] | None = None,
        use_cache: bool = True,
        cache_ttl_seconds: float | None = None,
    ) -> EventMarkets:
        path = f"/sports/{sport_key}/events/{event_id}/markets"
        payload = await self.get(
            path,
            {"regions": regions, "bookmakers": join_csv(bookmakers)},
            use_cache=use_cache,
            cache_ttl_seconds=cache_ttl_seconds,
        )
        markets = normalize_markets_payload(event_id, payload, path=path)

        logger.info(
            "Fetched markets for event",
            extra={
                "sport_key": sport_key,
                "event_id": event_id,
                "shape": markets.shape,
                "markets_seen": len(markets.market_keys),
                "bookmakers_seen": len(markets.bookmaker_markets) if markets.shape == "bookmakers" else 0,
            },
        )
        return markets

    async def fetch_odds_for_event(
        self,
        sport_key: str,
        event_id: str,
        market_keys: Iterable[str] = (),
        *,
        regions: str = "us",
        bookmakers: Iterable[str] | None = None,
        use_cache: bool = False,
        cache_ttl_seconds: float | None = None,
    ) -> OddsSnapshot:
        markets = [key for key in market_keys if key]
        raw = await self.get(
            f"/sports/{sport_key}/events/{event_id}/odds",
            {"markets": join_csv(markets), "regions": regions, "bookmakers": join_csv(bookmakers)},
            use_cache=use_cache,
            cache_ttl_seconds=cache_ttl_seconds,
        )
        fetched_at = _as_utc(self._now())

        logger.info(
            "Fetched odds for event",
            extra={
                "sport_key": sport_key,
                "event_id": event_id,
                "markets": ", ".join(markets) or "all available",
            },
        )
        return OddsSnapshot(event_id=event_id, markets=markets or None, fetched_at=fetched_at, raw=raw)

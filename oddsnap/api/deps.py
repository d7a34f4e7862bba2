import logging

from fastapi import HTTPException, Request, status

from oddsnap.core.config import get_settings
from oddsnap.core.errors import MissingCredentialError, NoActiveSportsError
from oddsnap.services.odds_api import OddsApiClient
from oddsnap.services.response_cache import ResponseCache
from oddsnap.services.snapshot_log import SnapshotLogSink

logger = logging.getLogger(__name__)


def get_odds_client(request: Request) -> OddsApiClient:
    """Client bound to the app-wide response cache and connection pool."""
    state = request.app.state
    cache = getattr(state, "odds_cache", None)
    if cache is None:
        cache = state.odds_cache = ResponseCache()
    return OddsApiClient(cache=cache, http_client=getattr(state, "http_client", None))


def get_snapshot_sink() -> SnapshotLogSink:
    return SnapshotLogSink(get_settings().snapshot_log_dir)


def odds_api_http_error(exc: Exception, failure_detail: str, **context: object) -> HTTPException:
    if isinstance(exc, MissingCredentialError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NoActiveSportsError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    logger.exception(failure_detail, extra={"error": str(exc), **context})
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"{failure_detail}. Check server logs for details.",
    )

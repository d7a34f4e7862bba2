import logging
from contextlib import asynccontextmanager

import httpx
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.fastapi import FastApiIntegration

from oddsnap.api.router import api_router
from oddsnap.core.config import get_settings
from oddsnap.core.logging import setup_logging
from oddsnap.services.response_cache import ResponseCache

settings = get_settings()

if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.app_env,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        integrations=[FastApiIntegration()],
        send_default_pii=False,
    )
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    app.state.http_client = httpx.AsyncClient(timeout=settings.odds_api_timeout_seconds)
    logger.info(
        "Odds API client configured",
        extra={
            "base_url": settings.odds_api_base_url,
            "api_key_configured": bool(settings.odds_api_key),
            "cache_ttl_seconds": settings.odds_api_cache_ttl_seconds,
            "snapshot_log_dir": settings.snapshot_log_dir,
            "snapshot_concurrency": settings.snapshot_concurrency,
        },
    )

    yield

    await app.state.http_client.aclose()
    app.state.http_client = None


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.state.odds_cache = ResponseCache()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "Origin"],
)

app.include_router(api_router, prefix="/api/v1")

from fastapi import APIRouter

from oddsnap.api.routes import catalog, health, smoke, snapshots

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(snapshots.router, prefix="/snapshots", tags=["snapshots"])
api_router.include_router(catalog.router, prefix="/catalog", tags=["catalog"])
api_router.include_router(smoke.router, prefix="/smoke", tags=["smoke"])

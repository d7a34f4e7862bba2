from fastapi import APIRouter

router = APIRouter()


@router.get("/health/live")
async def health_live() -> dict:
    return {"status": "ok"}

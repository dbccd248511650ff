"""Health check endpoints."""
from fastapi import APIRouter, Request

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def liveness() -> dict:
    """Process is up."""
    return {"status": "ok"}


@router.get("/ready")
async def readiness(request: Request) -> dict:
    """Catalog is readable. A missing or corrupt document still reads as empty."""
    events = await request.app.state.catalog_store.read_all()
    return {"status": "ready", "events": len(events)}

"""HTTP API routers."""
from .events import router as events_router
from .uploads import router as uploads_router

__all__ = ["events_router", "uploads_router"]

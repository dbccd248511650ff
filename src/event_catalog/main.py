"""Event catalog service main application."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from .api import events_router, uploads_router
from .config import Settings, app_settings
from .health import router as health_router
from .logging import configure_logging, get_logger
from .metrics import get_metrics
from .middleware import CorrelationIDMiddleware, register_exception_handlers
from .services import (
    AssetLifecycleCoordinator,
    CatalogStore,
    EventCatalogService,
    UploadService,
    build_catalog_store,
)
from .storage import BlobStore, build_blob_store

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: log startup state and shutdown."""
    settings: Settings = app.state.settings
    logger.info("event_catalog_service_starting", version=settings.app_version)

    events = await app.state.catalog_store.read_all()
    logger.info(
        "event_catalog_service_started",
        version=settings.app_version,
        catalog_backend=settings.catalog_backend,
        events=len(events),
        local_utc_offset=settings.local_utc_offset,
    )

    yield

    logger.info("event_catalog_service_shutdown")


def create_app(
    settings: Optional[Settings] = None,
    catalog_store: Optional[CatalogStore] = None,
    blob_store: Optional[BlobStore] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Settings to use; defaults to the environment
        catalog_store: Catalog backend; defaults to ``CATALOG_BACKEND``
        blob_store: Blob store; defaults to the configured S3 bucket
    """
    settings = settings or app_settings
    catalog_store = catalog_store or build_catalog_store(settings)
    blob_store = blob_store or build_blob_store(settings)

    app = FastAPI(
        title="CloudSound Event Catalog Service",
        version=settings.app_version,
        description="Scheduled radio events and the audio assets they reference",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.catalog_store = catalog_store
    app.state.blob_store = blob_store
    app.state.event_service = EventCatalogService(
        store=catalog_store,
        coordinator=AssetLifecycleCoordinator(blob_store),
        settings=settings,
    )
    app.state.upload_service = UploadService(blob_store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIDMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(events_router, prefix=settings.api_prefix)
    app.include_router(uploads_router, prefix=settings.api_prefix)

    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(content=get_metrics(), media_type="text/plain")

    return app


configure_logging(log_level=app_settings.log_level, log_format=app_settings.log_format)

app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8005)

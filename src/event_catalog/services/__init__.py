"""Services for the event catalog."""
from .asset_coordinator import AssetLifecycleCoordinator, collect_locators
from .catalog_store import CatalogStore, InMemoryCatalogStore, JsonFileCatalogStore, build_catalog_store
from .event_service import DeletionResult, EventCatalogService
from .upload_service import UploadService

__all__ = [
    "AssetLifecycleCoordinator",
    "collect_locators",
    "CatalogStore",
    "InMemoryCatalogStore",
    "JsonFileCatalogStore",
    "build_catalog_store",
    "DeletionResult",
    "EventCatalogService",
    "UploadService",
]

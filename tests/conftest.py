"""Shared fixtures for event catalog tests."""
from typing import Dict, List, Optional, Set

import pytest

from event_catalog.config import Settings
from event_catalog.exceptions import BlobStoreError
from event_catalog.models import Event, Track
from event_catalog.services import (
    AssetLifecycleCoordinator,
    EventCatalogService,
    InMemoryCatalogStore,
    UploadService,
)
from event_catalog.storage import BlobStore, DeleteOutcome

CDN = "https://cdn.example.com"


class FakeBlobStore(BlobStore):
    """In-process blob store with scriptable failures."""

    def __init__(self, objects: Optional[Set[str]] = None):
        self.objects: Set[str] = set(objects or ())
        self.fail_on: Set[str] = set()
        self.delete_calls: List[str] = []
        self.puts: Dict[str, bytes] = {}
        self.fail_puts = False

    async def delete(self, locator: str) -> DeleteOutcome:
        self.delete_calls.append(locator)
        if locator in self.fail_on:
            raise BlobStoreError(locator, "simulated outage")
        if not locator.startswith(CDN + "/"):
            return DeleteOutcome.SKIPPED
        if locator not in self.objects:
            return DeleteOutcome.MISSING
        self.objects.discard(locator)
        return DeleteOutcome.DELETED

    async def put(self, key: str, body: bytes, content_type: str) -> str:
        if self.fail_puts:
            raise BlobStoreError(self.public_url(key), "simulated outage")
        self.puts[key] = body
        self.objects.add(self.public_url(key))
        return self.public_url(key)

    async def presign_upload(self, key: str, content_type: str) -> str:
        return f"{CDN}/{key}?X-Amz-Signature=abc"

    def public_url(self, key: str) -> str:
        return f"{CDN}/{key}"


def make_track(track_id: str = "t1", duration: float = 300, **extra) -> Track:
    return Track(
        track_id=track_id,
        track_name=f"Track {track_id}",
        track_url=f"{CDN}/tracks/{track_id}.mp3",
        track_duration_seconds=duration,
        **extra,
    )


def make_event(
    event_id: str,
    start: str = "2024-01-01T00:00:00.000Z",
    end: str = "2024-01-01T02:00:00.000Z",
    tracks: Optional[List[Track]] = None,
    cover_image_url: Optional[str] = None,
) -> Event:
    return Event(
        event_id=event_id,
        event_name=f"Event {event_id}",
        artist_name="DJ X",
        start_time_utc=start,
        end_time_utc=end,
        tracks=tracks if tracks is not None else [make_track(f"{event_id}-t1")],
        cover_image_url=cover_image_url,
    )


def track_payload(track_id: str = "t1", duration: float = 300) -> dict:
    return {
        "track_id": track_id,
        "track_name": f"Track {track_id}",
        "track_url": f"{CDN}/tracks/{track_id}.mp3",
        "track_duration_seconds": duration,
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        catalog_backend="memory",
        local_utc_offset="+05:30",
        blob_public_base_url=CDN,
        operation_timeout_seconds=5,
    )


@pytest.fixture
def store() -> InMemoryCatalogStore:
    return InMemoryCatalogStore()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def service(store, blob_store, settings) -> EventCatalogService:
    return EventCatalogService(
        store=store,
        coordinator=AssetLifecycleCoordinator(blob_store),
        settings=settings,
    )


@pytest.fixture
def upload_service(blob_store) -> UploadService:
    return UploadService(blob_store)


@pytest.fixture
def sunrise_payload() -> dict:
    return {
        "event_name": "Sunrise Session",
        "artist_name": "DJ X",
        "start_time_utc": "2024-01-01T00:00:00Z",
        "end_time_utc": "2024-01-01T02:00:00Z",
        "tracks": [track_payload("t1", 300)],
    }

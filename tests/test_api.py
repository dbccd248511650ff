"""HTTP API tests."""
import asyncio

import pytest
from fastapi.testclient import TestClient

from event_catalog.api.events import EventView
from event_catalog.main import create_app
from event_catalog.services import InMemoryCatalogStore

from conftest import CDN, FakeBlobStore, make_event, track_payload


@pytest.fixture
def app_store():
    return InMemoryCatalogStore()


@pytest.fixture
def app_blobs():
    return FakeBlobStore()


@pytest.fixture
def client(settings, app_store, app_blobs):
    app = create_app(settings=settings, catalog_store=app_store, blob_store=app_blobs)
    with TestClient(app) as test_client:
        yield test_client


class TestEventEndpoints:
    """Test the event routes end to end."""

    def test_create_and_list(self, client, sunrise_payload):
        response = client.post("/api/events", json=sunrise_payload)

        assert response.status_code == 201
        event = response.json()["event"]
        assert event["event_name"] == "Sunrise Session"
        assert event["start_time_local"] == "2024-01-01T05:30"
        assert event["end_time_local"] == "2024-01-01T07:30"
        assert event["duration_seconds"] == 300
        assert "cover_image_url" not in event

        listed = client.get("/api/events").json()["events"]
        assert [item["event_id"] for item in listed] == [event["event_id"]]

    def test_create_validation_error(self, client, sunrise_payload, app_store):
        payload = dict(sunrise_payload, end_time_utc=sunrise_payload["start_time_utc"])

        response = client.post("/api/events", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "end_time_utc must be after start_time_utc."
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"]["field"] == "end_time_utc"
        assert app_store.write_count == 0

    def test_out_of_range_duration_is_a_validation_error(self, client, sunrise_payload):
        payload = dict(sunrise_payload, tracks=[dict(track_payload("t1"), track_duration_seconds=10 ** 400)])

        response = client.post("/api/events", json=payload)

        assert response.status_code == 400
        assert "non-negative number" in response.json()["error"]

    def test_invalid_json(self, client):
        response = client.post("/api/events", content=b"{broken", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON payload."

    def test_get_event(self, client, app_store):
        client.portal.call(app_store.replace_all, [make_event("e1")])

        assert client.get("/api/events/e1").json()["event"]["event_id"] == "e1"
        assert client.get("/api/events/nope").status_code == 404

    def test_partial_update(self, client, sunrise_payload):
        event_id = client.post("/api/events", json=sunrise_payload).json()["event"]["event_id"]

        response = client.put(f"/api/events/{event_id}", json={"event_name": "New Name"})

        assert response.status_code == 200
        event = response.json()["event"]
        assert event["event_name"] == "New Name"
        assert event["tracks"][0]["track_id"] == "t1"
        assert event["start_time_utc"] == "2024-01-01T00:00:00.000Z"

    def test_patch_is_accepted(self, client, sunrise_payload):
        event_id = client.post("/api/events", json=sunrise_payload).json()["event"]["event_id"]

        response = client.patch(f"/api/events/{event_id}", json={"artist_name": "DJ Z"})

        assert response.status_code == 200
        assert response.json()["event"]["artist_name"] == "DJ Z"

    def test_update_unknown_event(self, client):
        response = client.put("/api/events/nope", json={"event_name": "x"})

        assert response.status_code == 404
        assert response.json()["error"] == "Event not found."

    def test_delete_event(self, client, app_store, app_blobs):
        event = make_event("e1", cover_image_url=f"{CDN}/images/e1.jpg")
        app_blobs.objects = set(event.asset_locators())
        client.portal.call(app_store.replace_all, [event, make_event("e2")])

        response = client.delete("/api/events/e1")

        assert response.status_code == 200
        assert response.json() == {"deleted": 1, "remaining": 1, "deleted_ids": ["e1"]}
        assert app_blobs.objects == set()

    def test_delete_event_upstream_failure(self, client, app_store, app_blobs):
        event = make_event("e1")
        app_blobs.fail_on = set(event.asset_locators())
        client.portal.call(app_store.replace_all, [event])

        response = client.delete("/api/events/e1")

        assert response.status_code == 502
        assert response.json()["error_code"] == "UPSTREAM_STORAGE_ERROR"
        assert client.get("/api/events/e1").status_code == 200

    def test_delete_all(self, client, app_store):
        client.portal.call(app_store.replace_all, [make_event("e1"), make_event("e2")])

        response = client.delete("/api/events")

        assert response.json()["deleted"] == 2
        assert response.json()["remaining"] == 0
        assert client.get("/api/events").json() == {"events": []}

    def test_delete_expired_route_is_not_an_event_id(self, client, app_store):
        past = make_event("past", start="2000-01-01T00:00:00.000Z", end="2000-01-01T01:00:00.000Z")
        future = make_event("future", start="2999-01-01T00:00:00.000Z", end="2999-01-01T01:00:00.000Z")
        client.portal.call(app_store.replace_all, [past, future])

        response = client.delete("/api/events/expired")

        assert response.status_code == 200
        assert response.json()["deleted_ids"] == ["past"]
        assert response.json()["remaining"] == 1

    def test_storage_error_maps_to_500(self, settings, app_blobs, sunrise_payload):
        class BrokenStore(InMemoryCatalogStore):
            async def replace_all(self, events):
                from event_catalog.exceptions import StorageError
                raise StorageError(message="Failed to save the event catalog.")

        app = create_app(settings=settings, catalog_store=BrokenStore(), blob_store=app_blobs)
        with TestClient(app) as broken_client:
            response = broken_client.post("/api/events", json=sunrise_payload)

        assert response.status_code == 500
        assert response.json()["error_code"] == "STORAGE_ERROR"

    def test_timeout_maps_to_504_without_writing(self, settings, app_blobs, sunrise_payload):
        class StallingStore(InMemoryCatalogStore):
            delay = 0.0

            async def read_all(self):
                await asyncio.sleep(self.delay)
                return await super().read_all()

        store = StallingStore()
        short = settings.model_copy(update={"operation_timeout_seconds": 0.05})
        app = create_app(settings=short, catalog_store=store, blob_store=app_blobs)
        with TestClient(app) as slow_client:
            store.delay = 1
            response = slow_client.post("/api/events", json=sunrise_payload)

        assert response.status_code == 504
        assert response.json()["error_code"] == "OPERATION_TIMEOUT"
        assert store.write_count == 0


class TestUploadEndpoints:
    """Test asset upload routes."""

    def test_track_upload_url(self, client):
        response = client.post("/api/uploads/track-url", json={"fileName": "My Intro.MP3", "contentType": "audio/mpeg"})

        assert response.status_code == 201
        body = response.json()
        assert body["object_url"] == f"{CDN}/tracks/{body['track_id']}-my-intro.mp3"
        assert body["upload_url"].startswith(body["object_url"])

    def test_track_upload_rejects_non_audio(self, client):
        response = client.post("/api/uploads/track-url", json={"fileName": "x.txt", "contentType": "text/plain"})

        assert response.status_code == 400

    def test_cover_upload(self, client, app_blobs):
        response = client.post(
            "/api/uploads/cover",
            files={"file": ("Cover Art!.PNG", b"\x89PNG", "image/png")},
        )

        assert response.status_code == 201
        url = response.json()["cover_image_url"]
        assert url.startswith(f"{CDN}/images/")
        assert url.endswith("-cover-art.png")
        assert list(app_blobs.puts.values()) == [b"\x89PNG"]

    def test_cover_upload_rejects_other_types(self, client):
        response = client.post("/api/uploads/cover", files={"file": ("a.gif", b"GIF", "image/gif")})

        assert response.status_code == 400
        assert "JPEG, PNG, or WebP" in response.json()["error"]

    def test_cover_upload_missing_file(self, client):
        response = client.post("/api/uploads/cover", data={"other": "x"})

        assert response.status_code == 400

    def test_cover_upload_storage_failure(self, client, app_blobs):
        app_blobs.fail_puts = True

        response = client.post("/api/uploads/cover", files={"file": ("a.jpg", b"JPEG", "image/jpeg")})

        assert response.status_code == 502
        assert response.json()["error"] == "Uploading cover image failed."


class TestServiceEndpoints:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
        assert client.get("/health/ready").json() == {"status": "ready", "events": 0}

    def test_metrics(self, client, sunrise_payload):
        client.post("/api/events", json=sunrise_payload)

        body = client.get("/metrics").text

        assert "event_catalog_mutations_total" in body
        assert "event_catalog_http_requests_total" in body

    def test_correlation_id_is_echoed(self, client):
        response = client.get("/api/events", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"


def test_event_view_keeps_duration_method(settings):
    from event_catalog.services.time_normalizer import parse_utc_offset

    view = EventView.from_event(make_event("e1"), parse_utc_offset(settings.local_utc_offset))

    assert "total_duration_seconds" not in EventView.model_fields
    assert view.duration_seconds == view.total_duration_seconds()

def test_sunrise_payload_fixture_is_valid(sunrise_payload):
    assert sunrise_payload["tracks"] == [track_payload("t1", 300)]

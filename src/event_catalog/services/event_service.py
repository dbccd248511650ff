"""
Catalog operations: create, list, update and the three delete paths.

Every destructive path runs the same ordered pipeline (snapshot, partition,
release assets, persist survivors) and aborts at the first failing stage, so
the catalog document stays the single record of which assets must exist.
"""
import asyncio
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..config import Settings
from ..exceptions import (
    NotFoundError,
    OperationTimeoutError,
    StorageError,
    UpstreamStorageError,
    ValidationError,
)
from ..logging import get_logger
from ..metrics import catalog_mutations_total
from ..models import Event, Track
from .asset_coordinator import AssetLifecycleCoordinator, collect_locators
from .asset_validator import ensure_cover_image_url, ensure_name, ensure_tracks
from .catalog_store import CatalogStore
from .deadline import deadline
from .time_normalizer import (
    derive_end_time,
    ensure_iso_instant,
    format_duration,
    is_expired,
    local_to_utc,
    parse_instant,
    parse_utc_offset,
)

logger = get_logger(__name__)

_OUTCOMES = (
    (ValidationError, "validation_error"),
    (NotFoundError, "not_found"),
    (UpstreamStorageError, "upstream_error"),
    (StorageError, "storage_error"),
    (OperationTimeoutError, "timeout"),
)

UPDATABLE_FIELDS = (
    "event_name",
    "artist_name",
    "start_time_utc",
    "start_time_local",
    "end_time_utc",
    "end_time_local",
    "tracks",
    "cover_image_url",
    "derive_end_time",
)


@dataclass
class DeletionResult:
    """Outcome of a delete operation."""
    deleted_ids: List[str] = field(default_factory=list)
    remaining: int = 0

    @property
    def deleted_count(self) -> int:
        return len(self.deleted_ids)


@asynccontextmanager
async def _observed(operation: str):
    try:
        yield
    except Exception as e:
        outcome = next((name for cls, name in _OUTCOMES if isinstance(e, cls)), "error")
        catalog_mutations_total.labels(operation=operation, outcome=outcome).inc()
        raise
    catalog_mutations_total.labels(operation=operation, outcome="success").inc()


def _require_mapping(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValidationError("Invalid JSON payload.")
    return payload


def _ensure_window(start_utc: str, end_utc: str) -> None:
    if parse_instant(end_utc) <= parse_instant(start_utc):
        raise ValidationError(
            "end_time_utc must be after start_time_utc.",
            field="end_time_utc",
            details={"start_time_utc": start_utc, "end_time_utc": end_utc},
        )


def _find_index(events: List[Event], event_id: str) -> int:
    for index, event in enumerate(events):
        if event.event_id == event_id:
            return index
    return -1


class EventCatalogService:
    """Orchestrates validation, asset reclamation and catalog persistence.

    Mutations are serialized behind one lock so that read-modify-write cycles
    from this process never interleave. Last write wins across processes.

    The operation deadline covers every stage up to the catalog write. The
    write itself is never abandoned, so a timed-out mutation has no effect
    and a mutation that reached the write is reported as it ended.
    """

    def __init__(
        self,
        store: CatalogStore,
        coordinator: AssetLifecycleCoordinator,
        settings: Settings,
    ):
        self.store = store
        self.coordinator = coordinator
        self.offset = parse_utc_offset(settings.local_utc_offset)
        self.operation_timeout = settings.operation_timeout_seconds
        self._mutation_lock = asyncio.Lock()

    # Field resolution. A time field sent as null counts as not sent.

    def _supplied_start(self, payload: Mapping[str, Any]) -> Optional[str]:
        if payload.get("start_time_utc") is not None:
            return ensure_iso_instant(payload["start_time_utc"], "start_time_utc")
        if payload.get("start_time_local") is not None:
            return local_to_utc(payload["start_time_local"], "start_time_local", self.offset)
        return None

    def _supplied_end(self, payload: Mapping[str, Any]) -> Optional[str]:
        if payload.get("end_time_utc") is not None:
            return ensure_iso_instant(payload["end_time_utc"], "end_time_utc")
        if payload.get("end_time_local") is not None:
            return local_to_utc(payload["end_time_local"], "end_time_local", self.offset)
        return None

    def _resolve_start(self, payload: Mapping[str, Any]) -> str:
        start_utc = self._supplied_start(payload)
        if start_utc is None:
            raise ValidationError("start_time_utc is required.", field="start_time_utc")
        return start_utc

    def _resolve_end(self, payload: Mapping[str, Any], start_utc: str, tracks: List[Track]) -> str:
        end_utc = self._supplied_end(payload)
        if end_utc is None:
            return derive_end_time(start_utc, tracks, self.offset)
        return end_utc

    # Operations

    async def create_event(self, payload: Any) -> Event:
        """Validate ``payload`` and append a new event to the catalog.

        The end time is taken from ``end_time_utc``/``end_time_local`` or,
        when neither is given, derived from the summed track durations.

        Raises:
            ValidationError: before any storage access when the payload is invalid
            StorageError: when the catalog could not be written
        """
        async with _observed("create"):
            payload = _require_mapping(payload)

            event_name = ensure_name(payload.get("event_name"), "event_name")
            artist_name = ensure_name(payload.get("artist_name"), "artist_name")
            tracks = ensure_tracks(payload.get("tracks"))
            start_utc = self._resolve_start(payload)
            end_utc = self._resolve_end(payload, start_utc, tracks)
            _ensure_window(start_utc, end_utc)
            cover_image_url = ensure_cover_image_url(payload.get("cover_image_url"))

            event = Event(
                event_id=str(uuid.uuid4()),
                event_name=event_name,
                artist_name=artist_name,
                start_time_utc=start_utc,
                end_time_utc=end_utc,
                tracks=tracks,
                cover_image_url=cover_image_url,
            )

            async with self._mutation_lock:
                async with deadline("create_event", self.operation_timeout):
                    events = await self.store.read_all()
                events.append(event)
                await self.store.replace_all(events)

            logger.info(
                "event_created",
                event_id=event.event_id,
                event_name=event.event_name,
                track_count=len(event.tracks),
                duration=format_duration(event.total_duration_seconds()),
                start_time_utc=event.start_time_utc,
                end_time_utc=event.end_time_utc,
            )
            return event

    async def list_events(self) -> List[Event]:
        """All events ordered by start time; storage order is left untouched."""
        events = await self.store.read_all()
        ordered = sorted(events, key=lambda event: parse_instant(event.start_time_utc))
        logger.info("events_listed", count=len(ordered))
        return ordered

    async def get_event(self, event_id: str) -> Event:
        events = await self.store.read_all()
        index = _find_index(events, event_id)
        if index == -1:
            logger.warning("event_not_found", event_id=event_id)
            raise NotFoundError(message="Event not found.", details={"event_id": event_id})
        return events[index]

    async def update_event(self, event_id: str, payload: Any) -> Event:
        """Apply a partial update to one event.

        Only the supplied fields change. ``derive_end_time: true`` recomputes
        the end time from the resulting tracks. Assets that the update stops
        referencing are not reclaimed.

        Raises:
            NotFoundError: when ``event_id`` is not in the catalog
            ValidationError: when a supplied field is invalid or end <= start
            StorageError: when the catalog could not be written
        """
        async with _observed("update"):
            async with self._mutation_lock:
                async with deadline("update_event", self.operation_timeout):
                    events = await self.store.read_all()
                    index = _find_index(events, event_id)
                    if index == -1:
                        logger.warning("event_not_found", event_id=event_id)
                        raise NotFoundError(message="Event not found.", details={"event_id": event_id})

                    payload = _require_mapping(payload)
                    if not payload:
                        raise ValidationError("No fields provided to update.")

                    updated = self._apply_update(events[index], payload)
                    events[index] = updated
                await self.store.replace_all(events)

            logger.info(
                "event_updated",
                event_id=event_id,
                fields=sorted(key for key in payload if key in UPDATABLE_FIELDS),
            )
            return updated

    def _apply_update(self, current: Event, payload: Mapping[str, Any]) -> Event:
        changes: Dict[str, Any] = {}

        if "event_name" in payload:
            changes["event_name"] = ensure_name(payload["event_name"], "event_name")
        if "artist_name" in payload:
            changes["artist_name"] = ensure_name(payload["artist_name"], "artist_name")

        start_utc = self._supplied_start(payload)
        if start_utc is not None:
            changes["start_time_utc"] = start_utc

        derive = payload.get("derive_end_time")
        if derive is None:
            derive = False
        if not isinstance(derive, bool):
            raise ValidationError("derive_end_time must be a boolean.", field="derive_end_time")

        end_utc = self._supplied_end(payload)
        if derive and end_utc is not None:
            raise ValidationError(
                "Provide either an end time or derive_end_time, not both.",
                field="derive_end_time",
            )
        if end_utc is not None:
            changes["end_time_utc"] = end_utc

        if "tracks" in payload:
            changes["tracks"] = ensure_tracks(payload["tracks"])

        if "cover_image_url" in payload:
            changes["cover_image_url"] = ensure_cover_image_url(payload["cover_image_url"])

        updated = current.model_copy(update=changes)

        if derive:
            updated = updated.model_copy(
                update={"end_time_utc": derive_end_time(updated.start_time_utc, updated.tracks, self.offset)}
            )

        _ensure_window(updated.start_time_utc, updated.end_time_utc)
        return updated

    async def _remove(
        self,
        operation: str,
        select: Callable[[Event], bool],
        write_when_unchanged: bool = False,
        event_id: Optional[str] = None,
    ) -> DeletionResult:
        """Remove the selected events: release their assets, then persist the rest.

        With ``event_id`` set, nothing selected is a NotFoundError. Any failure
        before the catalog write leaves the catalog unchanged.
        """
        async with self._mutation_lock:
            async with deadline(operation, self.operation_timeout):
                events = await self.store.read_all()
                removed = [event for event in events if select(event)]
                retained = [event for event in events if not select(event)]

                if event_id is not None and not removed:
                    logger.warning("event_not_found", event_id=event_id)
                    raise NotFoundError(message="Event not found.", details={"event_id": event_id})

                if not removed and not write_when_unchanged:
                    return DeletionResult(deleted_ids=[], remaining=len(retained))

                await self.coordinator.release(collect_locators(removed, retained=retained))
            await self.store.replace_all(retained)

        return DeletionResult(
            deleted_ids=[event.event_id for event in removed],
            remaining=len(retained),
        )

    async def delete_event(self, event_id: str) -> DeletionResult:
        """Delete one event and the assets only it references.

        Raises:
            NotFoundError: when ``event_id`` is not in the catalog
            UpstreamStorageError: when asset deletion failed (catalog untouched)
            StorageError: when the catalog could not be written
        """
        async with _observed("delete_one"):
            result = await self._remove(
                "delete_event",
                lambda event: event.event_id == event_id,
                event_id=event_id,
            )

            logger.info("event_deleted", event_id=event_id, remaining=result.remaining)
            return result

    async def delete_all_events(self) -> DeletionResult:
        """Delete every event and its assets; on failure nothing is cleared."""
        async with _observed("delete_all"):
            result = await self._remove("delete_all_events", lambda event: True, write_when_unchanged=True)

            logger.info("events_cleared", deleted=result.deleted_count)
            return result

    async def delete_expired_events(self, now: Optional[datetime] = None) -> DeletionResult:
        """Delete events whose end time is at or before ``now``.

        With nothing expired the catalog is not written at all.
        """
        now = now or datetime.now(timezone.utc)
        async with _observed("delete_expired"):
            result = await self._remove("delete_expired_events", lambda event: is_expired(event, now))

            logger.info(
                "expired_events_deleted",
                deleted=result.deleted_count,
                remaining=result.remaining,
                now=now.isoformat(),
            )
            return result

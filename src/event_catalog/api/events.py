"""Event catalog API endpoints."""
from datetime import timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field

from ..config import Settings
from ..logging import get_logger
from ..models import Event
from ..services import DeletionResult, EventCatalogService
from ..services.time_normalizer import parse_utc_offset, utc_to_local
from .dependencies import get_app_settings, get_event_service, read_json_payload, with_deadline

logger = get_logger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


class EventView(Event):
    """Event as returned to clients, with station wall-clock times for editing."""
    start_time_local: Optional[str] = Field(None, description="Start in station local time (YYYY-MM-DDTHH:MM)")
    end_time_local: Optional[str] = Field(None, description="End in station local time (YYYY-MM-DDTHH:MM)")
    duration_seconds: float = Field(0, ge=0, description="Summed track duration")

    @classmethod
    def from_event(cls, event: Event, offset: timezone) -> "EventView":
        return cls(
            **event.model_dump(),
            start_time_local=utc_to_local(event.start_time_utc, offset),
            end_time_local=utc_to_local(event.end_time_utc, offset),
            duration_seconds=event.total_duration_seconds(),
        )


class EventResponse(BaseModel):
    event: EventView


class EventListResponse(BaseModel):
    events: List[EventView]


class DeletionResponse(BaseModel):
    """Result of a delete operation."""
    deleted: int = Field(..., ge=0, description="Number of events removed")
    remaining: int = Field(..., ge=0, description="Events left in the catalog")
    deleted_ids: List[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: DeletionResult) -> "DeletionResponse":
        return cls(deleted=result.deleted_count, remaining=result.remaining, deleted_ids=result.deleted_ids)


def _view(event: Event, settings: Settings) -> EventView:
    return EventView.from_event(event, parse_utc_offset(settings.local_utc_offset))


@router.get("", response_model=EventListResponse, response_model_exclude_none=True)
async def list_events(
    service: EventCatalogService = Depends(get_event_service),
    settings: Settings = Depends(get_app_settings),
) -> EventListResponse:
    """List all events ordered by start time."""
    events = await with_deadline("list_events", service.list_events(), settings.operation_timeout_seconds)
    return EventListResponse(events=[_view(event, settings) for event in events])


@router.post(
    "",
    response_model=EventResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_event(
    request: Request,
    service: EventCatalogService = Depends(get_event_service),
    settings: Settings = Depends(get_app_settings),
) -> EventResponse:
    """Create an event.

    Accepts ``start_time_utc`` or ``start_time_local``; the end time may be
    supplied the same way or left out to be derived from track durations.
    """
    payload = await read_json_payload(request)
    event = await service.create_event(payload)
    return EventResponse(event=_view(event, settings))


@router.delete("", response_model=DeletionResponse)
async def delete_all_events(
    service: EventCatalogService = Depends(get_event_service),
) -> DeletionResponse:
    """Delete every event and its assets."""
    result = await service.delete_all_events()
    return DeletionResponse.from_result(result)


@router.delete("/expired", response_model=DeletionResponse)
async def delete_expired_events(
    service: EventCatalogService = Depends(get_event_service),
) -> DeletionResponse:
    """Delete events whose end time has passed."""
    result = await service.delete_expired_events()
    return DeletionResponse.from_result(result)


@router.get("/{event_id}", response_model=EventResponse, response_model_exclude_none=True)
async def get_event(
    event_id: str,
    service: EventCatalogService = Depends(get_event_service),
    settings: Settings = Depends(get_app_settings),
) -> EventResponse:
    """Get one event by ID."""
    event = await with_deadline("get_event", service.get_event(event_id), settings.operation_timeout_seconds)
    return EventResponse(event=_view(event, settings))


@router.api_route(
    "/{event_id}",
    methods=["PUT", "PATCH"],
    response_model=EventResponse,
    response_model_exclude_none=True,
)
async def update_event(
    event_id: str,
    request: Request,
    service: EventCatalogService = Depends(get_event_service),
    settings: Settings = Depends(get_app_settings),
) -> EventResponse:
    """Partially update an event; omitted fields keep their value."""
    payload = await read_json_payload(request)
    event = await service.update_event(event_id, payload)
    return EventResponse(event=_view(event, settings))


@router.delete("/{event_id}", response_model=DeletionResponse)
async def delete_event(
    event_id: str,
    service: EventCatalogService = Depends(get_event_service),
) -> DeletionResponse:
    """Delete one event and the assets only it references."""
    result = await service.delete_event(event_id)
    return DeletionResponse.from_result(result)

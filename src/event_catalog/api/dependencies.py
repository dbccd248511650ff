"""Request-scoped dependencies and helpers shared by the routers."""
import json
from typing import Any, Awaitable, TypeVar

from fastapi import Request

from ..config import Settings, get_settings
from ..exceptions import ValidationError
from ..services import EventCatalogService, UploadService
from ..services.deadline import deadline

T = TypeVar("T")


def get_event_service(request: Request) -> EventCatalogService:
    return request.app.state.event_service


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


async def read_json_payload(request: Request) -> Any:
    """Decode the request body, reporting malformed JSON as a validation error."""
    body = await request.body()
    try:
        return json.loads(body) if body else {}
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Invalid JSON payload.")


async def with_deadline(operation: str, awaitable: Awaitable[T], timeout: float) -> T:
    """Run a read or upload under a deadline.

    Catalog mutations are bounded inside the service instead, where the
    deadline can stop short of the catalog write.
    """
    async with deadline(operation, timeout):
        return await awaitable

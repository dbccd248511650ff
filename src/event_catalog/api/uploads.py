"""Asset upload API endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from pydantic import BaseModel, Field

from ..config import Settings
from ..exceptions import ValidationError
from ..logging import get_logger
from ..services import UploadService
from .dependencies import get_app_settings, get_upload_service, read_json_payload, with_deadline

logger = get_logger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])


class TrackUploadResponse(BaseModel):
    """Presigned upload target for one track."""
    track_id: str = Field(..., description="Identifier to store on the track")
    upload_url: str = Field(..., description="Presigned PUT URL")
    object_url: str = Field(..., description="Locator to store as track_url")


class CoverUploadResponse(BaseModel):
    cover_image_url: str


@router.post("/track-url", response_model=TrackUploadResponse, status_code=status.HTTP_201_CREATED)
async def create_track_upload_url(
    request: Request,
    service: UploadService = Depends(get_upload_service),
    settings: Settings = Depends(get_app_settings),
) -> TrackUploadResponse:
    """Reserve a track id and return a presigned URL for the audio file."""
    payload = await read_json_payload(request)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload.")

    result = await with_deadline(
        "prepare_track_upload",
        service.prepare_track_upload(payload.get("fileName"), payload.get("contentType") or "audio/mpeg"),
        settings.operation_timeout_seconds,
    )
    return TrackUploadResponse(**result)


@router.post("/cover", response_model=CoverUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_cover(
    file: Optional[UploadFile] = File(None),
    service: UploadService = Depends(get_upload_service),
    settings: Settings = Depends(get_app_settings),
) -> CoverUploadResponse:
    """Upload a cover image (JPEG, PNG or WebP)."""
    if file is None:
        raise ValidationError("Missing cover image in form data.", field="file")

    body = await file.read()
    result = await with_deadline(
        "upload_cover",
        service.upload_cover(file.filename or "", file.content_type or "", body),
        settings.operation_timeout_seconds,
    )
    return CoverUploadResponse(**result)

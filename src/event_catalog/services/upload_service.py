"""Upload helpers for track audio and cover images."""
import os
import re
import uuid
from typing import Dict

from ..exceptions import BlobStoreError, UpstreamStorageError, ValidationError
from ..logging import get_logger
from ..storage import BlobStore

logger = get_logger(__name__)

ALLOWED_COVER_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}

DEFAULT_TRACK_TYPE = "audio/mpeg"


def slugify(value: str) -> str:
    """Lowercase ``value`` and collapse runs of non-alphanumerics into dashes."""
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def _object_key(prefix: str, object_id: str, file_name: str, default_ext: str) -> str:
    stem, ext = os.path.splitext(os.path.basename(file_name or ""))
    safe_name = slugify(stem) or object_id
    return f"{prefix}/{object_id}-{safe_name}{ext.lower() or default_ext}"


class UploadService:
    """Places new assets in the blob store before they are attached to an event."""

    def __init__(self, blob_store: BlobStore):
        self.blob_store = blob_store

    async def prepare_track_upload(self, file_name: str, content_type: str = DEFAULT_TRACK_TYPE) -> Dict[str, str]:
        """Reserve a track id and return a presigned URL the client uploads to.

        Returns:
            ``track_id``, ``upload_url`` (PUT target) and ``object_url``
            (the locator to store as ``track_url``)
        """
        if not isinstance(file_name, str) or not file_name.strip():
            raise ValidationError("fileName is required.", field="fileName")

        content_type = content_type or DEFAULT_TRACK_TYPE
        if not content_type.startswith("audio/"):
            raise ValidationError("Only audio files can be uploaded as tracks.", field="contentType")

        track_id = str(uuid.uuid4())
        key = _object_key("tracks", track_id, file_name.strip(), ".mp3")

        try:
            upload_url = await self.blob_store.presign_upload(key, content_type)
        except BlobStoreError as e:
            raise UpstreamStorageError(
                message="Unable to create upload URL.",
                details={"key": key, "reason": e.reason},
            )

        logger.info("track_upload_prepared", track_id=track_id, key=key, content_type=content_type)
        return {
            "track_id": track_id,
            "upload_url": upload_url,
            "object_url": self.blob_store.public_url(key),
        }

    async def upload_cover(self, file_name: str, content_type: str, body: bytes) -> Dict[str, str]:
        """Store a cover image and return ``{"cover_image_url": ...}``."""
        mime_type = content_type or "application/octet-stream"
        if mime_type not in ALLOWED_COVER_TYPES:
            raise ValidationError(
                "Only JPEG, PNG, or WebP images are supported for covers.",
                field="file",
                details={"content_type": mime_type},
            )
        if not body:
            raise ValidationError("Missing cover image in form data.", field="file")

        image_id = str(uuid.uuid4())
        key = _object_key("images", image_id, file_name, ".jpg")

        try:
            url = await self.blob_store.put(key, body, mime_type)
        except BlobStoreError as e:
            logger.error("cover_upload_failed", key=key, error=e.reason)
            raise UpstreamStorageError(
                message="Uploading cover image failed.",
                details={"key": key, "reason": e.reason},
            )

        logger.info("cover_uploaded", key=key, size=len(body))
        return {"cover_image_url": url}

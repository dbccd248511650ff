"""Blob storage adapters."""
from ..config import Settings
from .blob_store import BlobStore, DeleteOutcome, DeleteReport
from .s3 import S3BlobStore


def build_blob_store(settings: Settings) -> BlobStore:
    """Create the blob store configured for this deployment."""
    return S3BlobStore.from_settings(settings)


__all__ = ["BlobStore", "DeleteOutcome", "DeleteReport", "S3BlobStore", "build_blob_store"]

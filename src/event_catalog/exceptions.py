"""
Exception hierarchy for the event catalog.

Each class carries the HTTP status and machine-readable code the API layer
reports, so services raise domain errors and never build responses themselves.
"""
from typing import Any, Dict, Optional


class CatalogError(Exception):
    """Base exception for all event catalog errors."""

    status_code: int = 500
    error_code: str = "CATALOG_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class ValidationError(CatalogError):
    """Caller-supplied data is malformed. No state was changed."""

    status_code = 400
    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if field:
            details.setdefault("field", field)
        super().__init__(message, details)
        self.field = field


class NotFoundError(CatalogError):
    """The referenced event does not exist. No state was changed."""

    status_code = 404
    error_code = "NOT_FOUND"


class UpstreamStorageError(CatalogError):
    """Blob store deletion failed for one or more locators.

    The catalog is left untouched so the operation can be retried.
    """

    status_code = 502
    error_code = "UPSTREAM_STORAGE_ERROR"


class StorageError(CatalogError):
    """The catalog document itself could not be read or written."""

    status_code = 500
    error_code = "STORAGE_ERROR"


class OperationTimeoutError(CatalogError):
    """An operation exceeded its deadline and was abandoned."""

    status_code = 504
    error_code = "OPERATION_TIMEOUT"


class BlobStoreError(Exception):
    """A single blob store call failed (raised by storage adapters)."""

    def __init__(self, locator: str, reason: str):
        super().__init__(f"{locator}: {reason}")
        self.locator = locator
        self.reason = reason

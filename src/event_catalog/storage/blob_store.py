"""Blob store contract consumed by the asset lifecycle coordinator."""
import asyncio
import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ..exceptions import BlobStoreError
from ..logging import get_logger

logger = get_logger(__name__)


class DeleteOutcome(str, enum.Enum):
    """Result of deleting a single locator."""
    DELETED = "deleted"
    MISSING = "missing"  # already gone upstream, counts as success
    SKIPPED = "skipped"  # locator does not point into this store


@dataclass
class DeleteReport:
    """Aggregate result of a best-effort batch delete."""
    deleted: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)  # locator -> reason

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def attempted(self) -> int:
        return len(self.deleted) + len(self.missing) + len(self.skipped) + len(self.failed)

    def record(self, locator: str, outcome: DeleteOutcome) -> None:
        if outcome is DeleteOutcome.DELETED:
            self.deleted.append(locator)
        elif outcome is DeleteOutcome.MISSING:
            self.missing.append(locator)
        else:
            self.skipped.append(locator)


class BlobStore(ABC):
    """Object storage holding uploaded audio files and cover images."""

    @abstractmethod
    async def delete(self, locator: str) -> DeleteOutcome:
        """Delete the object behind ``locator``.

        Raises:
            BlobStoreError: when the store reports a failure
        """

    async def delete_many(self, locators: Sequence[str]) -> DeleteReport:
        """Attempt every locator and aggregate the outcomes; never stops early."""
        results = await asyncio.gather(
            *(self.delete(locator) for locator in locators),
            return_exceptions=True,
        )

        report = DeleteReport()
        for locator, result in zip(locators, results):
            if isinstance(result, DeleteOutcome):
                report.record(locator, result)
            elif isinstance(result, BlobStoreError):
                report.failed[locator] = result.reason
            elif isinstance(result, Exception):
                logger.error("blob_delete_unexpected_error", locator=locator, error=repr(result))
                report.failed[locator] = repr(result)
            else:
                raise result
        return report

    @abstractmethod
    async def put(self, key: str, body: bytes, content_type: str) -> str:
        """Store ``body`` under ``key`` and return its public locator."""

    @abstractmethod
    async def presign_upload(self, key: str, content_type: str) -> str:
        """Return a time-limited URL a client can PUT the object to."""

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Public locator for ``key``."""

"""
Event catalog persistence.

The catalog is one JSON document holding the ordered list of events. Every
mutation replaces the whole document; readers see either the previous or the
new document, never a mix of both.
"""
import asyncio
import copy
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..config import Settings
from ..exceptions import StorageError
from ..logging import get_logger
from ..metrics import catalog_corrupt_reads_total, catalog_events
from ..models import Event

logger = get_logger(__name__)


class CatalogStore(ABC):
    """Owns the durable list of events."""

    @abstractmethod
    async def read_all(self) -> List[Event]:
        """Return every event in storage order; corrupt or missing storage yields []."""

    @abstractmethod
    async def replace_all(self, events: List[Event]) -> None:
        """Atomically overwrite the catalog with ``events``.

        Raises:
            StorageError: when the document could not be written
        """


def _decode_events(raw: Any, source: str) -> List[Event]:
    if not isinstance(raw, list):
        logger.warning("catalog_document_not_a_list", source=source, type=type(raw).__name__)
        catalog_corrupt_reads_total.labels(reason="not_a_list").inc()
        return []

    try:
        return [Event.model_validate(item) for item in raw]
    except PydanticValidationError as e:
        logger.warning("catalog_document_invalid", source=source, error=str(e))
        catalog_corrupt_reads_total.labels(reason="invalid_record").inc()
        return []


class JsonFileCatalogStore(CatalogStore):
    """Catalog stored as a JSON file, replaced via temp file + rename."""

    def __init__(self, path: os.PathLike):
        self.path = Path(path)
        self._write_lock = asyncio.Lock()
        self.version = 0

    async def read_all(self) -> List[Event]:
        events = await asyncio.to_thread(self._read_sync)
        catalog_events.set(len(events))
        return events

    def _read_sync(self) -> List[Event]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("catalog_document_missing", path=str(self.path))
            return []
        except OSError as e:
            logger.error("catalog_document_unreadable", path=str(self.path), error=str(e))
            catalog_corrupt_reads_total.labels(reason="unreadable").inc()
            return []

        if not text.strip():
            return []

        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("catalog_document_corrupt", path=str(self.path), error=str(e))
            catalog_corrupt_reads_total.labels(reason="invalid_json").inc()
            return []

        return _decode_events(raw, str(self.path))

    async def replace_all(self, events: List[Event]) -> None:
        async with self._write_lock:
            # A started write cannot be stopped, so a cancelled caller waits
            # for it and keeps the lock until the document is settled.
            write = asyncio.ensure_future(asyncio.to_thread(self._write_sync, events))
            try:
                await asyncio.shield(write)
            except asyncio.CancelledError:
                await asyncio.wait([write])
                if not write.cancelled() and write.exception() is None:
                    self.version += 1
                    logger.warning("catalog_written_after_cancel", path=str(self.path), version=self.version)
                raise
            except (OSError, TypeError, ValueError) as e:
                logger.error("catalog_write_failed", path=str(self.path), error=str(e), exc_info=True)
                raise StorageError(
                    message="Failed to save the event catalog.",
                    details={"path": str(self.path), "reason": str(e)},
                )
            self.version += 1

        catalog_events.set(len(events))
        logger.info("catalog_written", path=str(self.path), count=len(events), version=self.version)

    def _write_sync(self, events: List[Event]) -> None:
        payload = json.dumps([event.to_document() for event in events], indent=2, ensure_ascii=False)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload + "\n")
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise


class InMemoryCatalogStore(CatalogStore):
    """Catalog held in process memory. Copies on the way in and out."""

    def __init__(self, events: Optional[List[Event]] = None):
        self._events: List[Event] = copy.deepcopy(list(events or []))
        self._write_lock = asyncio.Lock()
        self.version = 0
        self.write_count = 0

    async def read_all(self) -> List[Event]:
        return copy.deepcopy(self._events)

    async def replace_all(self, events: List[Event]) -> None:
        async with self._write_lock:
            self._events = copy.deepcopy(list(events))
            self.version += 1
            self.write_count += 1
        catalog_events.set(len(events))


def build_catalog_store(settings: Settings) -> CatalogStore:
    """Create the catalog store selected by ``CATALOG_BACKEND``."""
    backend = settings.catalog_backend.lower()
    if backend == "memory":
        logger.info("catalog_store_selected", backend="memory")
        return InMemoryCatalogStore()
    if backend == "file":
        logger.info("catalog_store_selected", backend="file", path=settings.catalog_path)
        return JsonFileCatalogStore(settings.catalog_path)
    raise ValueError(f"Unknown CATALOG_BACKEND: {settings.catalog_backend!r}")

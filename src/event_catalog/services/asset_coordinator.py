"""Asset lifecycle coordinator: reclaims blobs of events leaving the catalog."""
from typing import Iterable, List

from ..exceptions import UpstreamStorageError
from ..logging import get_logger
from ..metrics import asset_deletions_total
from ..models import Event
from ..storage import BlobStore, DeleteReport

logger = get_logger(__name__)


def collect_locators(events: Iterable[Event], retained: Iterable[Event] = ()) -> List[str]:
    """Locators referenced by ``events`` and by none of the ``retained`` events.

    Order follows the events (tracks, then cover); duplicates are dropped.
    """
    still_referenced = {locator for event in retained for locator in event.asset_locators()}

    locators: List[str] = []
    seen = set()
    for event in events:
        for locator in event.asset_locators():
            if locator in seen or locator in still_referenced:
                continue
            seen.add(locator)
            locators.append(locator)
    return locators


class AssetLifecycleCoordinator:
    """Deletes blob store objects as a best-effort batch.

    Deletion is attempted for every locator. If any of them fails the
    coordinator raises :class:`UpstreamStorageError`, and callers must not
    commit the catalog change that would have orphaned the assets.
    """

    def __init__(self, blob_store: BlobStore):
        self.blob_store = blob_store

    async def release(self, locators: List[str]) -> DeleteReport:
        """Delete ``locators`` from the blob store.

        Args:
            locators: Public locators of the objects to remove

        Returns:
            The aggregate report when every locator was deleted or already missing

        Raises:
            UpstreamStorageError: when one or more deletions failed
        """
        if not locators:
            return DeleteReport()

        report = await self.blob_store.delete_many(locators)

        asset_deletions_total.labels(outcome="deleted").inc(len(report.deleted))
        asset_deletions_total.labels(outcome="missing").inc(len(report.missing))
        asset_deletions_total.labels(outcome="skipped").inc(len(report.skipped))
        asset_deletions_total.labels(outcome="failed").inc(len(report.failed))

        if not report.ok:
            logger.error(
                "asset_release_failed",
                attempted=report.attempted,
                failed=len(report.failed),
                failed_locators=sorted(report.failed),
            )
            raise UpstreamStorageError(
                message="Unable to delete event assets from storage.",
                details={
                    "failed": dict(report.failed),
                    "deleted": list(report.deleted),
                },
            )

        logger.info(
            "assets_released",
            deleted=len(report.deleted),
            missing=len(report.missing),
            skipped=len(report.skipped),
        )
        return report

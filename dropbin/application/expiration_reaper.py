"""
Expiration Reaper

Physically removes entries that are no longer live, and blobs that no entry
references any more.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from dropbin.domain.content import IBlobStore, MetadataStore, utcnow
from dropbin.domain.errors import EntryNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_ORPHAN_GRACE = timedelta(hours=1)


@dataclass
class ReapReport:
    """Outcome of one reaper cycle."""

    started_at: datetime
    scanned: int = 0
    reclaimed: int = 0
    failed: int = 0
    orphans_removed: int = 0
    partials_removed: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "scanned": self.scanned,
            "reclaimed": self.reclaimed,
            "failed": self.failed,
            "orphans_removed": self.orphans_removed,
            "partials_removed": self.partials_removed,
            "errors": list(self.errors),
        }


class ExpirationReaper:
    """
    Deletes non-live entries, blob first, then metadata.

    Deleting the blob first means a crash between the two steps leaves a
    metadata record that the next cycle finds again, never an unreferenced
    blob. Failures on one entry are logged and counted; the cycle moves on and
    the entry is retried on the next run.
    """

    def __init__(
        self,
        metadata_store: MetadataStore,
        blob_store: IBlobStore,
        orphan_grace: timedelta = DEFAULT_ORPHAN_GRACE,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.metadata_store = metadata_store
        self.blob_store = blob_store
        self.orphan_grace = orphan_grace
        self.clock = clock

    def run_cycle(self, sweep_orphans: bool = True) -> ReapReport:
        """
        Run one reclamation pass.

        Args:
            sweep_orphans: Also remove unreferenced blobs and stale partial writes

        Returns:
            ReapReport for this cycle. Errors are recorded, never raised.
        """
        now = self.clock()
        report = ReapReport(started_at=now)

        try:
            for entry_id in self.metadata_store.list_expired(now):
                report.scanned += 1
                try:
                    self.reclaim(entry_id)
                    report.reclaimed += 1
                except Exception as e:
                    report.failed += 1
                    report.errors.append(f"{entry_id[:8]}: {e}")
                    logger.error(f"Failed to reclaim entry {entry_id[:8]}: {e}", exc_info=True)
        except Exception as e:
            report.errors.append(f"Listing expired entries failed: {e}")
            logger.error(f"Listing expired entries failed: {e}", exc_info=True)

        if sweep_orphans:
            try:
                report.orphans_removed = self.sweep_orphaned_blobs()
                report.partials_removed = self.blob_store.cleanup_incoming(self.orphan_grace)
            except Exception as e:
                report.errors.append(f"Orphan sweep failed: {e}")
                logger.error(f"Orphan sweep failed: {e}", exc_info=True)

        if report.scanned or report.orphans_removed or report.errors:
            logger.info(
                f"Reaper cycle - Scanned: {report.scanned}, Reclaimed: {report.reclaimed}, "
                f"Failed: {report.failed}, Orphans: {report.orphans_removed}"
            )
        else:
            logger.debug("Reaper cycle found nothing to reclaim")

        return report

    def reclaim(self, entry_id: str) -> None:
        """
        Delete one entry's blob (if any) and then its metadata record.

        Raises:
            StorageFailureError: If either deletion fails
        """
        try:
            entry = self.metadata_store.get(entry_id)
        except EntryNotFoundError:
            # Already gone; make sure no index entry is left behind
            self.metadata_store.delete(entry_id)
            return

        storage_key: Optional[str] = entry.storage_key
        if storage_key:
            self.blob_store.delete(storage_key)
        self.metadata_store.delete(entry_id)
        logger.debug(f"Reclaimed {entry.kind.value} {entry_id[:8]}")

    def sweep_orphaned_blobs(self) -> int:
        """
        Delete blobs older than the grace period that no entry references.

        The grace period covers uploads whose blob is written but whose
        metadata record is not yet created.

        Returns:
            Number of blobs removed
        """
        candidates = list(self.blob_store.iter_keys(older_than=self.orphan_grace))
        if not candidates:
            return 0

        referenced = set(self.metadata_store.iter_storage_keys())
        removed = 0
        for storage_key in candidates:
            if storage_key in referenced:
                continue
            try:
                self.blob_store.delete(storage_key)
                removed += 1
                logger.info(f"Removed orphaned blob {storage_key[:8]}")
            except Exception as e:
                logger.error(f"Failed to remove orphaned blob {storage_key[:8]}: {e}")
        return removed

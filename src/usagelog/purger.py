import threading
import time

import structlog

from usagelog.errors import StoreError
from usagelog.metrics import UsageLogMetrics
from usagelog.models import PurgeResult
from usagelog.store.base import SnapshotStore

logger = structlog.get_logger()


class RetentionPurger:
    """
    RetentionPurger permanently removes snapshots older than a
    cutoff, together with the attribute records left without a
    single snapshot.

    Both deletions happen in one transaction: either both persist
    or neither does. Purges never overlap within a process.
    """

    def __init__(
        self,
        store: "SnapshotStore",
        metrics: "UsageLogMetrics",
    ) -> "None":
        self._store = store
        self._metrics = metrics
        self._lock: "threading.Lock" = threading.Lock()

    def purge_older_than(self, cutoff_ms: "int") -> "PurgeResult":
        """
        deletes snapshots with timestamp_ms < cutoff_ms, then every
        orphaned attribute record. Returns the deleted row counts.
        """
        logger.info("purge_started", cutoff_ms=cutoff_ms)

        with self._lock:
            try:
                with self._store.transaction() as tx:
                    snapshots = tx.delete_snapshots_older_than(cutoff_ms)
                    attributes = tx.delete_orphaned_attributes()
            except StoreError:
                logger.exception("purge_error", cutoff_ms=cutoff_ms)
                self._metrics.inc_store_error("purge")
                raise

        self._metrics.add_purged_rows(snapshots, attributes)
        self._metrics.set_last_purge_success(time.time())
        logger.info(
            "purge_complete",
            cutoff_ms=cutoff_ms,
            snapshots_deleted=snapshots,
            attributes_deleted=attributes,
        )
        return PurgeResult(
            cutoff_ms=cutoff_ms,
            snapshots_deleted=snapshots,
            attributes_deleted=attributes,
        )

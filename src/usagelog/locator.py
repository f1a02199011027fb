from typing import Iterator

import structlog

from usagelog.errors import StoreError
from usagelog.metrics import UsageLogMetrics
from usagelog.store.base import SnapshotStore

logger = structlog.get_logger()

HOUR_MS = 60 * 60 * 1000

# the first window reaches two hours back
_INITIAL_MULTIPLIER = 2


def next_multiplier(multiplier: "int") -> "int":
    """
    squares the window multiplier: 2, 4, 16, 256, 65536 hours.
    """
    return multiplier * multiplier


def search_windows(timestamp_ms: "int") -> "Iterator[tuple[int, int]]":
    """
    yields the (start_ms, end_ms) windows searched backward from
    timestamp_ms, both bounds exclusive. Stops once a window would
    reach back to or past epoch 0.
    """
    multiplier = _INITIAL_MULTIPLIER
    while timestamp_ms - HOUR_MS * multiplier > 0:
        yield (timestamp_ms - HOUR_MS * multiplier, timestamp_ms)
        multiplier = next_multiplier(multiplier)


class SnapshotLocator:
    """
    SnapshotLocator finds the latest snapshot taken before a given
    instant without scanning the whole snapshot history.

    Windows anchored at the instant grow geometrically, so recent
    data is found with a cheap query while years-old data still
    takes only a handful of them. Each window is queried in its own
    transaction.
    """

    def __init__(
        self,
        store: "SnapshotStore",
        metrics: "UsageLogMetrics",
    ) -> "None":
        self._store = store
        self._metrics = metrics

    def find_latest_before(self, timestamp_ms: "int") -> "int | None":
        """
        returns the greatest snapshot timestamp strictly before
        timestamp_ms across all identities, or None when no window
        holds one.
        """
        for start_ms, end_ms in search_windows(timestamp_ms):
            logger.debug("locator_window_searched", start_ms=start_ms, end_ms=end_ms)
            self._metrics.inc_locator_query()
            try:
                with self._store.transaction() as tx:
                    found = tx.query_snapshot_timestamps_in_window(start_ms, end_ms)
            except StoreError:
                logger.exception("locator_query_error", start_ms=start_ms)
                self._metrics.inc_store_error("locate")
                raise

            if found:
                latest = max(found)
                logger.info(
                    "locator_anchor_found", before_ms=timestamp_ms, anchor_ms=latest
                )
                return latest

        logger.info("locator_anchor_missing", before_ms=timestamp_ms)
        return None

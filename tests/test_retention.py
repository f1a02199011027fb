import asyncio

import pytest
from builders import HOUR_MS, make_attributes, make_snapshot, seed

from usagelog.errors import StoreError
from usagelog.metrics import UsageLogMetrics
from usagelog.models import PurgeResult
from usagelog.retention import RetentionScheduler
from usagelog.store.sql import SqlSnapshotStore
from usagelog.usage_log import UsageLog


class RecordingUsageLog:
    """
    A stand-in for UsageLog recording purge cutoffs.
    """

    def __init__(self, fail: "bool" = False) -> "None":
        self._fail = fail
        self.cutoffs: "list[int]" = []

    def purge_log(self, earlier_than_ms: "int") -> "PurgeResult":
        self.cutoffs.append(earlier_than_ms)
        if self._fail:
            raise StoreError("database is locked")
        return PurgeResult(earlier_than_ms, 0, 0)


class TestRetentionScheduler:
    @pytest.mark.asyncio
    async def test_purges_outside_retention_window(
        self,
        store: "SqlSnapshotStore",
        metrics: "UsageLogMetrics",
    ) -> "None":
        seed(
            store,
            [make_attributes("i-1"), make_attributes("i-2")],
            [
                make_snapshot("i-1", 1 * HOUR_MS),
                make_snapshot("i-2", 1 * HOUR_MS),
                make_snapshot("i-2", 30 * HOUR_MS),
            ],
        )
        scheduler = RetentionScheduler(
            UsageLog(store, metrics), retention_ms=24 * HOUR_MS
        )

        result = await scheduler._purge_once(now_ms=48 * HOUR_MS)

        assert result == PurgeResult(
            cutoff_ms=24 * HOUR_MS,
            snapshots_deleted=2,
            attributes_deleted=1,
        )

    @pytest.mark.asyncio
    async def test_store_error_does_not_crash(self) -> "None":
        usage_log = RecordingUsageLog(fail=True)
        scheduler = RetentionScheduler(usage_log, retention_ms=1000)

        # should not raise
        assert await scheduler._purge_once(now_ms=5000) is None
        assert usage_log.cutoffs == [4000]

    @pytest.mark.asyncio
    async def test_run_stops_after_current_cycle(self) -> "None":
        usage_log = RecordingUsageLog()
        scheduler = RetentionScheduler(
            usage_log, retention_ms=1000, interval_seconds=60
        )

        task = asyncio.create_task(scheduler.run())
        while not usage_log.cutoffs:
            await asyncio.sleep(0.01)
        scheduler.stop()
        await asyncio.wait_for(task, timeout=5)

        assert len(usage_log.cutoffs) == 1

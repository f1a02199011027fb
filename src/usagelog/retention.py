import asyncio
import time

import structlog

from usagelog.errors import StoreError
from usagelog.models import PurgeResult
from usagelog.usage_log import UsageLog

logger = structlog.get_logger()


class RetentionScheduler:
    """
    RetentionScheduler periodically purges snapshots that fell out
    of the retention window. A failed purge is logged and retried
    on the next cycle; the store was rolled back by then, so no
    partial deletion is left behind.
    """

    def __init__(
        self,
        usage_log: "UsageLog",
        retention_ms: "int",
        interval_seconds: "int" = 3600,
    ) -> "None":
        self._usage_log = usage_log
        self._retention_ms = retention_ms
        self._interval = interval_seconds
        self._stop_event: "asyncio.Event" = asyncio.Event()

    def stop(self) -> "None":
        """
        signals the scheduler loop to stop after the current cycle.
        """
        self._stop_event.set()

    async def run(self) -> "None":
        """
        runs the purge loop until stop() is called.
        """
        while not self._stop_event.is_set():
            await self._purge_once(int(time.time() * 1000))

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except TimeoutError:
                pass

    async def _purge_once(self, now_ms: "int") -> "PurgeResult | None":
        cutoff_ms = now_ms - self._retention_ms
        logger.info("retention_cycle_start", cutoff_ms=cutoff_ms)
        # the purge blocks on the database, keep it off the event loop
        try:
            return await asyncio.to_thread(self._usage_log.purge_log, cutoff_ms)
        except StoreError:
            # already logged and counted by the purger
            logger.warning("retention_cycle_failed", cutoff_ms=cutoff_ms)
            return None

import time
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from usagelog.accumulator import UsageAccumulator
from usagelog.aggregator import SummaryAggregator
from usagelog.errors import InvalidPeriodError, StoreError
from usagelog.locator import SnapshotLocator
from usagelog.metrics import UsageLogMetrics
from usagelog.models import (
    EntityAttributes,
    Period,
    PurgeResult,
    Snapshot,
    SummaryKey,
    UsageSummary,
)
from usagelog.purger import RetentionPurger
from usagelog.store.base import SnapshotStore

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class FetchPolicy:
    """
    FetchPolicy shapes the single range query behind a report.

    The query reaches past the period end by margin_factor times
    the gap between the anchor and the period beginning, so that
    a snapshot after the period end is likely included for
    extrapolation. This is a heuristic: irregular sampling can
    still leave the period end uncovered.
    """

    margin_factor: "int" = 2

    def fetch_bounds(
        self,
        period: "Period",
        anchor_ms: "int | None",
    ) -> "tuple[int, int]":
        """
        returns the exclusive (after_ms, before_ms) bounds for the
        main fetch. A missing anchor means fetching from epoch 0.
        """
        after_ms = anchor_ms if anchor_ms is not None else 0
        margin_ms = (period.beginning_ms - after_ms) * self.margin_factor
        before_ms = period.ending_ms + margin_ms
        return after_ms, before_ms


class UsageLog:
    """
    UsageLog is the entry point for reading usage out of the
    snapshot log and for retiring old samples from it.

    The log is sampled: counters are written every few minutes, so
    periods whose boundaries fall between two samples get their
    share of that sample interval by linear extrapolation. Very
    recent usage may not have been sampled yet, in which case the
    tail of a period ending now is missing from the report.
    """

    def __init__(
        self,
        store: "SnapshotStore",
        metrics: "UsageLogMetrics",
        fetch_policy: "FetchPolicy | None" = None,
    ) -> "None":
        self._store = store
        self._metrics = metrics
        self._fetch_policy = fetch_policy or FetchPolicy()
        self._locator = SnapshotLocator(store, metrics)
        self._purger = RetentionPurger(store, metrics)

    def get_usage_summary(
        self,
        period: "Period",
    ) -> "dict[SummaryKey, UsageSummary]":
        """
        returns usage for the period grouped by summary key. Either
        the full mapping is returned or an error is raised.
        """
        if period.duration_ms <= 0:
            raise InvalidPeriodError(
                f"period [{period.beginning_ms}, {period.ending_ms}] has no duration"
            )

        logger.info(
            "usage_summary_requested",
            beginning_ms=period.beginning_ms,
            ending_ms=period.ending_ms,
        )
        started = time.monotonic()

        # start from the last snapshot before the period and read
        # past its end; accumulators truncate and extrapolate
        anchor_ms = self._locator.find_latest_before(period.beginning_ms)
        after_ms, before_ms = self._fetch_policy.fetch_bounds(period, anchor_ms)

        try:
            with self._store.transaction() as tx:
                rows = tx.query_attributes_joined_with_snapshots(after_ms, before_ms)
        except StoreError:
            logger.exception(
                "usage_fetch_error", after_ms=after_ms, before_ms=before_ms
            )
            self._metrics.inc_store_error("report")
            raise

        accumulators = self._accumulate(rows, period)

        aggregator = SummaryAggregator(self._metrics)
        aggregator.add_all(accumulators.values())
        summaries = aggregator.summaries()

        self._metrics.observe_report_duration(time.monotonic() - started)
        logger.info(
            "usage_summary_built",
            rows=len(rows),
            identities=len(accumulators),
            buckets=len(summaries),
        )
        return summaries

    def purge_log(self, earlier_than_ms: "int") -> "PurgeResult":
        """
        permanently purges snapshots older than earlier_than_ms and
        the attribute records they leave orphaned.
        """
        return self._purger.purge_older_than(earlier_than_ms)

    @staticmethod
    def _accumulate(
        rows: "Sequence[tuple[EntityAttributes, Snapshot]]",
        period: "Period",
    ) -> "dict[str, UsageAccumulator]":
        by_identity: "dict[str, list[tuple[EntityAttributes, Snapshot]]]" = {}
        for attrs, snapshot in rows:
            by_identity.setdefault(attrs.identity, []).append((attrs, snapshot))

        accumulators: "dict[str, UsageAccumulator]" = {}
        for identity, identity_rows in by_identity.items():
            # rows from an ordered store are already in this order
            identity_rows.sort(key=lambda row: row[1].timestamp_ms)
            attrs, first = identity_rows[0]
            accumulator = UsageAccumulator(attrs, first, period)
            for _, snapshot in identity_rows[1:]:
                accumulator.update(snapshot)
            accumulators[identity] = accumulator
        return accumulators

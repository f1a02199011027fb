from typing import Callable, Iterable

import structlog

from usagelog.accumulator import UsageAccumulator, disk_io_counter, network_io_counter
from usagelog.metrics import UsageLogMetrics
from usagelog.models import Snapshot, SummaryKey, UsageSummary

logger = structlog.get_logger()


class SummaryAggregator:
    """
    SummaryAggregator rolls per-identity accumulators up into one
    UsageSummary per SummaryKey.

    Summaries across identities are plain sums. Negative figures are
    clamped to zero so one bad sample cannot abort a fleet-wide
    report. They come from two sources:
     - a counter that went down between samples (counter reset,
     clock skew, re-sampled entity): a data quality problem, logged
     as sampling_anomaly and counted.
     - extrapolation over a gap longer than the period while the
     counter still grew: logged as extrapolation_overshoot only.
    """

    def __init__(self, metrics: "UsageLogMetrics") -> "None":
        self._metrics = metrics
        self._summaries: "dict[SummaryKey, UsageSummary]" = {}

    def add(self, accumulator: "UsageAccumulator") -> "None":
        """
        folds one accumulator into the bucket of its summary key.
        """
        attrs = accumulator.attributes
        key = SummaryKey.from_attributes(attrs)
        summary = self._summaries.get(key)
        if summary is None:
            summary = self._summaries[key] = UsageSummary()

        summary.add_disk_io_megs(self._delta(accumulator, "disk", disk_io_counter))
        summary.add_network_io_megs(
            self._delta(accumulator, "network", network_io_counter)
        )
        # negative means the samples never overlapped the period
        summary.add_type_seconds(
            attrs.entity_type, max(accumulator.duration_seconds(), 0)
        )

    def add_all(self, accumulators: "Iterable[UsageAccumulator]") -> "None":
        for accumulator in accumulators:
            self.add(accumulator)

    def summaries(self) -> "dict[SummaryKey, UsageSummary]":
        return dict(self._summaries)

    def _delta(
        self,
        accumulator: "UsageAccumulator",
        counter_name: "str",
        counter: "Callable[[Snapshot], int]",
    ) -> "int":
        delta = accumulator.extrapolated_delta(counter)
        if delta >= 0:
            return delta

        raw = accumulator.raw_delta(counter)
        identity = accumulator.attributes.identity
        if raw < 0:
            logger.warning(
                "sampling_anomaly",
                identity=identity,
                counter=counter_name,
                delta=raw,
            )
            self._metrics.inc_sampling_anomaly(counter_name)
        else:
            logger.info(
                "extrapolation_overshoot",
                identity=identity,
                counter=counter_name,
                raw_delta=raw,
                delta=delta,
            )
        return 0

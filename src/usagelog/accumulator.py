from typing import Callable

from usagelog.errors import InvalidPeriodError
from usagelog.models import EntityAttributes, Period, Snapshot


def disk_io_counter(snapshot: "Snapshot") -> "int":
    return snapshot.cumulative_disk_io_megs


def network_io_counter(snapshot: "Snapshot") -> "int":
    return snapshot.cumulative_network_io_megs


def _trunc_div(numerator: "int", denominator: "int") -> "int":
    # integer division rounding toward zero rather than down
    quotient = abs(numerator) // denominator
    return quotient if numerator >= 0 else -quotient


class UsageAccumulator:
    """
    UsageAccumulator folds the snapshots of one identity into usage
    figures bounded to a reporting period.

    Snapshots are sampled, not continuous, so the usage that truly
    falls inside the period boundaries is unknowable. The delta
    between the first and last samples in range is scaled down
    linearly for the part of the sampled interval that lies outside
    the period, assuming a constant rate between samples. This
    introduces a small error whenever period boundaries do not line
    up with sample boundaries.

    Snapshots must be fed to update() in ascending timestamp order.
    """

    def __init__(
        self,
        attributes: "EntityAttributes",
        first_snapshot: "Snapshot",
        period: "Period",
    ) -> "None":
        self._attributes = attributes
        self._first = first_snapshot
        # a single snapshot in range yields zero usage
        self._last = first_snapshot
        self._period = period

    @property
    def attributes(self) -> "EntityAttributes":
        return self._attributes

    @property
    def first_snapshot(self) -> "Snapshot":
        return self._first

    @property
    def last_snapshot(self) -> "Snapshot":
        return self._last

    @property
    def period(self) -> "Period":
        return self._period

    def update(self, snapshot: "Snapshot") -> "None":
        self._last = snapshot

    def truncated_interval(self) -> "Period":
        """
        returns the overlap between the period and the sampled
        interval. Degenerate when the samples miss the period.
        """
        return Period(
            beginning_ms=max(self._period.beginning_ms, self._first.timestamp_ms),
            ending_ms=min(self._period.ending_ms, self._last.timestamp_ms),
        )

    def raw_delta(self, counter: "Callable[[Snapshot], int]") -> "int":
        """
        returns the counter delta between the first and last samples.
        """
        return counter(self._last) - counter(self._first)

    def extrapolated_delta(self, counter: "Callable[[Snapshot], int]") -> "int":
        """
        returns the counter delta attributed to the period,
        truncated toward zero.
        """
        duration = self._period.duration_ms
        if duration <= 0:
            raise InvalidPeriodError(
                f"period duration must be positive, got {duration}ms"
            )

        result = float(self.raw_delta(counter))
        if self._first.timestamp_ms < self._period.beginning_ms:
            gap = self._period.beginning_ms - self._first.timestamp_ms
            result *= 1.0 - gap / duration
        if self._last.timestamp_ms > self._period.ending_ms:
            gap = self._last.timestamp_ms - self._period.ending_ms
            result *= 1.0 - gap / duration
        return int(result)

    def disk_io_megs(self) -> "int":
        return self.extrapolated_delta(disk_io_counter)

    def network_io_megs(self) -> "int":
        return self.extrapolated_delta(network_io_counter)

    def duration_seconds(self) -> "int":
        interval = self.truncated_interval()
        return _trunc_div(interval.duration_ms, 1000)

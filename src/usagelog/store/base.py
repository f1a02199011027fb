from contextlib import AbstractContextManager
from typing import Protocol, Sequence

from usagelog.models import EntityAttributes, Snapshot


class StoreTransaction(Protocol):
    """
    StoreTransaction is the set of operations available inside
    a single unit of work against the snapshot store.

    All time bounds are epoch milliseconds and exclusive. The
    window query must include the latest timestamp in the window
    and may return only that one.
    """

    def query_attributes_joined_with_snapshots(
        self,
        after_ms: "int",
        before_ms: "int",
    ) -> "Sequence[tuple[EntityAttributes, Snapshot]]": ...

    def query_snapshot_timestamps_in_window(
        self,
        start_ms: "int",
        end_ms: "int",
    ) -> "set[int]": ...

    def delete_snapshots_older_than(self, cutoff_ms: "int") -> "int": ...

    def delete_orphaned_attributes(self) -> "int": ...

    def add_attributes(self, attrs: "EntityAttributes") -> "None": ...

    def add_snapshot(self, snapshot: "Snapshot") -> "None": ...


class SnapshotStore(Protocol):
    """
    SnapshotStore stands as the common protocol every
    persistence backend must satisfy.

    transaction() returns a context manager: leaving it normally
    commits, leaving it with an exception rolls back and lets the
    exception propagate. Backend failures surface as StoreError.
    """

    def transaction(self) -> "AbstractContextManager[StoreTransaction]": ...

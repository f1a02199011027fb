from contextlib import contextmanager
from typing import Iterator, Sequence

import structlog
from sqlalchemy import (
    BigInteger,
    Column,
    Connection,
    Engine,
    Index,
    MetaData,
    String,
    Table,
    delete,
    func,
    insert,
    select,
)
from sqlalchemy.exc import SQLAlchemyError

from usagelog.errors import StoreError
from usagelog.models import EntityAttributes, Snapshot

logger = structlog.get_logger()

metadata = MetaData()

attributes_table = Table(
    "reporting_instance",
    metadata,
    Column("uuid", String(64), primary_key=True),
    Column("entity_type", String(64), nullable=False),
    Column("owner_id", String(128), nullable=False),
    Column("account_id", String(128), nullable=False),
    Column("cluster_name", String(128), nullable=False),
    Column("availability_zone", String(128), nullable=False),
)

snapshots_table = Table(
    "instance_usage_snapshot",
    metadata,
    Column("uuid", String(64), nullable=False),
    Column("timestamp_ms", BigInteger, nullable=False),
    Column("cumulative_disk_io_megs", BigInteger, nullable=False),
    Column("cumulative_net_io_megs", BigInteger, nullable=False),
    Index("ix_instance_usage_snapshot_timestamp_ms", "timestamp_ms"),
    Index("ix_instance_usage_snapshot_uuid_timestamp_ms", "uuid", "timestamp_ms"),
)


def _row_to_attributes(row: "object") -> "EntityAttributes":
    return EntityAttributes(
        identity=row.uuid,
        entity_type=row.entity_type,
        owner_id=row.owner_id,
        account_id=row.account_id,
        cluster_name=row.cluster_name,
        availability_zone=row.availability_zone,
    )


def _row_to_snapshot(row: "object") -> "Snapshot":
    return Snapshot(
        identity=row.uuid,
        timestamp_ms=row.timestamp_ms,
        cumulative_disk_io_megs=row.cumulative_disk_io_megs,
        cumulative_network_io_megs=row.cumulative_net_io_megs,
    )


class SqlStoreTransaction:
    """
    SqlStoreTransaction implements the StoreTransaction protocol
    on top of a SQLAlchemy connection that is already inside a
    transaction. It never commits or rolls back by itself.
    """

    def __init__(self, connection: "Connection") -> "None":
        self._conn = connection

    def query_attributes_joined_with_snapshots(
        self,
        after_ms: "int",
        before_ms: "int",
    ) -> "Sequence[tuple[EntityAttributes, Snapshot]]":
        a = attributes_table.c
        s = snapshots_table.c
        stmt = (
            select(
                a.uuid,
                a.entity_type,
                a.owner_id,
                a.account_id,
                a.cluster_name,
                a.availability_zone,
                s.timestamp_ms,
                s.cumulative_disk_io_megs,
                s.cumulative_net_io_megs,
            )
            .join_from(attributes_table, snapshots_table, a.uuid == s.uuid)
            .where(s.timestamp_ms > after_ms, s.timestamp_ms < before_ms)
            .order_by(a.uuid, s.timestamp_ms)
        )
        # attributes are shared by every row of the same identity
        attrs_by_uuid: "dict[str, EntityAttributes]" = {}
        rows: "list[tuple[EntityAttributes, Snapshot]]" = []
        for row in self._conn.execute(stmt):
            attrs = attrs_by_uuid.get(row.uuid)
            if attrs is None:
                attrs = attrs_by_uuid[row.uuid] = _row_to_attributes(row)
            rows.append((attrs, _row_to_snapshot(row)))
        return rows

    def query_snapshot_timestamps_in_window(
        self,
        start_ms: "int",
        end_ms: "int",
    ) -> "set[int]":
        # the locator only needs the latest timestamp in the window
        ts = snapshots_table.c.timestamp_ms
        stmt = select(func.max(ts)).where(ts > start_ms, ts < end_ms)
        latest = self._conn.scalar(stmt)
        return set() if latest is None else {latest}

    def delete_snapshots_older_than(self, cutoff_ms: "int") -> "int":
        stmt = delete(snapshots_table).where(snapshots_table.c.timestamp_ms < cutoff_ms)
        return self._conn.execute(stmt).rowcount

    def delete_orphaned_attributes(self) -> "int":
        has_snapshot = (
            select(snapshots_table.c.uuid)
            .where(snapshots_table.c.uuid == attributes_table.c.uuid)
            .correlate(attributes_table)
            .exists()
        )
        stmt = delete(attributes_table).where(~has_snapshot)
        return self._conn.execute(stmt).rowcount

    def add_attributes(self, attrs: "EntityAttributes") -> "None":
        self._conn.execute(
            insert(attributes_table).values(
                uuid=attrs.identity,
                entity_type=attrs.entity_type,
                owner_id=attrs.owner_id,
                account_id=attrs.account_id,
                cluster_name=attrs.cluster_name,
                availability_zone=attrs.availability_zone,
            )
        )

    def add_snapshot(self, snapshot: "Snapshot") -> "None":
        self._conn.execute(
            insert(snapshots_table).values(
                uuid=snapshot.identity,
                timestamp_ms=snapshot.timestamp_ms,
                cumulative_disk_io_megs=snapshot.cumulative_disk_io_megs,
                cumulative_net_io_megs=snapshot.cumulative_network_io_megs,
            )
        )


class SqlSnapshotStore:
    """
    SqlSnapshotStore implements the SnapshotStore protocol with
    SQLAlchemy Core. Every transaction() call checks out its own
    connection, so concurrent reports and purges never share one.
    """

    def __init__(self, engine: "Engine") -> "None":
        self._engine = engine

    @property
    def engine(self) -> "Engine":
        return self._engine

    def create_schema(self) -> "None":
        """
        creates the snapshot and attribute tables if missing.
        """
        try:
            metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise StoreError(f"schema creation failed: {exc}") from exc

    @contextmanager
    def transaction(self) -> "Iterator[SqlStoreTransaction]":
        try:
            # engine.begin() commits on a clean exit and rolls back
            # when the body raises
            with self._engine.begin() as conn:
                yield SqlStoreTransaction(conn)
        except SQLAlchemyError as exc:
            logger.debug("store_transaction_rolled_back", error=str(exc))
            raise StoreError(str(exc)) from exc

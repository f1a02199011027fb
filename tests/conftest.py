from typing import Iterator

import pytest
from prometheus_client import CollectorRegistry
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from usagelog.metrics import UsageLogMetrics
from usagelog.store.sql import SqlSnapshotStore


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


@pytest.fixture()
def metrics(registry: "CollectorRegistry") -> "UsageLogMetrics":
    return UsageLogMetrics(registry=registry)


@pytest.fixture()
def engine() -> "Iterator[Engine]":
    """
    in-memory SQLite database shared by every connection
    of the engine for the duration of one test.
    """
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield engine
    engine.dispose()


@pytest.fixture()
def store(engine: "Engine") -> "SqlSnapshotStore":
    store = SqlSnapshotStore(engine)
    store.create_schema()
    return store

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram


class UsageLogMetrics:
    """
    records reporting and retention activity as Prometheus metrics.
     - report_duration_seconds: time spent building usage summaries.
     - locator_queries_total: backward windows searched for an anchor.
     - store_errors_total: store failures, labeled by operation
     (locate, report, purge).
     - purged_rows_total: rows removed by retention, labeled by table.
     - sampling_anomalies_total: negative counter deltas clamped to
     zero, labeled by counter (disk, network).
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._report_duration: "Histogram" = Histogram(
            "usagelog_report_duration_seconds",
            "Duration of usage summary reports",
            registry=registry,
        )
        self._locator_queries: "Counter" = Counter(
            "usagelog_locator_queries_total",
            "Total number of windows searched while locating a report anchor",
            registry=registry,
        )
        self._store_errors: "Counter" = Counter(
            "usagelog_store_errors_total",
            "Total number of snapshot store failures by operation",
            ["operation"],
            registry=registry,
        )
        self._purged_rows: "Counter" = Counter(
            "usagelog_purged_rows_total",
            "Total number of rows deleted by retention purges",
            ["table"],
            registry=registry,
        )
        self._sampling_anomalies: "Counter" = Counter(
            "usagelog_sampling_anomalies_total",
            "Total number of negative counter deltas clamped to zero",
            ["counter"],
            registry=registry,
        )
        self._last_purge_success: "Gauge" = Gauge(
            "usagelog_last_purge_success_timestamp_seconds",
            "Unix timestamp of the last successful retention purge",
            registry=registry,
        )

    def observe_report_duration(self, duration_seconds: "float") -> "None":
        self._report_duration.observe(duration_seconds)

    def inc_locator_query(self) -> "None":
        self._locator_queries.inc()

    def inc_store_error(self, operation: "str") -> "None":
        self._store_errors.labels(operation=operation).inc()

    def add_purged_rows(self, snapshots: "int", attributes: "int") -> "None":
        self._purged_rows.labels(table="snapshot").inc(snapshots)
        self._purged_rows.labels(table="attributes").inc(attributes)

    def inc_sampling_anomaly(self, counter: "str") -> "None":
        self._sampling_anomalies.labels(counter=counter).inc()

    def set_last_purge_success(self, timestamp: "float") -> "None":
        self._last_purge_success.set(timestamp)

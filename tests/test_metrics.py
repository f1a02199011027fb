from prometheus_client import CollectorRegistry

from usagelog.metrics import UsageLogMetrics


class TestUsageLogMetrics:
    def test_metrics_are_created(
        self,
        registry: "CollectorRegistry",
    ) -> "None":
        UsageLogMetrics(registry=registry)
        # prometheus_client strips _total suffix from Counter family names
        metric_names = [m.name for m in registry.collect()]
        assert "usagelog_report_duration_seconds" in metric_names
        assert "usagelog_locator_queries" in metric_names
        assert "usagelog_store_errors" in metric_names
        assert "usagelog_purged_rows" in metric_names
        assert "usagelog_sampling_anomalies" in metric_names
        assert "usagelog_last_purge_success_timestamp_seconds" in metric_names

    def test_purged_rows_accumulate(
        self,
        registry: "CollectorRegistry",
    ) -> "None":
        metrics = UsageLogMetrics(registry=registry)
        metrics.add_purged_rows(snapshots=10, attributes=2)
        metrics.add_purged_rows(snapshots=5, attributes=0)

        snapshots = registry.get_sample_value(
            "usagelog_purged_rows_total", {"table": "snapshot"}
        )
        attributes = registry.get_sample_value(
            "usagelog_purged_rows_total", {"table": "attributes"}
        )
        assert snapshots == 15.0
        assert attributes == 2.0

    def test_self_metrics_update(
        self,
        registry: "CollectorRegistry",
    ) -> "None":
        metrics = UsageLogMetrics(registry=registry)

        metrics.observe_report_duration(0.5)
        metrics.inc_locator_query()
        metrics.inc_store_error("report")
        metrics.inc_sampling_anomaly("network")
        metrics.set_last_purge_success(1000.0)

        assert (
            registry.get_sample_value("usagelog_report_duration_seconds_sum") == 0.5
        )
        assert registry.get_sample_value("usagelog_locator_queries_total") == 1.0
        error_val = registry.get_sample_value(
            "usagelog_store_errors_total",
            {"operation": "report"},
        )
        assert error_val == 1.0
        anomaly_val = registry.get_sample_value(
            "usagelog_sampling_anomalies_total",
            {"counter": "network"},
        )
        assert anomaly_val == 1.0
        success_val = registry.get_sample_value(
            "usagelog_last_purge_success_timestamp_seconds",
        )
        assert success_val == 1000.0

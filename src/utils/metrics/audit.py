"""
Metrics for row audit runs.

Tracks rows audited, discrepancies by kind, degraded comparisons and
target lookup latency for each audited table.
"""

import logging
import time
from typing import Optional

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    REGISTRY,
)

from .registry import get_or_create_metric

logger = logging.getLogger(__name__)


class AuditMetrics:
    """
    Metrics for row audit runs

    Metrics are registered through get_or_create_metric, so several
    instances sharing a registry reuse the same collectors.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize audit metrics

        Args:
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        self.runs_total = get_or_create_metric(
            lambda: Counter(
                "rowaudit_runs_total",
                "Total number of audit runs",
                ["table_name", "termination"],
                registry=self.registry,
            ),
            "rowaudit_runs_total",
            self.registry,
        )

        self.run_duration_seconds = get_or_create_metric(
            lambda: Histogram(
                "rowaudit_run_duration_seconds",
                "Duration of audit runs in seconds",
                ["table_name"],
                buckets=(1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600),
                registry=self.registry,
            ),
            "rowaudit_run_duration_seconds",
            self.registry,
        )

        self.last_run_timestamp = get_or_create_metric(
            lambda: Gauge(
                "rowaudit_last_run_timestamp",
                "Timestamp of the last audit run",
                ["table_name"],
                registry=self.registry,
            ),
            "rowaudit_last_run_timestamp",
            self.registry,
        )

        self.rows_checked_total = get_or_create_metric(
            lambda: Counter(
                "rowaudit_rows_checked_total",
                "Total number of source rows checked",
                ["table_name"],
                registry=self.registry,
            ),
            "rowaudit_rows_checked_total",
            self.registry,
        )

        self.discrepancies_total = get_or_create_metric(
            lambda: Counter(
                "rowaudit_discrepancies_total",
                "Total discrepancies reported",
                ["table_name", "kind"],
                registry=self.registry,
            ),
            "rowaudit_discrepancies_total",
            self.registry,
        )

        self.degraded_comparisons_total = get_or_create_metric(
            lambda: Counter(
                "rowaudit_degraded_comparisons_total",
                "Cells compared as characters after a numeric or date parse failure",
                ["table_name"],
                registry=self.registry,
            ),
            "rowaudit_degraded_comparisons_total",
            self.registry,
        )

        self.lookup_seconds = get_or_create_metric(
            lambda: Histogram(
                "rowaudit_lookup_seconds",
                "Time to look up one target row",
                ["table_name"],
                buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
                registry=self.registry,
            ),
            "rowaudit_lookup_seconds",
            self.registry,
        )

    def record_row(self, table_name: str) -> None:
        self.rows_checked_total.labels(table_name=table_name).inc()

    def record_discrepancy(self, table_name: str, kind: str) -> None:
        self.discrepancies_total.labels(table_name=table_name, kind=kind).inc()

    def record_degraded(self, table_name: str) -> None:
        self.degraded_comparisons_total.labels(table_name=table_name).inc()

    def time_lookup(self, table_name: str):
        """Context manager timing one target lookup."""
        return self.lookup_seconds.labels(table_name=table_name).time()

    def record_run(
        self,
        table_name: str,
        termination: str,
        duration: float,
    ) -> None:
        """
        Record a finished audit run

        Args:
            table_name: Audited table
            termination: Why the run ended (exhausted, max_errors, ...)
            duration: Duration in seconds
        """
        self.runs_total.labels(table_name=table_name, termination=termination).inc()
        self.run_duration_seconds.labels(table_name=table_name).observe(duration)
        self.last_run_timestamp.labels(table_name=table_name).set(time.time())

        logger.info(
            f"Recorded audit run: table={table_name}, "
            f"termination={termination}, duration={duration:.2f}s"
        )

"""
Metrics for replication runs.

Tracks per-table outcomes, copied rows, schema additions, and durations
for monitoring scheduled and one-shot synchronizations.
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

logger = logging.getLogger(__name__)


class ReplicationMetrics:
    """
    Metrics for replication operations

    Pass a dedicated CollectorRegistry when more than one instance is
    created in the same process (tests, embedded use).
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.tables_replicated_total = Counter(
            "replication_tables_total",
            "Total number of table replications by outcome",
            ["table_name", "status"],
            registry=self.registry,
        )

        self.rows_copied_total = Counter(
            "replication_rows_copied_total",
            "Total number of rows written to the destination",
            ["table_name"],
            registry=self.registry,
        )

        self.columns_added_total = Counter(
            "replication_columns_added_total",
            "Total number of columns added to destination tables",
            ["table_name"],
            registry=self.registry,
        )

        self.tables_created_total = Counter(
            "replication_tables_created_total",
            "Total number of destination tables created",
            registry=self.registry,
        )

        self.table_duration_seconds = Histogram(
            "replication_table_duration_seconds",
            "Duration of a single table replication in seconds",
            ["table_name"],
            buckets=(1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600),
            registry=self.registry,
        )

        self.last_run_timestamp = Gauge(
            "replication_last_run_timestamp",
            "Timestamp of the last replication of a table",
            ["table_name"],
            registry=self.registry,
        )

        self.source_rows = Gauge(
            "replication_source_rows",
            "Source row count observed at the start of the table copy",
            ["table_name"],
            registry=self.registry,
        )

    def record_table_started(self, table_name: str, total_rows: int) -> None:
        self.source_rows.labels(table_name=table_name).set(total_rows)

    def record_rows_copied(self, table_name: str, rows: int) -> None:
        if rows > 0:
            self.rows_copied_total.labels(table_name=table_name).inc(rows)

    def record_columns_added(self, table_name: str, count: int) -> None:
        if count > 0:
            self.columns_added_total.labels(table_name=table_name).inc(count)

    def record_table_created(self) -> None:
        self.tables_created_total.inc()

    def record_table_run(self, table_name: str, success: bool, duration: float) -> None:
        """
        Record the outcome of one table replication

        Args:
            table_name: Name of the replicated table
            success: Whether the table finished without error
            duration: Duration in seconds
        """
        status = "success" if success else "failed"

        self.tables_replicated_total.labels(table_name=table_name, status=status).inc()
        self.table_duration_seconds.labels(table_name=table_name).observe(duration)
        self.last_run_timestamp.labels(table_name=table_name).set(time.time())

        logger.debug(
            f"Recorded table run: table={table_name}, status={status}, "
            f"duration={duration:.2f}s"
        )

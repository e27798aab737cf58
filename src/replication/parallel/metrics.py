"""
Prometheus metrics for parallel table replication.
"""

from prometheus_client import Counter, Gauge, Histogram

TABLES_PROCESSED = Counter(
    "replication_parallel_tables_total",
    "Tables finished by the parallel replicator, by outcome",
    ["status"],  # success, failed, timeout, cancelled
)

RUN_SECONDS = Histogram(
    "replication_parallel_run_seconds",
    "Wall-clock time of a parallel replication run",
    ["worker_count"],
    buckets=[1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600],
)

ACTIVE_WORKERS = Gauge(
    "replication_parallel_active_workers",
    "Worker threads currently replicating a table",
)

QUEUED_TABLES = Gauge(
    "replication_parallel_queue_size",
    "Tables submitted but not yet finished",
)

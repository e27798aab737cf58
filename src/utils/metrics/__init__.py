"""
Prometheus metrics for the replication tool

Usage:
    from src.utils.metrics import MetricsPublisher, ReplicationMetrics

    MetricsPublisher(port=9091).start()

    metrics = ReplicationMetrics()
    metrics.record_rows_copied("customers", 5000)
    metrics.record_table_run("customers", success=True, duration=45.2)
"""

from .publisher import MetricsPublisher
from .replication import ReplicationMetrics

__all__ = [
    "MetricsPublisher",
    "ReplicationMetrics",
]

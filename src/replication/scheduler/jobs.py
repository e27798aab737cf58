"""
Job wrapper for scheduled replication runs.

Each run replicates every selected table through the long-lived connection
pools and saves a JSON report to the output directory.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from src.utils.db_pool import get_destination_pool, get_source_pool

from ..config import ReplicationConfig
from ..database import MySQLDatabase
from ..orchestrator import execute_replication
from ..report import export_report_json, generate_report

logger = logging.getLogger(__name__)


def replicate_job_wrapper(
    config: ReplicationConfig,
    output_dir: str,
    metrics: Any | None = None,
) -> dict[str, Any]:
    """
    Wrapper function for scheduled replication jobs

    Requires the global pools to be initialized (src.utils.db_pool.initialize_pools).

    Args:
        config: Replication settings
        output_dir: Directory to save replication reports
        metrics: Optional ReplicationMetrics

    Returns:
        The generated report
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    output_path = Path(output_dir) / f"replicate_{timestamp}.json"

    Path(output_dir).mkdir(parents=True, exist_ok=True)

    logger.info(f"Starting scheduled replication at {timestamp}")

    try:
        source_pool, destination_pool = get_source_pool(), get_destination_pool()
        # idle time between runs usually exceeds the server wait_timeout
        for pool in (source_pool, destination_pool):
            pool.prune()

        source = MySQLDatabase(source_pool, name="source")
        destination = MySQLDatabase(destination_pool, name="destination")

        results = execute_replication(config, source, destination, metrics=metrics)

        report = generate_report(results)
        export_report_json(report, str(output_path))

        logger.info(f"Replication complete. Report saved to {output_path}")
        logger.info(f"Status: {report['status']}")
        logger.info(
            f"Tables replicated: {report['tables_succeeded']}, "
            f"Failed: {report['tables_failed']}, Rows: {report['total_rows_copied']}"
        )
        return report

    except Exception as e:
        logger.error(f"Replication job failed: {e}", exc_info=True)
        raise

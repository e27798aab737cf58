"""
CLI command implementations.

Contains the three CLI commands:
- run: One-time replication
- schedule: Periodic scheduled replication
- report: Report rendering from previous runs
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from src.utils.db_pool import close_pools, initialize_pools
from src.utils.metrics import MetricsPublisher, ReplicationMetrics
from src.utils.tracing import initialize_tracing, shutdown_tracing

from ..database import MySQLDatabase
from ..errors import ConfigurationError
from ..orchestrator import execute_replication
from ..report import (
    RunStatus,
    export_report_csv,
    export_report_json,
    format_report_console,
    generate_report,
)
from ..scheduler import ReplicationScheduler, replicate_job_wrapper
from .credentials import build_config
from .progress import LoggingProgressSink, TqdmProgressSink

logger = logging.getLogger(__name__)


def _load_config(args: argparse.Namespace):
    try:
        return build_config(args)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)


def _start_observability(
    args: argparse.Namespace,
) -> tuple[MetricsPublisher | None, ReplicationMetrics | None]:
    """Start tracing and the metrics endpoint when requested."""
    if args.otlp_endpoint:
        initialize_tracing(otlp_endpoint=args.otlp_endpoint)

    if not args.metrics_port:
        return None, None

    publisher = MetricsPublisher(port=args.metrics_port)
    publisher.start()
    return publisher, ReplicationMetrics()


def _shutdown(publisher: MetricsPublisher | None) -> None:
    close_pools()
    shutdown_tracing()
    if publisher is not None:
        publisher.stop()


def _open_databases(config) -> tuple[MySQLDatabase, MySQLDatabase]:
    source_pool, destination_pool = initialize_pools(
        config.source_connection(),
        config.destination_connection(),
        min_size=config.pool_min_size,
        max_size=config.pool_max_size,
    )
    return (
        MySQLDatabase(source_pool, name="source"),
        MySQLDatabase(destination_pool, name="destination"),
    )


def _write_report(report: dict[str, Any], output: str | None, output_format: str) -> None:
    if not output or output_format == "console":
        print(format_report_console(report))
        return

    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if output_format == "json":
        export_report_json(report, str(output_path))
    else:
        export_report_csv(report, str(output_path))
    logger.info(f"Report saved to {output_path}")


def cmd_run(args: argparse.Namespace) -> None:
    """
    Run a one-time replication

    Exits 0 when every table replicated, 1 on configuration errors, fatal
    errors, or when any table failed under --continue-on-error.

    Args:
        args: Parsed command-line arguments
    """
    logger.info("Starting replication run")

    config = _load_config(args)
    sink = LoggingProgressSink() if args.no_progress else TqdmProgressSink()
    publisher = None

    try:
        publisher, metrics = _start_observability(args)
        source, destination = _open_databases(config)
        results = execute_replication(config, source, destination, metrics=metrics, sink=sink)
    except Exception as e:
        logger.error(f"Replication failed: {e}", exc_info=True)
        sys.exit(1)
    finally:
        sink.close()
        _shutdown(publisher)

    report = generate_report(results)
    _write_report(report, args.output, args.format)

    if report["status"] in (RunStatus.PASS, RunStatus.NO_DATA):
        logger.info("Replication completed successfully")
        sys.exit(0)

    logger.warning(f"Replication finished with {report['tables_failed']} failed table(s)")
    sys.exit(1)


def cmd_schedule(args: argparse.Namespace) -> None:
    """
    Schedule periodic replication jobs

    Args:
        args: Parsed command-line arguments
    """
    logger.info("Setting up replication scheduler")

    config = _load_config(args)
    output_dir = args.output_dir
    Path(output_dir).mkdir(parents=True, exist_ok=True)

    scheduler = ReplicationScheduler()
    publisher = None

    try:
        publisher, metrics = _start_observability(args)
        _open_databases(config)

        job_kwargs = {"config": config, "output_dir": output_dir, "metrics": metrics}
        if args.cron:
            scheduler.add_cron_job(
                replicate_job_wrapper, args.cron, "replication_job", **job_kwargs
            )
            logger.info(f"Scheduled replication with cron: {args.cron}")
        else:
            scheduler.add_interval_job(
                replicate_job_wrapper, args.interval, "replication_job", **job_kwargs
            )
            logger.info(f"Scheduled replication every {args.interval} seconds")

        logger.info("Starting scheduler (press Ctrl+C to stop)")
        scheduler.start()
    except Exception as e:
        logger.error(f"Scheduler failed: {e}", exc_info=True)
        sys.exit(1)
    finally:
        _shutdown(publisher)


def cmd_report(args: argparse.Namespace) -> None:
    """
    Render a report from a previous replication JSON file

    Args:
        args: Parsed command-line arguments
    """
    logger.info(f"Loading replication report from {args.input}")

    if args.format != "console" and not args.output:
        logger.error(f"Output file required for {args.format.upper()} format")
        sys.exit(1)

    try:
        with open(args.input) as f:
            report = json.load(f)

        _write_report(report, args.output, args.format)

    except Exception as e:
        logger.error(f"Failed to process report: {e}")
        sys.exit(1)

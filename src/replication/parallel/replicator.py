"""
Parallel table replication engine.

Tables are independent, so ParallelReplicator hands each one to a worker
thread running ReplicationRunner.replicate_one. Each statement borrows its own
pooled connection, which keeps concurrent workers off each other's sessions.
"""

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from contextlib import closing
from datetime import datetime, timezone
from typing import Any

from opentelemetry import trace

from src.utils.tracing import trace_operation

from ..events import TableFailed, TableFinished, TableResult
from ..orchestrator import ReplicationEvent, ReplicationRunner, ResultCollector
from .metrics import ACTIVE_WORKERS, QUEUED_TABLES, RUN_SECONDS, TABLES_PROCESSED

logger = logging.getLogger(__name__)

Sink = Callable[[ReplicationEvent], None]

_OUTCOME_LOG_LEVELS = {
    "success": logging.INFO,
    "cancelled": logging.WARNING,
    "failed": logging.ERROR,
    "timeout": logging.ERROR,
}


class CancellationError(Exception):
    """Raised inside a worker when its table was cancelled."""


class TableTimeoutError(Exception):
    """Raised inside a worker when a table exceeds its time limit."""


def _failure(table: str, error: Any, error_type: str) -> TableResult:
    return TableResult(table=table, status="FAILED", error=str(error), error_type=error_type)


class ParallelReplicator:
    """
    Replicates several tables concurrently on a thread pool

    Cancellation and timeouts are checked between pages, so a table stops
    after its current page completes. Rows already written stay written.

    Args:
        max_workers: Tables replicated at once (default: 4)
        timeout_per_table: Time limit in seconds for each table (default: 3600)
        fail_fast: Cancel tables not yet finished after the first failure
    """

    def __init__(
        self,
        max_workers: int = 4,
        timeout_per_table: int = 3600,
        fail_fast: bool = False,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

        self.max_workers = max_workers
        self.timeout_per_table = timeout_per_table
        self.fail_fast = fail_fast
        self._sink_lock = threading.Lock()
        self._cancellation_tokens: dict[str, threading.Event] = {}

    def replicate_tables(
        self,
        runner: ReplicationRunner,
        tables: list[str] | None = None,
        sink: Sink | None = None,
    ) -> dict[str, Any]:
        """
        Replicate tables in parallel

        Args:
            runner: Runner providing replicate_one() for a single table
            tables: Tables to replicate (default: runner.tables_to_replicate())
            sink: Event callback; calls are serialized across workers

        Returns:
            Summary dictionary with total_tables, successful, failed, timeout,
            results (one TableResult per table, in completion order), errors
            (table/error/type dicts), duration_seconds, timestamp and
            max_workers
        """
        if tables is None:
            tables = runner.tables_to_replicate()

        with trace_operation(
            "parallel_replicate_tables",
            kind=trace.SpanKind.INTERNAL,
            table_count=len(tables),
            max_workers=self.max_workers,
        ), RUN_SECONDS.labels(worker_count=self.max_workers).time():
            return self._run(runner, tables, sink)

    def _run(self, runner: ReplicationRunner, tables: list[str], sink: Sink | None) -> dict[str, Any]:
        started = time.monotonic()
        summary: dict[str, Any] = {
            "total_tables": len(tables),
            "successful": 0,
            "failed": 0,
            "timeout": 0,
            "results": [],
            "errors": [],
            "max_workers": self.max_workers,
        }

        if not tables:
            logger.warning("No tables to replicate")
            summary["duration_seconds"] = 0
            summary["timestamp"] = datetime.now(timezone.utc).isoformat()
            return summary

        logger.info(f"Replicating {len(tables)} tables with {self.max_workers} workers")

        self._cancellation_tokens = {table: threading.Event() for table in tables}
        QUEUED_TABLES.set(len(tables))

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="replicate"
        ) as executor:
            futures = {
                executor.submit(
                    self._replicate_table_worker, runner, table, sink,
                    self._cancellation_tokens[table],
                ): table
                for table in tables
            }

            for done, future in enumerate(as_completed(futures), 1):
                table = futures[future]
                QUEUED_TABLES.set(len(tables) - done)

                outcome, result = self._settle(summary, table, future)
                TABLES_PROCESSED.labels(status=outcome).inc()

                detail = f"{result.rows_processed} rows" if outcome == "success" else result.error
                logger.log(
                    _OUTCOME_LOG_LEVELS[outcome],
                    f"[{done}/{len(tables)}] {table}: {outcome} ({detail})",
                )

                if self.fail_fast and outcome in ("failed", "timeout"):
                    self._cancel_all()

        self._cancellation_tokens.clear()
        QUEUED_TABLES.set(0)

        summary["duration_seconds"] = time.monotonic() - started
        summary["timestamp"] = datetime.now(timezone.utc).isoformat()

        logger.info(
            f"Parallel replication finished in {summary['duration_seconds']:.2f}s: "
            f"{summary['successful']} succeeded, {summary['failed']} failed, "
            f"{summary['timeout']} timed out"
        )
        return summary

    def _settle(self, summary: dict[str, Any], table: str, future: Future) -> tuple[str, TableResult]:
        """Fold one finished worker into the summary; returns its outcome label and result."""
        try:
            result = future.result()
        except TableTimeoutError as e:
            summary["timeout"] += 1
            outcome, result = "timeout", _failure(table, e, "TimeoutError")
        except CancellationError as e:
            summary["failed"] += 1
            outcome, result = "cancelled", _failure(table, e, "CancellationError")
        except Exception as e:
            summary["failed"] += 1
            outcome, result = "failed", _failure(table, e, type(e).__name__)
        else:
            if result.status == "SUCCESS":
                summary["successful"] += 1
                outcome = "success"
            else:
                summary["failed"] += 1
                outcome = "failed"

        summary["results"].append(result)
        if outcome != "success":
            summary["errors"].append(
                {"table": table, "error": result.error, "type": result.error_type}
            )
        return outcome, result

    def _cancel_all(self) -> None:
        logger.warning("Fail-fast enabled, cancelling remaining tables")
        for token in self._cancellation_tokens.values():
            token.set()

    def _emit(self, sink: Sink | None, event: ReplicationEvent) -> None:
        if sink is None:
            return
        with self._sink_lock:
            sink(event)

    def _replicate_table_worker(
        self,
        runner: ReplicationRunner,
        table: str,
        sink: Sink | None,
        cancellation_token: threading.Event,
    ) -> TableResult:
        """Run one table, checking cancellation and the time limit after every event."""
        if cancellation_token.is_set():
            raise CancellationError(f"Replication of {table} cancelled before starting")

        deadline = time.monotonic() + self.timeout_per_table
        collector = ResultCollector()

        with trace_operation(
            "parallel_replicate_single_table", kind=trace.SpanKind.INTERNAL, table=table
        ), ACTIVE_WORKERS.track_inprogress(), closing(runner.replicate_one(table)) as events:
            for event in events:
                collector.add(event)
                self._emit(sink, event)
                if isinstance(event, (TableFinished, TableFailed)):
                    break
                if cancellation_token.is_set():
                    raise CancellationError(f"Replication of {table} cancelled")
                if time.monotonic() > deadline:
                    raise TableTimeoutError(f"Timeout after {self.timeout_per_table}s")

        return collector.results[0]

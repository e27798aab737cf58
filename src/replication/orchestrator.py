"""
Run orchestration.

ReplicationRunner walks the source tables (minus the exclusion list) and for
each one: makes sure the destination table exists, adds missing columns,
picks the conflict key, and copies the rows. Progress is yielded as events
for the caller to render; the runner itself never prints.
"""

import logging
import time
from collections.abc import Callable, Iterable, Iterator
from typing import Any, Union

from opentelemetry import trace

from src.utils.logging import ContextLogger
from src.utils.tracing import add_span_attributes, trace_operation

from .config import ReplicationConfig
from .ddl import add_if_not_exists, parse_create_table_columns
from .errors import ReplicationError, SchemaMutationError
from .events import ProgressEvent, TableFailed, TableFinished, TableResult, TableStarted
from .keys import select_conflict_key
from .replicator import replicate_table
from .schema import reconcile_table_schema

logger = logging.getLogger(__name__)

ReplicationEvent = Union[TableStarted, ProgressEvent, TableFinished, TableFailed]


def filter_tables(tables: Iterable[str], exclude: Iterable[str]) -> list[str]:
    """Drop excluded tables (exact, case-sensitive match), keeping order."""
    excluded = set(exclude)
    return [table for table in tables if table not in excluded]


class ResultCollector:
    """Folds a stream of events into one TableResult per table."""

    def __init__(self):
        self._results: dict[str, TableResult] = {}

    def add(self, event: ReplicationEvent) -> None:
        result = self._results.setdefault(
            event.table, TableResult(table=event.table, status="RUNNING")
        )

        if isinstance(event, TableStarted):
            result.total_rows = event.total
            result.conflict_key = list(event.conflict_key)
        elif isinstance(event, ProgressEvent):
            result.rows_processed = event.processed
        elif isinstance(event, TableFinished):
            result.status = "SUCCESS"
            result.rows_processed = event.rows_processed
            result.columns_added = list(event.columns_added)
            result.conflict_key = list(event.conflict_key)
            result.created = event.created
            result.duration_seconds = event.duration_seconds
        elif isinstance(event, TableFailed):
            result.status = "FAILED"
            result.error = event.error
            result.error_type = event.error_type
            result.duration_seconds = event.duration_seconds

    @property
    def results(self) -> list[TableResult]:
        return list(self._results.values())


class ReplicationRunner:
    """
    Replicates every non-excluded source table into the destination

    Tables are processed one after another. A failure stops the run unless
    ``config.continue_on_error`` is set, in which case a TableFailed event is
    emitted and the next table starts. Work already applied to the destination
    is never rolled back; re-running resumes safely.

    Args:
        config: Run settings (exclusions, page and chunk sizes)
        source: Source database (src.replication.database.MySQLDatabase)
        destination: Destination database
        metrics: Optional ReplicationMetrics
    """

    def __init__(
        self,
        config: ReplicationConfig,
        source: Any,
        destination: Any,
        metrics: Any | None = None,
    ):
        self.config = config
        self.source = source
        self.destination = destination
        self.metrics = metrics

    def tables_to_replicate(self) -> list[str]:
        """Source tables minus the configured exclusions."""
        tables = self.source.list_tables()
        if self.config.exclude_tables:
            logger.info(f"Excluding tables: {', '.join(sorted(self.config.exclude_tables))}")
        selected = filter_tables(tables, self.config.exclude_tables)
        logger.info(f"Replicating {len(selected)} of {len(tables)} source tables")
        return selected

    def run(self) -> Iterator[ReplicationEvent]:
        """Replicate all selected tables, yielding progress events."""
        for table in self.tables_to_replicate():
            yield from self.replicate_one(table)

    def replicate_one(self, table: str) -> Iterator[ReplicationEvent]:
        """
        Replicate a single table

        Yields:
            TableStarted, then ProgressEvent per page, then TableFinished
            (or TableFailed when failures are tolerated)
        """
        log = ContextLogger(__name__, table=table)
        start_time = time.monotonic()

        try:
            with trace_operation("replicate_table", kind=trace.SpanKind.INTERNAL, table=table):
                yield from self._replicate(table, log, start_time)
        except Exception as e:
            duration = time.monotonic() - start_time
            if self.metrics:
                self.metrics.record_table_run(table, success=False, duration=duration)

            if not self.config.continue_on_error:
                log.error(f"Replication of '{table}' failed: {e}", exc_info=True)
                raise

            log.error(
                f"Replication of '{table}' failed, continuing with next table: {e}",
                exc_info=True,
            )
            yield TableFailed(
                table=table,
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=duration,
            )

    def _ensure_table(self, table: str, create_statement: str) -> bool:
        """Create the destination table from the source DDL if it is missing."""
        existed = bool(self.destination.get_column_names(table))
        if existed:
            return False

        statement = add_if_not_exists(create_statement)
        try:
            self.destination.execute(statement)
        except Exception as e:
            raise SchemaMutationError(table, statement, e) from e

        if self.metrics:
            self.metrics.record_table_created()
        return True

    def _replicate(self, table: str, log: ContextLogger, start_time: float) -> Iterator[ReplicationEvent]:
        create_statement = self.source.get_create_table(table)

        created = self._ensure_table(table, create_statement)
        if created:
            log.info(f"Created destination table '{table}'")

        plan = reconcile_table_schema(
            self.destination, table, parse_create_table_columns(create_statement)
        )
        columns_added = tuple(op.column.name for op in plan)
        if columns_added and self.metrics:
            self.metrics.record_columns_added(table, len(columns_added))

        conflict_key = tuple(select_conflict_key(self.source, table))
        total = self.source.count_rows(table)

        started = TableStarted(table=table, total=total, conflict_key=conflict_key)
        log.info(
            f"[{table}] total rows: {total} (conflict key: {started.conflict_key_label})",
            total_rows=total,
        )
        add_span_attributes(total_rows=total, conflict_key=started.conflict_key_label)
        if self.metrics:
            self.metrics.record_table_started(table, total)
        yield started

        processed = 0
        for event in replicate_table(
            self.source,
            self.destination,
            table,
            conflict_key,
            page_size=self.config.page_size,
            write_chunk_size=self.config.write_chunk_size,
            total=total,
        ):
            if self.metrics:
                self.metrics.record_rows_copied(table, event.processed - processed)
            processed = event.processed
            yield event

        duration = time.monotonic() - start_time
        if self.metrics:
            self.metrics.record_table_run(table, success=True, duration=duration)

        log.info(
            f"Finished '{table}': {processed} rows in {duration:.2f}s",
            rows_processed=processed,
            columns_added=len(columns_added),
        )
        yield TableFinished(
            table=table,
            rows_processed=processed,
            columns_added=columns_added,
            conflict_key=conflict_key,
            created=created,
            duration_seconds=duration,
        )

    def run_to_completion(
        self,
        sink: Callable[[ReplicationEvent], None] | None = None,
    ) -> list[TableResult]:
        """
        Drive run() to the end, feeding each event to ``sink``

        Returns:
            One TableResult per table that was started
        """
        collector = ResultCollector()
        for event in self.run():
            collector.add(event)
            if sink is not None:
                sink(event)
        return collector.results


def execute_replication(
    config: ReplicationConfig,
    source: Any,
    destination: Any,
    metrics: Any | None = None,
    sink: Callable[[ReplicationEvent], None] | None = None,
) -> list[TableResult]:
    """
    Run a full replication, sequentially or across worker threads

    Uses ParallelReplicator when ``config.parallel_workers`` is above one.
    In parallel mode a failing table never aborts the others; without
    ``continue_on_error`` the run still raises after all workers finish.

    Returns:
        One TableResult per attempted table
    """
    runner = ReplicationRunner(config, source, destination, metrics=metrics)

    if config.parallel_workers <= 1:
        return runner.run_to_completion(sink)

    from .parallel import ParallelReplicator

    parallel = ParallelReplicator(
        max_workers=config.parallel_workers,
        fail_fast=not config.continue_on_error,
    )
    outcome = parallel.replicate_tables(runner, sink=sink)
    results = outcome["results"]

    if outcome["errors"] and not config.continue_on_error:
        failed = ", ".join(error["table"] for error in outcome["errors"])
        raise ReplicationError(f"Replication failed for table(s): {failed}")

    return results

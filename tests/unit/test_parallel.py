"""
Unit tests for parallel replication module.

Tests parallel table processing, error isolation, fail-fast cancellation,
timeouts, and event delivery to the sink.
"""

import threading
from unittest.mock import patch

import pytest

from src.replication.config import ReplicationConfig
from src.replication.events import (
    ProgressEvent,
    TableFailed,
    TableFinished,
    TableStarted,
)
from src.replication.orchestrator import ReplicationRunner
from src.replication.parallel import (
    CancellationError,
    ParallelReplicator,
    TableTimeoutError,
)


class StubRunner:
    """Runner double yielding a fixed event sequence per table."""

    def __init__(self, tables, fail=(), tolerate=False, pages=2):
        self.tables = list(tables)
        self.fail = set(fail)
        self.tolerate = tolerate
        self.pages = pages
        self.started = []
        self.closed = []
        self._lock = threading.Lock()

    def tables_to_replicate(self):
        return list(self.tables)

    def replicate_one(self, table):
        with self._lock:
            self.started.append(table)
        try:
            yield TableStarted(table, self.pages * 10, ("id",))
            if table in self.fail:
                if self.tolerate:
                    yield TableFailed(table, "boom", "DataCopyError")
                    return
                raise RuntimeError(f"{table} exploded")
            for page in range(1, self.pages + 1):
                yield ProgressEvent(table, page * 10, self.pages * 10)
            yield TableFinished(table, self.pages * 10, conflict_key=("id",))
        finally:
            with self._lock:
                self.closed.append(table)


class TestParallelReplicator:
    """Test ParallelReplicator functionality."""

    def test_initialization(self):
        replicator = ParallelReplicator(max_workers=4, timeout_per_table=3600)

        assert replicator.max_workers == 4
        assert replicator.timeout_per_table == 3600
        assert replicator.fail_fast is False

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError, match="max_workers"):
            ParallelReplicator(max_workers=0)

    def test_empty_table_list(self):
        results = ParallelReplicator().replicate_tables(StubRunner([]), tables=[])

        assert results["total_tables"] == 0
        assert results["results"] == []
        assert results["duration_seconds"] == 0

    def test_all_tables_succeed(self):
        runner = StubRunner(["users", "orders", "products"])

        results = ParallelReplicator(max_workers=2).replicate_tables(runner)

        assert results["total_tables"] == 3
        assert results["successful"] == 3
        assert results["failed"] == 0
        assert sorted(r.table for r in results["results"]) == ["orders", "products", "users"]
        assert all(r.status == "SUCCESS" for r in results["results"])
        assert all(r.rows_processed == 20 for r in results["results"])
        assert results["max_workers"] == 2
        assert "timestamp" in results

    def test_explicit_table_subset(self):
        runner = StubRunner(["users", "orders"])

        results = ParallelReplicator().replicate_tables(runner, tables=["orders"])

        assert runner.started == ["orders"]
        assert results["successful"] == 1

    def test_failure_is_isolated(self):
        runner = StubRunner(["users", "orders", "products"], fail={"orders"})

        results = ParallelReplicator(max_workers=1).replicate_tables(runner)

        assert results["successful"] == 2
        assert results["failed"] == 1
        assert results["errors"] == [
            {"table": "orders", "error": "orders exploded", "type": "RuntimeError"}
        ]
        failed = [r for r in results["results"] if r.status == "FAILED"]
        assert [r.table for r in failed] == ["orders"]

    def test_tolerated_failure_event_counts_as_failed(self):
        runner = StubRunner(["users", "orders"], fail={"orders"}, tolerate=True)

        results = ParallelReplicator(max_workers=2).replicate_tables(runner)

        assert results["successful"] == 1
        assert results["failed"] == 1
        assert results["errors"][0]["type"] == "DataCopyError"

    def test_fail_fast_cancels_remaining_tables(self):
        runner = StubRunner(["orders", "users", "products"], fail={"orders"})
        replicator = ParallelReplicator(max_workers=1, fail_fast=True)

        with patch.object(replicator, "_cancel_all", wraps=replicator._cancel_all) as cancel:
            results = replicator.replicate_tables(runner)

        cancel.assert_called_once()
        by_table = {r.table: r for r in results["results"]}
        assert by_table["orders"].error_type == "RuntimeError"
        # tables picked up before the cancellation landed may still finish
        for table in ("users", "products"):
            assert by_table[table].status == "SUCCESS" or (
                by_table[table].error_type == "CancellationError"
            )

    def test_timeout_between_pages(self):
        runner = StubRunner(["users"], pages=3)
        # a time limit already passed when the first event arrives
        replicator = ParallelReplicator(max_workers=1, timeout_per_table=-1)

        results = replicator.replicate_tables(runner)

        assert results["timeout"] == 1
        assert results["errors"][0]["type"] == "TimeoutError"
        assert results["results"][0].error_type == "TimeoutError"
        assert runner.closed == ["users"]

    def test_time_limit_passing_at_finish_keeps_success(self):
        clock = {"now": 0.0}

        class LateFinishRunner(StubRunner):
            def replicate_one(self, table):
                for event in super().replicate_one(table):
                    if isinstance(event, TableFinished):
                        clock["now"] = 10_000.0
                    yield event

        replicator = ParallelReplicator(max_workers=1, timeout_per_table=60)

        with patch("src.replication.parallel.replicator.time.monotonic", lambda: clock["now"]):
            result = replicator._replicate_table_worker(
                LateFinishRunner(["users"]), "users", None, threading.Event()
            )

        assert result.status == "SUCCESS"
        assert result.rows_processed == 20

    def test_sink_receives_every_event(self):
        runner = StubRunner(["users", "orders"])
        received = []

        ParallelReplicator(max_workers=2).replicate_tables(runner, sink=received.append)

        assert len(received) == 8
        for table in ("users", "orders"):
            events = [e for e in received if e.table == table]
            assert isinstance(events[0], TableStarted)
            assert isinstance(events[-1], TableFinished)

    def test_worker_raises_cancellation_when_token_set(self):
        replicator = ParallelReplicator()
        token = threading.Event()
        token.set()

        with pytest.raises(CancellationError):
            replicator._replicate_table_worker(StubRunner(["users"]), "users", None, token)

    def test_timeout_error_type(self):
        assert issubclass(TableTimeoutError, Exception)


class TestParallelWithRealRunner:
    """ParallelReplicator driving ReplicationRunner against in-memory databases"""

    def test_replicates_all_tables(self, source_db, destination_db):
        for name in ("users", "orders", "products"):
            source_db.add_table(
                name,
                ["`id` int NOT NULL", "`label` varchar(20)"],
                primary_key=("id",),
                rows=[{"id": i, "label": f"{name}{i}"} for i in range(25)],
            )
        config = ReplicationConfig(
            source_url="mysql://root@src/app",
            destination_url="mysql://root@dst/app",
            page_size=10,
            continue_on_error=True,
        )
        runner = ReplicationRunner(config, source_db, destination_db)

        results = ParallelReplicator(max_workers=3).replicate_tables(runner)

        assert results["successful"] == 3
        for name in ("users", "orders", "products"):
            assert len(destination_db.rows(name)) == 25

"""
Bounded connection pool shared by replication workers.

Connections are validated when they are checked out instead of by a
background thread: one older than ``max_lifetime``, idle for longer than
``max_idle_time``, or failing the driver ping is closed and replaced.
Scheduled runs call ``prune()`` between runs so that connections left idle
overnight are retired before the next copy starts.
"""

import logging
import threading
import time
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import trace
from prometheus_client import Counter, Gauge, Histogram

from src.utils.tracing import trace_operation

logger = logging.getLogger(__name__)


POOL_CONNECTIONS = Gauge(
    "replication_pool_connections",
    "Open connections per pool by state",
    ["pool", "state"],  # idle, in_use
)

POOL_CHECKOUT_SECONDS = Histogram(
    "replication_pool_checkout_seconds",
    "Time spent waiting for a pooled connection",
    ["pool"],
    buckets=[0.001, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0],
)

POOL_ERRORS = Counter(
    "replication_pool_errors_total",
    "Connection pool failures by reason",
    ["pool", "reason"],  # connect, validate, exhausted
)


@dataclass
class PooledConnection:
    """A driver connection plus the timestamps used to decide when to retire it."""

    connection: Any
    opened_at: float = field(default_factory=time.monotonic)
    returned_at: float = field(default_factory=time.monotonic)
    checkouts: int = 0


class ConnectionPoolError(Exception):
    """Base exception for connection pool errors."""


class PoolExhaustedError(ConnectionPoolError):
    """Raised when every connection stays checked out past the acquire timeout."""


class PoolClosedError(ConnectionPoolError):
    """Raised when a closed pool is used."""


class BaseConnectionPool:
    """
    Bounded, thread-safe pool of driver connections

    At most ``max_size`` connections are checked out at once; further callers
    wait up to ``acquire_timeout`` seconds. Subclasses implement ``_connect``,
    ``_ping`` and ``_disconnect``.

    Args:
        min_size: Connections opened up front and restored by prune()
        max_size: Upper bound on open connections
        max_idle_time: Seconds a connection may sit idle before it is retired
        max_lifetime: Seconds after which a connection is always retired
        acquire_timeout: Seconds to wait for a free connection
        pool_name: Label used in logs and metrics ("source", "destination")
    """

    def __init__(
        self,
        min_size: int = 2,
        max_size: int = 10,
        max_idle_time: float = 300,
        max_lifetime: float = 3600,
        acquire_timeout: float = 30.0,
        pool_name: str = "default",
    ):
        if min_size < 0 or max_size < 1 or min_size > max_size:
            raise ValueError(
                f"Invalid pool size: min_size={min_size}, max_size={max_size}"
            )

        self.min_size = min_size
        self.max_size = max_size
        self.max_idle_time = max_idle_time
        self.max_lifetime = max_lifetime
        self.acquire_timeout = acquire_timeout
        self.pool_name = pool_name

        self._idle: deque[PooledConnection] = deque()
        self._open = 0
        self._slots = threading.BoundedSemaphore(max_size)
        self._lock = threading.Lock()
        self._closed = False

        self._fill()
        self._publish_gauges()

        logger.info(
            f"Initialized {self.__class__.__name__} '{pool_name}' "
            f"(min={min_size}, max={max_size}, open={self._open})"
        )

    def _connect(self) -> Any:
        raise NotImplementedError

    def _ping(self, connection: Any) -> bool:
        raise NotImplementedError

    def _disconnect(self, connection: Any) -> None:
        raise NotImplementedError

    def _open_connection(self) -> PooledConnection:
        try:
            connection = self._connect()
        except Exception:
            POOL_ERRORS.labels(pool=self.pool_name, reason="connect").inc()
            raise

        with self._lock:
            self._open += 1
        return PooledConnection(connection)

    def _fill(self) -> None:
        """Open connections until min_size are open; a failed connect stops the fill."""
        while self._open < self.min_size and not self._closed:
            try:
                pooled = self._open_connection()
            except Exception as e:
                logger.error(f"Failed to open connection for pool '{self.pool_name}': {e}")
                return
            with self._lock:
                self._idle.append(pooled)

    def _is_usable(self, pooled: PooledConnection) -> bool:
        now = time.monotonic()

        if now - pooled.opened_at > self.max_lifetime:
            logger.debug(f"Retiring connection from '{self.pool_name}': past max lifetime")
            return False

        if now - pooled.returned_at > self.max_idle_time:
            logger.debug(f"Retiring connection from '{self.pool_name}': idle too long")
            return False

        try:
            return bool(self._ping(pooled.connection))
        except Exception as e:
            logger.warning(f"Connection check failed for pool '{self.pool_name}': {e}")
            POOL_ERRORS.labels(pool=self.pool_name, reason="validate").inc()
            return False

    def _retire(self, pooled: PooledConnection) -> None:
        with self._lock:
            self._open -= 1
        try:
            self._disconnect(pooled.connection)
        except Exception as e:
            logger.warning(f"Error closing connection for pool '{self.pool_name}': {e}")

    def _checkout(self) -> PooledConnection:
        while True:
            with self._lock:
                pooled = self._idle.pop() if self._idle else None

            if pooled is None:
                pooled = self._open_connection()
            elif not self._is_usable(pooled):
                self._retire(pooled)
                continue

            pooled.checkouts += 1
            return pooled

    def _checkin(self, pooled: PooledConnection) -> None:
        if self._closed:
            self._retire(pooled)
            return

        pooled.returned_at = time.monotonic()
        with self._lock:
            self._idle.append(pooled)

    def _publish_gauges(self) -> None:
        stats = self.stats()
        POOL_CONNECTIONS.labels(pool=self.pool_name, state="idle").set(stats["idle"])
        POOL_CONNECTIONS.labels(pool=self.pool_name, state="in_use").set(stats["in_use"])

    @contextmanager
    def acquire(self) -> Iterator[Any]:
        """
        Check out a connection for the duration of the ``with`` block

        Yields:
            Driver connection

        Raises:
            PoolClosedError: If the pool is closed
            PoolExhaustedError: If no connection frees up within acquire_timeout
        """
        if self._closed:
            raise PoolClosedError(f"Connection pool '{self.pool_name}' is closed")

        started = time.monotonic()
        with trace_operation(
            "db_pool_acquire",
            kind=trace.SpanKind.CLIENT,
            pool_name=self.pool_name,
        ):
            if not self._slots.acquire(timeout=self.acquire_timeout):
                POOL_ERRORS.labels(pool=self.pool_name, reason="exhausted").inc()
                raise PoolExhaustedError(
                    f"No connection available from '{self.pool_name}' "
                    f"within {self.acquire_timeout}s"
                )
            try:
                pooled = self._checkout()
            except Exception:
                self._slots.release()
                raise

        POOL_CHECKOUT_SECONDS.labels(pool=self.pool_name).observe(time.monotonic() - started)
        self._publish_gauges()

        try:
            yield pooled.connection
        finally:
            self._checkin(pooled)
            self._slots.release()
            self._publish_gauges()

    def prune(self) -> int:
        """
        Retire unusable idle connections and reopen up to min_size

        Returns:
            Number of connections retired
        """
        if self._closed:
            return 0

        with self._lock:
            idle, self._idle = list(self._idle), deque()

        retired = 0
        for pooled in idle:
            if self._is_usable(pooled):
                with self._lock:
                    self._idle.append(pooled)
            else:
                self._retire(pooled)
                retired += 1

        self._fill()
        self._publish_gauges()

        if retired:
            logger.info(f"Retired {retired} stale connection(s) from pool '{self.pool_name}'")
        return retired

    def close(self) -> None:
        """Close idle connections now and checked-out ones when they come back."""
        if self._closed:
            return

        self._closed = True
        with self._lock:
            idle, self._idle = list(self._idle), deque()

        for pooled in idle:
            self._retire(pooled)

        self._publish_gauges()
        logger.info(f"Connection pool '{self.pool_name}' closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> dict[str, Any]:
        """Snapshot of the pool's size and usage."""
        with self._lock:
            open_count = self._open
            idle = len(self._idle)

        return {
            "pool_name": self.pool_name,
            "open": open_count,
            "idle": idle,
            "in_use": open_count - idle,
            "min_size": self.min_size,
            "max_size": self.max_size,
            "closed": self._closed,
        }

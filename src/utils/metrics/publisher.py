"""
Prometheus endpoint for replication metrics.

Serves /metrics from a daemon thread for as long as a run or the scheduler
is alive, so a scrape during a long copy sees tables and rows as they
progress.
"""

import errno
import logging
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, start_http_server

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """
    Owns the /metrics HTTP server

    Args:
        port: Port to listen on (default: 9091)
        addr: Interface to bind (default: all interfaces)
        registry: Registry to expose (default: the global REGISTRY)
    """

    def __init__(
        self,
        port: int = 9091,
        addr: str = "0.0.0.0",
        registry: Optional[CollectorRegistry] = None,
    ):
        self.port = port
        self.addr = addr
        self.registry = registry or REGISTRY
        self._server = None
        self._thread = None

    def start(self) -> None:
        """
        Start serving /metrics

        Raises:
            RuntimeError: If another process holds the port
        """
        if self._server is not None:
            logger.warning(f"Metrics endpoint already serving on port {self.port}")
            return

        try:
            self._server, self._thread = start_http_server(
                self.port, addr=self.addr, registry=self.registry
            )
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                raise RuntimeError(
                    f"Metrics port {self.port} is already in use; "
                    "pass a different --metrics-port"
                ) from e
            raise

        logger.info(f"Serving replication metrics on http://{self.addr}:{self.port}/metrics")

    def stop(self) -> None:
        """Shut the endpoint down; a no-op when it was never started."""
        if self._server is None:
            return

        self._server.shutdown()
        self._server.server_close()
        self._server = None
        self._thread = None
        logger.info("Metrics endpoint stopped")

    def is_started(self) -> bool:
        return self._server is not None

"""
Database connection pooling for the source and destination MySQL servers.

Provides bounded, thread-safe pools that validate connections on checkout.
Both pools live for the duration of a run and are released together.
"""

import logging
from typing import Any

from .base import (
    BaseConnectionPool,
    ConnectionPoolError,
    PoolClosedError,
    PooledConnection,
    PoolExhaustedError,
)
from .mysql import MySQLConnectionPool

logger = logging.getLogger(__name__)


# Global pool instances (initialized by application)
_source_pool: MySQLConnectionPool | None = None
_destination_pool: MySQLConnectionPool | None = None


def initialize_pools(
    source_config: dict[str, Any],
    destination_config: dict[str, Any],
    min_size: int = 2,
    max_size: int = 10,
    **pool_kwargs: Any,
) -> tuple[MySQLConnectionPool, MySQLConnectionPool]:
    """
    Initialize the global source and destination pools.

    Args:
        source_config: Connection kwargs for the source (host, port, user,
            password, database, connect_options)
        destination_config: Connection kwargs for the destination
        min_size: Minimum connections kept per pool
        max_size: Maximum connections per pool
        **pool_kwargs: Additional pool configuration (max_idle_time, max_lifetime, acquire_timeout)

    Returns:
        Tuple of (source_pool, destination_pool)
    """
    global _source_pool, _destination_pool

    logger.info("Initializing source and destination connection pools")

    _source_pool = MySQLConnectionPool(
        **source_config,
        min_size=min_size,
        max_size=max_size,
        pool_name="source",
        **pool_kwargs,
    )
    try:
        _destination_pool = MySQLConnectionPool(
            **destination_config,
            min_size=min_size,
            max_size=max_size,
            pool_name="destination",
            **pool_kwargs,
        )
    except Exception:
        _source_pool.close()
        _source_pool = None
        raise

    return _source_pool, _destination_pool


def get_source_pool() -> MySQLConnectionPool:
    """Get the global source connection pool."""
    if _source_pool is None:
        raise RuntimeError("Source pool not initialized. Call initialize_pools() first.")
    return _source_pool


def get_destination_pool() -> MySQLConnectionPool:
    """Get the global destination connection pool."""
    if _destination_pool is None:
        raise RuntimeError("Destination pool not initialized. Call initialize_pools() first.")
    return _destination_pool


def close_pools() -> None:
    """Close both global connection pools."""
    global _source_pool, _destination_pool

    for pool in (_source_pool, _destination_pool):
        if pool is None:
            continue
        try:
            pool.close()
        except Exception as e:
            logger.warning(f"Error closing pool '{pool.pool_name}': {e}")

    _source_pool = None
    _destination_pool = None

    logger.info("All connection pools closed")


__all__ = [
    "BaseConnectionPool",
    "MySQLConnectionPool",
    "PooledConnection",
    "ConnectionPoolError",
    "PoolExhaustedError",
    "PoolClosedError",
    "initialize_pools",
    "get_source_pool",
    "get_destination_pool",
    "close_pools",
]

"""
Parallel table replication.

Processes multiple tables concurrently using ThreadPoolExecutor. Tables share
nothing but the two connection pools, so they can be copied independently.

Features:
- Configurable worker count
- Per-table time limit
- Error isolation (failures don't stop other tables unless fail_fast)
- Result aggregation with detailed statistics
- Prometheus metrics for parallel operations
"""

from .replicator import CancellationError, ParallelReplicator, TableTimeoutError

__all__ = [
    'ParallelReplicator',
    'CancellationError',
    'TableTimeoutError',
]

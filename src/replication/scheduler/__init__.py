"""
Replication scheduler module

Provides cron-like scheduling for periodic replication using APScheduler.
"""

from .jobs import replicate_job_wrapper
from .scheduler import ReplicationScheduler, parse_cron_expression

__all__ = [
    'ReplicationScheduler',
    'replicate_job_wrapper',
    'parse_cron_expression',
]

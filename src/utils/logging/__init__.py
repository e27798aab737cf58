"""
Structured logging for the replication tool

Usage:
    from src.utils.logging import setup_logging, ContextLogger

    setup_logging(level="INFO", log_file="/var/log/mysql-replicate/run.log")

    log = ContextLogger(__name__, table="orders")
    log.info("Copied page", offset=10000, rows=5000)
"""

from .config import configure_from_env, setup_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]

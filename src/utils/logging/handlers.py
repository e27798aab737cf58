"""
Handler factories and the per-table ContextLogger adapter.
"""

import logging
import logging.handlers
import os
import sys
from typing import Any

# Keyword arguments Logger.log understands itself; anything else is context
_LOG_CALL_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})


def console_handler(formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    return handler


def rotating_file_handler(
    path: str,
    formatter: logging.Formatter,
    max_bytes: int,
    backup_count: int,
) -> logging.Handler:
    """RotatingFileHandler writing UTF-8 to path, creating its directory first."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setFormatter(formatter)
    return handler


class ContextLogger(logging.LoggerAdapter):
    """
    LoggerAdapter whose keyword arguments become record attributes

    Usage:
        log = ContextLogger(__name__, table="customers")
        log.info("Copied page", offset=5000, rows=5000)
        # record carries table=customers, offset=5000, rows=5000
    """

    def __init__(self, name: str, **context: Any):
        super().__init__(logging.getLogger(name), context)

    def bind(self, **context: Any) -> "ContextLogger":
        """A new ContextLogger carrying this one's context plus the given fields."""
        return ContextLogger(self.logger.name, **{**self.extra, **context})

    def process(self, msg, kwargs):
        fields = {key: kwargs.pop(key) for key in list(kwargs) if key not in _LOG_CALL_KWARGS}
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {}), **fields}
        return msg, kwargs

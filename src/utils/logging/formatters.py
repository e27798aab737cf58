"""
Log formatters: one JSON object per line for shipping, or a readable
colored line for terminals.

Both render the record's extra fields (table, offset, rows, ...) as context.
"""

import json
import logging
import socket
import sys
import traceback
from datetime import datetime, timezone

# Attributes every LogRecord has; everything else arrived through extra=
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def extract_context(record: logging.LogRecord) -> dict:
    """The extra={...} fields attached to a record."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """
    Structured formatter

    Every line has level, logger, message, app and source; timestamp and
    hostname are optional; exception and context appear when present.
    """

    def __init__(
        self,
        include_timestamp: bool = True,
        include_hostname: bool = True,
        app_name: str = "mysql-replicate",
    ):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.app_name = app_name
        self.hostname = socket.gethostname() if include_hostname else None

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "app": self.app_name,
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
                "thread": record.threadName,
            },
        }
        if self.include_timestamp:
            entry["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        if self.hostname:
            entry["hostname"] = self.hostname

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        context = extract_context(record)
        if context:
            entry["context"] = context

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Single-line formatter with the level colored on a TTY

    Extra fields follow the message as ``[key=value, ...]``.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT)
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        if color:
            # color a copy so other handlers see the plain level name
            record = logging.makeLogRecord(vars(record))
            record.levelname = f"{color}{record.levelname}{self.RESET}"

        line = super().format(record)

        context = extract_context(record)
        if context:
            line += " [" + ", ".join(f"{key}={value}" for key, value in context.items()) + "]"
        return line

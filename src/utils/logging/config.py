"""
Root logger setup for the mysql-replicate CLI and scheduler.
"""

import logging
import os

from .formatters import DATE_FORMAT, TEXT_FORMAT, ConsoleFormatter, JSONFormatter
from .handlers import console_handler, rotating_file_handler

QUIET_LIBRARIES = ("urllib3", "requests", "pymysql", "apscheduler")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    console_output: bool = True,
    json_format: bool = False,
    app_name: str = "mysql-replicate",
    max_bytes: int = 100 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Replace the root logger's handlers

    Args:
        level: Level name; unknown names fall back to INFO
        log_file: Also write to this rotating file (directories are created)
        console_output: Write to stderr
        json_format: JSON lines on every handler instead of text
        app_name: "app" field of JSON lines
        max_bytes: File size that triggers rotation (default: 100MB)
        backup_count: Rotated files kept
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handlers = []
    if console_output:
        handlers.append(console_handler(
            JSONFormatter(app_name=app_name) if json_format else ConsoleFormatter()
        ))
    if log_file:
        handlers.append(rotating_file_handler(
            log_file,
            JSONFormatter(app_name=app_name) if json_format
            else logging.Formatter(TEXT_FORMAT, DATE_FORMAT),
            max_bytes,
            backup_count,
        ))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric_level)
    for handler in handlers:
        handler.setLevel(numeric_level)
        root.addHandler(handler)

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging configured: level={logging.getLevelName(numeric_level)}, "
        f"file={log_file or 'none'}, json={json_format}"
    )


def configure_from_env() -> None:
    """
    setup_logging driven by LOG_LEVEL (INFO), LOG_FILE (unset),
    LOG_JSON (false) and LOG_CONSOLE (true)
    """
    setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE"),
        console_output=_env_flag("LOG_CONSOLE", "true"),
        json_format=_env_flag("LOG_JSON", "false"),
    )

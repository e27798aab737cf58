"""
Progress sinks for replication events.

TqdmProgressSink draws one progress bar per table; LoggingProgressSink logs
the same information for non-interactive runs (--no-progress, cron, CI).
"""

import logging
import threading
from typing import Any

from tqdm import tqdm

from ..events import ProgressEvent, TableFailed, TableFinished, TableStarted

logger = logging.getLogger(__name__)


class TqdmProgressSink:
    """Renders a tqdm bar per table from replication events."""

    def __init__(self, **tqdm_kwargs: Any):
        self.tqdm_kwargs = tqdm_kwargs
        self._bars: dict[str, tqdm] = {}
        self._lock = threading.Lock()

    def __call__(self, event: Any) -> None:
        with self._lock:
            if isinstance(event, TableStarted):
                bar = tqdm(
                    total=event.total,
                    desc=event.table,
                    unit="rows",
                    position=len(self._bars),
                    **self.tqdm_kwargs,
                )
                bar.set_postfix_str(f"key: {event.conflict_key_label}")
                self._bars[event.table] = bar
            elif isinstance(event, ProgressEvent):
                bar = self._bars.get(event.table)
                if bar is not None:
                    bar.update(event.processed - bar.n)
            elif isinstance(event, (TableFinished, TableFailed)):
                bar = self._bars.pop(event.table, None)
                if bar is not None:
                    bar.close()

    def close(self) -> None:
        with self._lock:
            for bar in self._bars.values():
                bar.close()
            self._bars.clear()


class LoggingProgressSink:
    """Logs per-page progress at INFO instead of drawing bars."""

    def __call__(self, event: Any) -> None:
        if isinstance(event, ProgressEvent):
            percent = 100.0 * event.processed / event.total if event.total else 100.0
            logger.info(
                f"[{event.table}] {event.processed}/{event.total} rows ({percent:.1f}%)"
            )
        elif isinstance(event, TableFinished):
            logger.info(
                f"[{event.table}] done: {event.rows_processed} rows "
                f"in {event.duration_seconds:.2f}s"
            )
        elif isinstance(event, TableFailed):
            logger.error(f"[{event.table}] failed: {event.error_type}: {event.error}")

    def close(self) -> None:
        pass

"""
Events emitted while a replication run progresses.

The engine yields these to a caller-supplied sink (progress bars, logs,
reports) instead of rendering progress itself.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TableStarted:
    """A table's schema is in place and its row copy is about to begin."""

    table: str
    total: int
    conflict_key: tuple[str, ...] = ()

    @property
    def conflict_key_label(self) -> str:
        return ",".join(self.conflict_key) if self.conflict_key else "none"


@dataclass(frozen=True)
class ProgressEvent:
    """Cumulative rows processed for a table after one page."""

    table: str
    processed: int
    total: int


@dataclass(frozen=True)
class TableFinished:
    table: str
    rows_processed: int
    columns_added: tuple[str, ...] = ()
    conflict_key: tuple[str, ...] = ()
    created: bool = False
    duration_seconds: float = 0.0


@dataclass(frozen=True)
class TableFailed:
    """Emitted instead of TableFinished when failures are tolerated."""

    table: str
    error: str
    error_type: str
    duration_seconds: float = 0.0


@dataclass
class TableResult:
    """Per-table outcome collected for reporting."""

    table: str
    status: str  # SUCCESS, FAILED
    total_rows: int = 0
    rows_processed: int = 0
    conflict_key: list[str] = field(default_factory=list)
    columns_added: list[str] = field(default_factory=list)
    created: bool = False
    duration_seconds: float = 0.0
    error: str | None = None
    error_type: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "table": self.table,
            "status": self.status,
            "total_rows": self.total_rows,
            "rows_processed": self.rows_processed,
            "conflict_key": list(self.conflict_key),
            "columns_added": list(self.columns_added),
            "created": self.created,
            "duration_seconds": round(self.duration_seconds, 3),
            "error": self.error,
            "error_type": self.error_type,
        }

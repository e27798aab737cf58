"""
Paginated row copy for a single table.

Rows are read from the source in fixed-size pages ordered by the table's first
column, split into smaller write chunks, and written to the destination as an
upsert on the conflict key (or a plain append insert for keyless tables).
"""

import logging
from collections.abc import Iterator, Sequence
from typing import Any, TypeVar

from opentelemetry import trace

from src.utils.retry import retry_database_operation, retry_unapplied_database_operation
from src.utils.tracing import trace_operation

from .errors import DataCopyError
from .events import ProgressEvent

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 5000
DEFAULT_WRITE_CHUNK_SIZE = 2000

T = TypeVar("T")


def _require_positive(value: int, name: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")


def chunked(rows: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Split a sequence into consecutive chunks of at most ``size`` items."""
    _require_positive(size, "chunk size")
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


def iter_page_offsets(total: int, page_size: int) -> Iterator[int]:
    """Offsets 0, P, 2P, ... strictly below ``total``."""
    _require_positive(page_size, "page_size")
    return iter(range(0, max(total, 0), page_size))


@retry_database_operation(max_retries=3, base_delay=1.0)
def _fetch_page(source: Any, table: str, columns: list[str], anchor: str,
                offset: int, limit: int) -> list[dict[str, Any]]:
    return source.fetch_page(table, columns, anchor, offset, limit)


@retry_database_operation(max_retries=3, base_delay=1.0)
def _upsert_chunk(destination: Any, table: str, columns: list[str],
                  rows: Sequence[dict[str, Any]], conflict_key: list[str]) -> int:
    return destination.write_rows(table, columns, rows, conflict_key)


# An append may have committed before a lost connection was reported
@retry_unapplied_database_operation(max_retries=3, base_delay=1.0)
def _append_chunk(destination: Any, table: str, columns: list[str],
                  rows: Sequence[dict[str, Any]]) -> int:
    return destination.write_rows(table, columns, rows, [])


def _write_chunk(destination: Any, table: str, columns: list[str],
                 rows: Sequence[dict[str, Any]], conflict_key: list[str]) -> int:
    if conflict_key:
        return _upsert_chunk(destination, table, columns, rows, conflict_key)
    return _append_chunk(destination, table, columns, rows)


def replicate_table(
    source: Any,
    destination: Any,
    table: str,
    conflict_key: Sequence[str],
    page_size: int = DEFAULT_PAGE_SIZE,
    write_chunk_size: int = DEFAULT_WRITE_CHUNK_SIZE,
    total: int | None = None,
) -> Iterator[ProgressEvent]:
    """
    Copy every row of ``table`` from source to destination

    The row count is taken once up front; rows appended to the source while
    the copy runs may or may not be picked up, and rows deleted from the
    source are never removed from the destination.

    Args:
        source: Source database (see src.replication.database)
        destination: Destination database
        table: Table name
        conflict_key: Upsert key; empty for append-only inserts
        page_size: Rows fetched per page (default: 5000)
        write_chunk_size: Rows per INSERT statement (default: 2000)
        total: Row count, when the caller already counted

    Yields:
        ProgressEvent after each page with min(offset + page_size, total)

    Raises:
        ValueError: If page_size or write_chunk_size is not positive
        DataCopyError: If a page fetch or chunk write fails after retries
    """
    _require_positive(page_size, "page_size")
    _require_positive(write_chunk_size, "write_chunk_size")

    columns = source.get_column_names(table)
    if not columns:
        logger.warning(f"Table '{table}' has no columns on the source, nothing to copy")
        return

    anchor = columns[0]
    conflict_key = list(conflict_key)
    if total is None:
        total = source.count_rows(table)

    logger.debug(
        f"Copying '{table}': {total} rows, {len(columns)} columns, "
        f"ordered by '{anchor}', page={page_size}, chunk={write_chunk_size}"
    )

    for offset in iter_page_offsets(total, page_size):
        with trace_operation(
            "replicate_page",
            kind=trace.SpanKind.INTERNAL,
            table=table,
            offset=offset,
            page_size=page_size,
        ):
            try:
                page = _fetch_page(source, table, columns, anchor, offset, page_size)
                for chunk in chunked(page, write_chunk_size):
                    _write_chunk(destination, table, columns, chunk, conflict_key)
            except Exception as e:
                raise DataCopyError(table, offset, e) from e

        yield ProgressEvent(table=table, processed=min(offset + page_size, total), total=total)

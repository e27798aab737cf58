"""
Conflict key selection.

The conflict key decides whether an incoming row replaces an existing
destination row: the primary key when the table has one, otherwise the first
unique index reported by ``SHOW INDEX``, otherwise nothing (append-only).
A unique index with nullable columns is still used, with a warning.
"""

import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

PRIMARY_KEY_NAME = "PRIMARY"


@dataclass(frozen=True)
class IndexColumn:
    """One row of ``SHOW INDEX`` output."""

    key_name: str
    non_unique: bool
    seq_in_index: int
    column_name: str
    nullable: bool = False

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "IndexColumn":
        return cls(
            key_name=row["Key_name"],
            non_unique=bool(int(row["Non_unique"])),
            seq_in_index=int(row["Seq_in_index"]),
            column_name=row["Column_name"],
            nullable=row.get("Null", "") == "YES",
        )


def _as_index_columns(index_rows: list[Any]) -> list[IndexColumn]:
    return [
        row if isinstance(row, IndexColumn) else IndexColumn.from_row(row)
        for row in index_rows
    ]


def primary_key_columns(index_rows: list[Any]) -> list[str]:
    """Primary key columns ordered by their position within the key."""
    columns = [c for c in _as_index_columns(index_rows) if c.key_name == PRIMARY_KEY_NAME]
    return [c.column_name for c in sorted(columns, key=lambda c: c.seq_in_index)]


def first_unique_index(index_rows: list[Any]) -> list[IndexColumn]:
    """
    Entries of the first unique secondary index, ordered within the index

    The index chosen is the first one encountered while iterating the
    catalog rows, not the alphabetically smallest; changing that would
    change which rows count as duplicates across re-runs.
    """
    groups: dict[str, list[IndexColumn]] = {}
    for column in _as_index_columns(index_rows):
        if column.non_unique or column.key_name == PRIMARY_KEY_NAME:
            continue
        groups.setdefault(column.key_name, []).append(column)

    if not groups:
        return []

    first_index = next(iter(groups.values()))
    return sorted(first_index, key=lambda c: c.seq_in_index)


def first_unique_index_columns(index_rows: list[Any]) -> list[str]:
    return [c.column_name for c in first_unique_index(index_rows)]


def select_conflict_key(source: Any, table: str) -> list[str]:
    """
    Determine the conflict key for a table

    Args:
        source: Source database (see src.replication.database)
        table: Table name

    Returns:
        Ordered key column names; empty for append-only tables
    """
    index_rows = source.get_index_rows(table)

    key = primary_key_columns(index_rows)
    if key:
        return key

    index = first_unique_index(index_rows)
    if index:
        key = [c.column_name for c in index]
        logger.info(f"Table '{table}' has no primary key, using unique index {key}")
        nullable = [c.column_name for c in index if c.nullable]
        if nullable:
            # MySQL lets any number of rows share a unique key containing NULL
            logger.warning(
                f"Unique index {index[0].key_name!r} on '{table}' has nullable column(s) "
                f"{nullable}; rows with NULL there are appended on every re-run"
            )
        return key

    logger.warning(
        f"Table '{table}' has no primary key or unique index, "
        "rows will be appended and re-runs will duplicate them"
    )
    return []

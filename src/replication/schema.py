"""
Additive schema reconciliation.

Compares a source table's parsed column list with the destination's existing
columns and computes the ``ALTER TABLE ... ADD COLUMN`` operations that bring
the destination up to date. Existing destination columns are never dropped,
renamed or retyped.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from opentelemetry import trace

from src.utils.sql_safety import quote_identifier
from src.utils.tracing import trace_operation

from .ddl import ColumnDefinition
from .errors import SchemaMutationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Position:
    """Where a new column goes: first in the table, or after ``anchor``."""

    anchor: str | None = None

    @classmethod
    def first(cls) -> "Position":
        return cls(anchor=None)

    @classmethod
    def after(cls, column: str) -> "Position":
        return cls(anchor=column)

    @property
    def is_first(self) -> bool:
        return self.anchor is None

    def to_sql(self) -> str:
        if self.is_first:
            return "FIRST"
        return f"AFTER {quote_identifier(self.anchor)}"

    def __str__(self) -> str:
        return "FIRST" if self.is_first else f"AFTER {self.anchor}"


@dataclass(frozen=True)
class AddColumnOp:
    """One column addition anchored relative to the destination's current state."""

    column: ColumnDefinition
    position: Position


def plan_column_additions(
    existing_columns: Iterable[str],
    source_columns: list[ColumnDefinition],
) -> list[AddColumnOp]:
    """
    Compute the ordered column additions for one table

    Each missing column is anchored after the nearest preceding source column
    that exists on the destination, counting columns added earlier in the same
    plan, or FIRST when there is none. The ops must therefore be applied in
    order.

    Column names are compared case-insensitively, as MySQL does.

    Args:
        existing_columns: Column names currently on the destination table
        source_columns: Source column definitions in declaration order

    Returns:
        List of AddColumnOp; empty when the destination already has every column

    Example:
        source [a, b, c, d], destination {a, c}
        -> [AddColumnOp(b, AFTER a), AddColumnOp(d, AFTER c)]
    """
    present = {name.lower() for name in existing_columns}
    plan = []

    for index, column in enumerate(source_columns):
        if column.name.lower() in present:
            continue

        position = Position.first()
        for previous in reversed(source_columns[:index]):
            if previous.name.lower() in present:
                position = Position.after(previous.name)
                break

        plan.append(AddColumnOp(column=column, position=position))
        present.add(column.name.lower())

    return plan


def render_add_column(table: str, op: AddColumnOp) -> str:
    """Render an AddColumnOp as an ALTER TABLE statement."""
    return (
        f"ALTER TABLE {quote_identifier(table)} "
        f"ADD COLUMN {op.column.raw_definition} {op.position.to_sql()}"
    )


def reconcile_table_schema(
    destination: Any,
    table: str,
    source_columns: list[ColumnDefinition],
) -> list[AddColumnOp]:
    """
    Add the source columns missing from a destination table

    Args:
        destination: Destination database (see src.replication.database)
        table: Table name
        source_columns: Parsed source column definitions

    Returns:
        The applied plan (empty when the schema already converged)

    Raises:
        SchemaMutationError: If the destination rejects an ALTER TABLE
    """
    if not source_columns:
        logger.warning(
            f"No columns parsed for table '{table}', skipping column reconciliation"
        )
        return []

    existing = destination.get_column_names(table)
    plan = plan_column_additions(existing, source_columns)

    if not plan:
        logger.debug(f"Destination schema for '{table}' is up to date")
        return plan

    with trace_operation(
        "reconcile_table_schema",
        kind=trace.SpanKind.CLIENT,
        table=table,
        columns_added=len(plan),
    ):
        for op in plan:
            statement = render_add_column(table, op)
            logger.info(
                f"Adding column '{op.column.name}' to '{table}' ({op.position})"
            )
            try:
                destination.execute(statement)
            except Exception as e:
                raise SchemaMutationError(table, statement, e) from e

    return plan

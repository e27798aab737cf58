"""
Catalog and row access for a MySQL-family database.

MySQLDatabase is the only place that talks SQL to a server during a run. The
reconciler, key selector and batch replicator depend on its methods rather
than on PyMySQL, so they can be exercised against in-memory fakes.

Every call borrows a connection from the pool for the duration of one
statement, which keeps the object safe to share between worker threads.
"""

import logging
from collections.abc import Sequence
from typing import Any

from src.utils.sql_safety import quote_identifier, quote_identifiers, validate_integer_param

logger = logging.getLogger(__name__)


def build_page_query(table: str, columns: Sequence[str], anchor: str) -> str:
    """
    SELECT for one page of rows ordered by the anchor column

    LIMIT and OFFSET are left as parameters, so "%" in names is doubled.
    """
    return (
        f"SELECT {quote_identifiers(list(columns), escape_percent=True)} "
        f"FROM {quote_identifier(table, escape_percent=True)} "
        f"ORDER BY {quote_identifier(anchor, escape_percent=True)} LIMIT %s OFFSET %s"
    )


def build_insert_statement(
    table: str,
    columns: Sequence[str],
    conflict_key: Sequence[str] = (),
) -> str:
    """
    INSERT statement for a chunk of rows

    With a conflict key the statement updates every non-key column on a
    duplicate key. When all columns belong to the key there is nothing to
    update, so the first key column is assigned to itself, which turns the
    duplicate into a no-op instead of an error.

    The statement is meant for cursor.executemany, which %-formats only the
    text up to VALUES and sends the ON DUPLICATE KEY UPDATE clause as is;
    "%" in names is doubled in the former and left alone in the latter.

    Args:
        table: Destination table
        columns: Column names in row order
        conflict_key: Key columns; empty for a plain append insert

    Returns:
        Parameterized statement with one %s placeholder per column
    """
    if not columns:
        raise ValueError(f"Cannot build INSERT for table '{table}' without columns")

    placeholders = ", ".join(["%s"] * len(columns))
    statement = (
        f"INSERT INTO {quote_identifier(table, escape_percent=True)} "
        f"({quote_identifiers(list(columns), escape_percent=True)}) "
        f"VALUES ({placeholders})"
    )

    if not conflict_key:
        return statement

    key = set(conflict_key)
    update_columns = [column for column in columns if column not in key]
    if not update_columns:
        update_columns = [conflict_key[0]]

    assignments = ", ".join(
        f"{quote_identifier(column)} = VALUES({quote_identifier(column)})"
        for column in update_columns
    )
    return f"{statement} ON DUPLICATE KEY UPDATE {assignments}"


class MySQLDatabase:
    """
    Catalog and row operations against one MySQL/MariaDB schema

    Args:
        pool: Connection pool whose connections return rows as dicts
            (src.utils.db_pool.MySQLConnectionPool)
        name: Label used in log messages ("source", "destination")
    """

    def __init__(self, pool: Any, name: str | None = None):
        self.pool = pool
        self.name = name or getattr(pool, "pool_name", "database")

    def _fetchall(self, query: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        with self.pool.acquire() as conn:
            with conn.cursor() as cursor:
                cursor.execute(query, params)
                return list(cursor.fetchall())

    def list_tables(self) -> list[str]:
        """Base tables of the connected schema, views excluded."""
        rows = self._fetchall("SHOW FULL TABLES WHERE Table_type = 'BASE TABLE'")
        # The name column is called Tables_in_<schema>
        return [next(iter(row.values())) for row in rows]

    def get_create_table(self, table: str) -> str:
        """Native CREATE TABLE text for a table."""
        rows = self._fetchall(f"SHOW CREATE TABLE {quote_identifier(table)}")
        if not rows:
            raise LookupError(f"Table '{table}' not found on {self.name}")
        return rows[0]["Create Table"]

    def get_index_rows(self, table: str) -> list[dict[str, Any]]:
        """SHOW INDEX rows (Key_name, Non_unique, Seq_in_index, Column_name, ...)."""
        return self._fetchall(f"SHOW INDEX FROM {quote_identifier(table)}")

    def get_column_names(self, table: str) -> list[str]:
        """Column names in ordinal order; empty if the table does not exist."""
        rows = self._fetchall(
            "SELECT COLUMN_NAME AS column_name FROM information_schema.COLUMNS "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s "
            "ORDER BY ORDINAL_POSITION",
            (table,),
        )
        return [row["column_name"] for row in rows]

    def table_exists(self, table: str) -> bool:
        return bool(self.get_column_names(table))

    def count_rows(self, table: str) -> int:
        rows = self._fetchall(f"SELECT COUNT(*) AS row_count FROM {quote_identifier(table)}")
        return int(rows[0]["row_count"])

    def fetch_page(
        self,
        table: str,
        columns: Sequence[str],
        anchor: str,
        offset: int,
        limit: int,
    ) -> list[dict[str, Any]]:
        """
        Fetch rows ``[offset, offset + limit)`` ordered ascending by ``anchor``

        Args:
            table: Source table
            columns: Projected columns
            anchor: Column imposing the stable sort order
            offset: Rows to skip
            limit: Maximum rows to return
        """
        validate_integer_param(offset, "offset", min_value=0)
        validate_integer_param(limit, "limit", min_value=1)

        return self._fetchall(build_page_query(table, columns, anchor), (limit, offset))

    def execute(self, statement: str) -> None:
        """Execute a DDL statement (CREATE TABLE, ALTER TABLE)."""
        logger.debug(f"[{self.name}] {statement}")
        with self.pool.acquire() as conn:
            with conn.cursor() as cursor:
                cursor.execute(statement)

    def write_rows(
        self,
        table: str,
        columns: Sequence[str],
        rows: Sequence[dict[str, Any]],
        conflict_key: Sequence[str] = (),
    ) -> int:
        """
        Insert a chunk of rows, upserting on the conflict key when there is one

        PyMySQL rewrites executemany over an INSERT ... VALUES statement into
        a single multi-row INSERT, so one chunk is one statement.

        Returns:
            Number of rows sent
        """
        if not rows:
            return 0

        statement = build_insert_statement(table, columns, conflict_key)
        params = [tuple(row.get(column) for column in columns) for row in rows]

        with self.pool.acquire() as conn:
            with conn.cursor() as cursor:
                cursor.executemany(statement, params)

        return len(params)

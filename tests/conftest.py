"""
Pytest configuration and fixtures for replication tests.

Provides an in-memory stand-in for src.replication.database.MySQLDatabase so
the engine can be exercised end to end without a MySQL server. It understands
the statements the engine issues: CREATE TABLE IF NOT EXISTS and
ALTER TABLE ... ADD COLUMN ... FIRST | AFTER.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Any

import pytest

from src.replication.ddl import ColumnDefinition, parse_create_table_columns

_IDENT = r"`((?:[^`]|``)+)`"
_CREATE_RE = re.compile(r"^\s*CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?" + _IDENT, re.IGNORECASE)
_ALTER_RE = re.compile(
    r"^ALTER TABLE " + _IDENT + r" ADD COLUMN (?P<definition>.+) "
    r"(?P<position>FIRST|AFTER `(?P<anchor>(?:[^`]|``)+)`)$",
    re.DOTALL,
)


def _unquote(name: str) -> str:
    return name.replace("``", "`")


@dataclass
class FakeTable:
    name: str
    create_statement: str
    columns: list[ColumnDefinition]
    index_rows: list[dict[str, Any]] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]


class FakeDatabase:
    """In-memory database implementing the MySQLDatabase interface."""

    def __init__(self, name: str = "fake"):
        self.name = name
        self.tables: dict[str, FakeTable] = {}
        self.executed: list[str] = []
        self.write_calls: list[dict[str, Any]] = []
        self.fetch_calls: list[tuple[str, int, int]] = []

    # ----- test helpers -----

    def add_table(
        self,
        name: str,
        column_definitions: list[str],
        primary_key: tuple[str, ...] = (),
        unique_indexes: dict[str, tuple[str, ...]] | None = None,
        rows: list[dict[str, Any]] | None = None,
    ) -> FakeTable:
        """Create a table from column clauses like "`id` int NOT NULL"."""
        clauses = list(column_definitions)
        index_rows = []

        if primary_key:
            clauses.append(
                "PRIMARY KEY (" + ", ".join(f"`{c}`" for c in primary_key) + ")"
            )
            index_rows.extend(
                {"Key_name": "PRIMARY", "Non_unique": 0, "Seq_in_index": seq, "Column_name": c}
                for seq, c in enumerate(primary_key, 1)
            )

        for key_name, key_columns in (unique_indexes or {}).items():
            clauses.append(
                f"UNIQUE KEY `{key_name}` (" + ", ".join(f"`{c}`" for c in key_columns) + ")"
            )
            index_rows.extend(
                {"Key_name": key_name, "Non_unique": 0, "Seq_in_index": seq, "Column_name": c}
                for seq, c in enumerate(key_columns, 1)
            )

        statement = (
            f"CREATE TABLE `{name}` (\n  " + ",\n  ".join(clauses) + "\n) ENGINE=InnoDB"
        )
        table = FakeTable(
            name=name,
            create_statement=statement,
            columns=parse_create_table_columns(statement),
            index_rows=index_rows,
            rows=[dict(row) for row in rows or []],
        )
        self.tables[name] = table
        return table

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables[table].rows

    def statements(self, prefix: str) -> list[str]:
        return [s for s in self.executed if s.upper().startswith(prefix.upper())]

    # ----- database interface -----

    def list_tables(self) -> list[str]:
        return list(self.tables)

    def get_create_table(self, table: str) -> str:
        return self.tables[table].create_statement

    def get_index_rows(self, table: str) -> list[dict[str, Any]]:
        return list(self.tables[table].index_rows)

    def get_column_names(self, table: str) -> list[str]:
        if table not in self.tables:
            return []
        return self.tables[table].column_names

    def count_rows(self, table: str) -> int:
        return len(self.tables[table].rows)

    def fetch_page(self, table, columns, anchor, offset, limit):
        self.fetch_calls.append((table, offset, limit))
        ordered = sorted(
            self.tables[table].rows,
            key=lambda row: (row.get(anchor) is None, row.get(anchor)),
        )
        return [
            {column: row.get(column) for column in columns}
            for row in ordered[offset:offset + limit]
        ]

    def execute(self, statement: str) -> None:
        self.executed.append(statement)

        alter = _ALTER_RE.match(statement)
        if alter:
            self._add_column(
                _unquote(alter.group(1)),
                alter.group("definition"),
                None if alter.group("position") == "FIRST" else _unquote(alter.group("anchor")),
            )
            return

        create = _CREATE_RE.match(statement)
        if create:
            name = _unquote(create.group(1))
            if name not in self.tables:
                self.tables[name] = FakeTable(
                    name=name,
                    create_statement=statement,
                    columns=parse_create_table_columns(statement),
                )
            return

        raise ValueError(f"Unsupported statement: {statement}")

    def _add_column(self, table: str, definition: str, anchor: str | None) -> None:
        fake = self.tables[table]
        (column,) = parse_create_table_columns(f"CREATE TABLE `x` ({definition})")
        if column.name in fake.column_names:
            raise ValueError(f"Duplicate column name '{column.name}'")

        index = 0 if anchor is None else fake.column_names.index(anchor) + 1
        fake.columns.insert(index, column)
        for row in fake.rows:
            row.setdefault(column.name, None)

    def write_rows(self, table, columns, rows, conflict_key=()):
        fake = self.tables[table]
        unknown = set(columns) - set(fake.column_names)
        if unknown:
            raise ValueError(f"Unknown column(s) {sorted(unknown)} in '{table}'")

        self.write_calls.append(
            {"table": table, "rows": len(rows), "conflict_key": list(conflict_key)}
        )

        by_key = {}
        if conflict_key:
            by_key = {tuple(r[c] for c in conflict_key): r for r in fake.rows}

        for row in rows:
            record = {column: row.get(column) for column in fake.column_names}
            if not conflict_key:
                fake.rows.append(record)
                continue

            key = tuple(row[c] for c in conflict_key)
            if key in by_key:
                by_key[key].update({c: row.get(c) for c in columns})
            else:
                fake.rows.append(record)
                by_key[key] = record
        return len(rows)


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: end-to-end runs against in-memory databases")
    config.addinivalue_line("markers", "property: hypothesis property-based tests")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture
def source_db() -> FakeDatabase:
    """Empty in-memory source database."""
    return FakeDatabase(name="source")


@pytest.fixture
def destination_db() -> FakeDatabase:
    """Empty in-memory destination database."""
    return FakeDatabase(name="destination")


@pytest.fixture
def fake_database_class() -> type:
    """The FakeDatabase class, for tests needing more than two databases."""
    return FakeDatabase


@pytest.fixture
def no_retry_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make retry backoff instantaneous."""
    monkeypatch.setattr("src.utils.retry.time.sleep", lambda _seconds: None)


@pytest.fixture(autouse=True)
def set_test_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate tests from replication settings in the calling shell."""
    for name in (
        "MYSQL_SOURCE",
        "MYSQL_DESTINATION",
        "EXCLUDE_TABLE",
        "PAGE_SIZE",
        "WRITE_CHUNK_SIZE",
        "CONTINUE_ON_ERROR",
        "PARALLEL_WORKERS",
        "POOL_MIN_SIZE",
        "POOL_MAX_SIZE",
        "OTLP_ENDPOINT",
    ):
        monkeypatch.delenv(name, raising=False)

    monkeypatch.setenv("VAULT_ADDR", os.environ.get("VAULT_ADDR", "http://localhost:8200"))
    monkeypatch.setenv("VAULT_TOKEN", os.environ.get("VAULT_TOKEN", "dev-root-token"))

"""
Unit tests for conflict key selection
"""

from unittest.mock import Mock

from src.replication.keys import (
    IndexColumn,
    first_unique_index,
    first_unique_index_columns,
    primary_key_columns,
    select_conflict_key,
)


def index_row(key_name, column, seq=1, non_unique=0, null=""):
    return {
        "Table": "t",
        "Non_unique": non_unique,
        "Key_name": key_name,
        "Seq_in_index": seq,
        "Column_name": column,
        "Null": null,
    }


def source_with(rows):
    source = Mock()
    source.get_index_rows.return_value = rows
    return source


class TestPrimaryKeyColumns:

    def test_single_column_primary_key(self):
        assert primary_key_columns([index_row("PRIMARY", "id")]) == ["id"]

    def test_composite_key_ordered_by_sequence(self):
        rows = [
            index_row("PRIMARY", "org_id", seq=2),
            index_row("PRIMARY", "user_id", seq=1),
        ]

        assert primary_key_columns(rows) == ["user_id", "org_id"]

    def test_no_primary_key(self):
        assert primary_key_columns([index_row("ux_email", "email")]) == []

    def test_accepts_index_column_objects(self):
        rows = [IndexColumn("PRIMARY", False, 1, "id")]

        assert primary_key_columns(rows) == ["id"]


class TestFirstUniqueIndexColumns:

    def test_first_encountered_index_wins(self):
        rows = [
            index_row("z_unique", "code"),
            index_row("a_unique", "email"),
        ]

        assert first_unique_index_columns(rows) == ["code"]

    def test_non_unique_indexes_ignored(self):
        rows = [
            index_row("ix_name", "name", non_unique=1),
            index_row("ux_email", "email"),
        ]

        assert first_unique_index_columns(rows) == ["email"]

    def test_columns_ordered_by_sequence(self):
        rows = [
            index_row("ux_pair", "b", seq=2),
            index_row("ux_pair", "a", seq=1),
        ]

        assert first_unique_index_columns(rows) == ["a", "b"]

    def test_non_unique_flag_as_string(self):
        rows = [index_row("ix", "a", non_unique="1"), index_row("ux", "b", non_unique="0")]

        assert first_unique_index_columns(rows) == ["b"]

    def test_no_unique_index(self):
        assert first_unique_index_columns([index_row("ix", "a", non_unique=1)]) == []

    def test_nullable_flag_read_from_catalog(self):
        rows = [index_row("ux_pair", "a"), index_row("ux_pair", "b", seq=2, null="YES")]

        assert [c.nullable for c in first_unique_index(rows)] == [False, True]

    def test_nullable_defaults_to_false(self):
        assert IndexColumn("ux", False, 1, "a").nullable is False


class TestSelectConflictKey:

    def test_primary_key(self):
        source = source_with([index_row("PRIMARY", "id"), index_row("ux_email", "email")])

        assert select_conflict_key(source, "users") == ["id"]
        source.get_index_rows.assert_called_once_with("users")

    def test_unique_index_without_primary_key(self):
        source = source_with([index_row("ux_email", "email")])

        assert select_conflict_key(source, "users") == ["email"]

    def test_no_key(self):
        assert select_conflict_key(source_with([]), "logs") == []

    def test_keyless_table_logs_warning(self, caplog):
        with caplog.at_level("WARNING"):
            select_conflict_key(source_with([]), "logs")

        assert "no primary key or unique index" in caplog.text

    def test_nullable_unique_index_logs_warning(self, caplog):
        source = source_with([index_row("ux_email", "email", null="YES")])

        with caplog.at_level("WARNING"):
            assert select_conflict_key(source, "users") == ["email"]

        assert "nullable" in caplog.text
        assert "ux_email" in caplog.text

    def test_not_null_unique_index_does_not_warn(self, caplog):
        source = source_with([index_row("ux_email", "email")])

        with caplog.at_level("WARNING"):
            select_conflict_key(source, "users")

        assert "nullable" not in caplog.text

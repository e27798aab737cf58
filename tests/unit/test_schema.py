"""
Unit tests for additive schema reconciliation

Tests verify:
- Positioning of missing columns (FIRST / AFTER)
- Anchoring on columns added earlier in the same plan
- Idempotence on a converged schema
- ALTER TABLE rendering and application
"""

from unittest.mock import Mock

import pytest

from src.replication.ddl import ColumnDefinition
from src.replication.errors import SchemaMutationError
from src.replication.schema import (
    AddColumnOp,
    Position,
    plan_column_additions,
    reconcile_table_schema,
    render_add_column,
)


def cols(*names):
    return [ColumnDefinition(name=n, raw_definition=f"`{n}` int") for n in names]


class TestPlanColumnAdditions:
    """Test plan_column_additions"""

    def test_interleaved_missing_columns(self):
        source = cols("a", "b", "c", "d")

        plan = plan_column_additions({"a", "c"}, source)

        assert plan == [
            AddColumnOp(source[1], Position.after("a")),
            AddColumnOp(source[3], Position.after("c")),
        ]

    def test_missing_leading_column_goes_first(self):
        source = cols("id", "name")

        plan = plan_column_additions({"name"}, source)

        assert plan == [AddColumnOp(source[0], Position.first())]

    def test_all_new_columns_chain_on_each_other(self):
        source = cols("a", "b", "c")

        plan = plan_column_additions(set(), source)

        assert [op.position for op in plan] == [
            Position.first(),
            Position.after("a"),
            Position.after("b"),
        ]

    def test_consecutive_missing_columns_anchor_on_previous_addition(self):
        source = cols("a", "b", "c", "d")

        plan = plan_column_additions({"a", "d"}, source)

        assert [(op.column.name, op.position.anchor) for op in plan] == [
            ("b", "a"),
            ("c", "b"),
        ]

    def test_converged_schema_gives_empty_plan(self):
        assert plan_column_additions(["a", "b"], cols("a", "b")) == []

    def test_destination_only_columns_are_ignored(self):
        assert plan_column_additions(["a", "legacy"], cols("a")) == []

    def test_names_compared_case_insensitively(self):
        assert plan_column_additions(["ID", "Name"], cols("id", "name")) == []

    def test_empty_source_gives_empty_plan(self):
        assert plan_column_additions(["a"], []) == []


class TestRenderAddColumn:
    """Test render_add_column"""

    def test_render_after(self):
        op = AddColumnOp(
            ColumnDefinition("email", "`email` varchar(255) DEFAULT NULL"),
            Position.after("name"),
        )

        assert render_add_column("users", op) == (
            "ALTER TABLE `users` ADD COLUMN `email` varchar(255) DEFAULT NULL AFTER `name`"
        )

    def test_render_first(self):
        op = AddColumnOp(ColumnDefinition("id", "`id` int NOT NULL"), Position.first())

        assert render_add_column("users", op) == (
            "ALTER TABLE `users` ADD COLUMN `id` int NOT NULL FIRST"
        )

    def test_position_str(self):
        assert str(Position.first()) == "FIRST"
        assert str(Position.after("a")) == "AFTER a"


class TestReconcileTableSchema:
    """Test reconcile_table_schema against a destination"""

    def test_applies_plan_in_order(self):
        destination = Mock()
        destination.get_column_names.return_value = ["a", "c"]

        plan = reconcile_table_schema(destination, "t", cols("a", "b", "c", "d"))

        assert [op.column.name for op in plan] == ["b", "d"]
        assert [c.args[0] for c in destination.execute.call_args_list] == [
            "ALTER TABLE `t` ADD COLUMN `b` int AFTER `a`",
            "ALTER TABLE `t` ADD COLUMN `d` int AFTER `c`",
        ]

    def test_converged_schema_issues_no_alter(self):
        destination = Mock()
        destination.get_column_names.return_value = ["a", "b"]

        assert reconcile_table_schema(destination, "t", cols("a", "b")) == []
        destination.execute.assert_not_called()

    def test_no_parsed_columns_skips_reconciliation(self):
        destination = Mock()

        assert reconcile_table_schema(destination, "t", []) == []
        destination.get_column_names.assert_not_called()

    def test_second_reconciliation_is_empty(self, destination_db):
        destination_db.add_table("t", ["`a` int"])
        source = cols("a", "b", "c")

        first = reconcile_table_schema(destination_db, "t", source)
        second = reconcile_table_schema(destination_db, "t", source)

        assert [op.column.name for op in first] == ["b", "c"]
        assert second == []
        assert destination_db.get_column_names("t") == ["a", "b", "c"]

    def test_rejected_alter_raises_schema_mutation_error(self):
        destination = Mock()
        destination.get_column_names.return_value = ["a"]
        destination.execute.side_effect = RuntimeError("Duplicate column name")

        with pytest.raises(SchemaMutationError) as exc_info:
            reconcile_table_schema(destination, "t", cols("a", "b"))

        assert exc_info.value.table == "t"
        assert exc_info.value.statement == "ALTER TABLE `t` ADD COLUMN `b` int AFTER `a`"
        assert isinstance(exc_info.value.cause, RuntimeError)

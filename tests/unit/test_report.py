"""
Unit tests for replication report generation and formatting
"""

import csv
import json

from src.replication.events import TableResult
from src.replication.report import (
    RunStatus,
    export_report_csv,
    export_report_json,
    format_report_console,
    generate_report,
)


def success(table="users", rows=12000, key=("id",), columns_added=(), created=False):
    return TableResult(
        table=table,
        status="SUCCESS",
        total_rows=rows,
        rows_processed=rows,
        conflict_key=list(key),
        columns_added=list(columns_added),
        created=created,
        duration_seconds=1.25,
    )


def failure(table="orders", error_type="DataCopyError"):
    return TableResult(
        table=table,
        status="FAILED",
        total_rows=100,
        rows_processed=50,
        error="connection dropped",
        error_type=error_type,
        duration_seconds=0.5,
    )


class TestGenerateReport:
    """Test generate_report"""

    def test_no_results(self):
        report = generate_report([])

        assert report["status"] == RunStatus.NO_DATA
        assert report["total_tables"] == 0
        assert report["tables"] == []

    def test_all_successful(self):
        report = generate_report([
            success("users", created=True),
            success("orders", rows=50, columns_added=["note"]),
        ])

        assert report["status"] == RunStatus.PASS
        assert report["tables_succeeded"] == 2
        assert report["tables_failed"] == 0
        assert report["tables_created"] == 1
        assert report["columns_added"] == 1
        assert report["total_rows_copied"] == 12050
        assert report["duration_seconds"] == 2.5
        assert report["summary"] == "All 2 tables replicated successfully."
        assert report["recommendations"] == [
            "Destination is in sync with the source as of this run."
        ]

    def test_partial(self):
        report = generate_report([success(), failure()])

        assert report["status"] == RunStatus.PARTIAL
        assert report["failures"] == [
            {"table": "orders", "error": "connection dropped", "error_type": "DataCopyError"}
        ]
        assert report["total_rows_copied"] == 12050
        assert "Re-run replication for 1 failed table(s)" in report["recommendations"][0]

    def test_all_failed(self):
        report = generate_report([failure("a"), failure("b")])

        assert report["status"] == RunStatus.FAIL
        assert report["summary"].startswith("Replication failed for 2 of 2 tables.")

    def test_schema_failure_recommendation(self):
        report = generate_report([failure("users", error_type="SchemaMutationError")])

        assert any("rejected schema changes for: users" in r for r in report["recommendations"])

    def test_keyless_tables_flagged(self):
        report = generate_report([success("logs", key=())])

        assert report["keyless_tables"] == ["logs"]
        assert any("logs" in r and "appends" in r for r in report["recommendations"])

    def test_accepts_dicts(self):
        report = generate_report([success().to_dict()])

        assert report["status"] == RunStatus.PASS


class TestFormatters:
    """Test report exporters and console formatting"""

    def test_export_json(self, tmp_path):
        report = generate_report([success()])
        path = tmp_path / "report.json"

        export_report_json(report, str(path))

        loaded = json.loads(path.read_text())
        assert loaded["status"] == "PASS"
        assert loaded["tables"][0]["conflict_key"] == ["id"]

    def test_export_csv(self, tmp_path):
        report = generate_report([success(columns_added=["a", "b"]), success("logs", key=())])
        path = tmp_path / "report.csv"

        export_report_csv(report, str(path))

        with open(path, newline="") as f:
            rows = list(csv.reader(f))
        assert rows[0][:5] == ["Table", "Status", "Total Rows", "Rows Processed", "Conflict Key"]
        assert rows[1][0] == "users"
        assert rows[1][4] == "id"
        assert rows[1][5] == "a,b"
        assert rows[2][4] == "none"

    def test_console_format(self):
        report = generate_report([success(columns_added=["email"]), failure()])

        output = format_report_console(report)

        assert "REPLICATION REPORT" in output
        assert "Status: PARTIAL" in output
        assert "Rows Copied: 12,050" in output
        assert "users: SUCCESS (12,000/12,000 rows, conflict key: id)" in output
        assert "Columns added: email" in output
        assert "Error: DataCopyError: connection dropped" in output
        assert "RECOMMENDATIONS" in output

    def test_console_format_no_data(self):
        output = format_report_console(generate_report([]))

        assert "Status: NO_DATA" in output
        assert "TABLES" not in output
        assert "FAILURES" not in output

"""
Report renderers: JSON file, per-table CSV file, or console text.
"""

import csv
import json
from typing import Any

RULE_WIDTH = 80


def _key_label(table: dict[str, Any]) -> str:
    return ",".join(table.get("conflict_key", [])) or "none"


# CSV header -> value taken from one entry of report["tables"]
CSV_COLUMNS = {
    "Table": lambda t: t.get("table", ""),
    "Status": lambda t: t.get("status", ""),
    "Total Rows": lambda t: t.get("total_rows", 0),
    "Rows Processed": lambda t: t.get("rows_processed", 0),
    "Conflict Key": _key_label,
    "Columns Added": lambda t: ",".join(t.get("columns_added", [])),
    "Created": lambda t: t.get("created", False),
    "Duration Seconds": lambda t: t.get("duration_seconds", 0.0),
    "Error": lambda t: t.get("error") or "",
}


def export_report_json(report: dict[str, Any], output_path: str) -> None:
    with open(output_path, 'w') as f:
        json.dump(report, f, indent=2, default=str)


def export_report_csv(report: dict[str, Any], output_path: str) -> None:
    """Write one CSV row per table; run-level totals are left to the JSON report."""
    with open(output_path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(CSV_COLUMNS)
        writer.writerows(
            [value(table) for value in CSV_COLUMNS.values()]
            for table in report.get("tables", [])
        )


def _section(title: str, body: list[str]) -> list[str]:
    return [title, "-" * RULE_WIDTH, *body]


def format_report_console(report: dict[str, Any]) -> str:
    """
    Plain-text rendering of a report

    Sections without content (tables, failures, recommendations) are omitted.
    """
    rule = "=" * RULE_WIDTH
    lines = [
        rule,
        "REPLICATION REPORT",
        rule,
        f"Status: {report['status']}",
        f"Timestamp: {report['timestamp']}",
        f"Total Tables: {report['total_tables']}",
        f"Tables Succeeded: {report['tables_succeeded']}",
        f"Tables Failed: {report['tables_failed']}",
        f"Tables Created: {report['tables_created']}",
        f"Columns Added: {report['columns_added']}",
        f"Rows Copied: {report['total_rows_copied']:,}",
        "",
        *_section("SUMMARY", [report['summary'], ""]),
    ]

    if report['tables']:
        body = []
        for table in report['tables']:
            body.append(
                f"{table['table']}: {table['status']} "
                f"({table.get('rows_processed', 0):,}/{table.get('total_rows', 0):,} rows, "
                f"conflict key: {_key_label(table)})"
            )
            if table.get('columns_added'):
                body.append(f"  Columns added: {', '.join(table['columns_added'])}")
        lines += _section("TABLES", body + [""])

    if report['failures']:
        body = []
        for failure in report['failures']:
            body += [
                f"Table: {failure['table']}",
                f"  Error: {failure['error_type']}: {failure['error']}",
                "",
            ]
        lines += _section("FAILURES", body)

    if report['recommendations']:
        numbered = [f"{i}. {rec}" for i, rec in enumerate(report['recommendations'], 1)]
        lines += _section("RECOMMENDATIONS", numbered + [""])

    lines.append(rule)
    return "\n".join(lines)

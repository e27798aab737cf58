"""
Report generation for replication runs.

Turns the per-table results of a run into a summary report with an overall
status, totals, per-table details, failures and recommended follow-ups.
"""

from datetime import datetime, timezone
from typing import Any


class RunStatus:
    """Constants for the overall run status."""

    PASS = "PASS"
    PARTIAL = "PARTIAL"
    FAIL = "FAIL"
    NO_DATA = "NO_DATA"


def _as_dict(result: Any) -> dict[str, Any]:
    return result.to_dict() if hasattr(result, "to_dict") else dict(result)


def format_timestamp(timestamp: datetime) -> str:
    """
    Format timestamp for reports

    Args:
        timestamp: DateTime object

    Returns:
        ISO 8601 formatted timestamp string
    """
    return timestamp.isoformat()


def generate_report(table_results: list[Any]) -> dict[str, Any]:
    """
    Generate a replication report from per-table results

    Args:
        table_results: TableResult objects (or their to_dict() form)

    Returns:
        Dictionary containing:
        - status: PASS, PARTIAL, FAIL, or NO_DATA
        - total_tables: Number of tables attempted
        - tables_succeeded / tables_failed / tables_created
        - total_rows_copied: Sum of rows processed
        - columns_added: Total columns added to destination tables
        - tables: Per-table details
        - failures: Failed tables with error details
        - keyless_tables: Tables replicated without a conflict key
        - summary: Human-readable summary
        - recommendations: List of recommended actions
        - timestamp: Report generation timestamp
        - duration_seconds: Sum of per-table durations
    """
    timestamp = format_timestamp(datetime.now(timezone.utc))

    if not table_results:
        return {
            "status": RunStatus.NO_DATA,
            "total_tables": 0,
            "tables_succeeded": 0,
            "tables_failed": 0,
            "tables_created": 0,
            "total_rows_copied": 0,
            "columns_added": 0,
            "tables": [],
            "failures": [],
            "keyless_tables": [],
            "summary": "No tables were replicated",
            "recommendations": [],
            "timestamp": timestamp,
            "duration_seconds": 0.0,
        }

    tables = [_as_dict(result) for result in table_results]

    failures = [
        {
            "table": table["table"],
            "error": table.get("error"),
            "error_type": table.get("error_type"),
        }
        for table in tables
        if table.get("status") != "SUCCESS"
    ]
    succeeded = len(tables) - len(failures)
    keyless = [
        table["table"]
        for table in tables
        if table.get("status") == "SUCCESS" and not table.get("conflict_key")
    ]

    if not failures:
        status = RunStatus.PASS
    elif succeeded:
        status = RunStatus.PARTIAL
    else:
        status = RunStatus.FAIL

    return {
        "status": status,
        "total_tables": len(tables),
        "tables_succeeded": succeeded,
        "tables_failed": len(failures),
        "tables_created": sum(1 for table in tables if table.get("created")),
        "total_rows_copied": sum(table.get("rows_processed", 0) for table in tables),
        "columns_added": sum(len(table.get("columns_added", [])) for table in tables),
        "tables": tables,
        "failures": failures,
        "keyless_tables": keyless,
        "summary": _generate_summary(len(tables), succeeded, len(failures)),
        "recommendations": _generate_recommendations(failures, keyless),
        "timestamp": timestamp,
        "duration_seconds": round(sum(t.get("duration_seconds", 0.0) for t in tables), 3),
    }


def _generate_summary(total_tables: int, succeeded: int, failed: int) -> str:
    """
    Generate human-readable summary

    Args:
        total_tables: Total number of tables attempted
        succeeded: Number of tables replicated
        failed: Number of tables that failed
    """
    if failed == 0:
        return f"All {total_tables} tables replicated successfully."
    return (
        f"Replication failed for {failed} of {total_tables} tables. "
        f"{succeeded} tables replicated successfully."
    )


def _generate_recommendations(
    failures: list[dict[str, Any]],
    keyless_tables: list[str],
) -> list[str]:
    """
    Generate follow-up actions

    Args:
        failures: Failed table entries
        keyless_tables: Tables copied with plain INSERTs
    """
    recommendations = []

    if failures:
        recommendations.append(
            f"Re-run replication for {len(failures)} failed table(s). Keyed tables "
            "resume safely because rows are upserted on their conflict key."
        )

        schema_failures = [f for f in failures if f.get("error_type") == "SchemaMutationError"]
        if schema_failures:
            recommendations.append(
                "Destination rejected schema changes for: "
                f"{', '.join(f['table'] for f in schema_failures)}. "
                "Check for conflicting column definitions or missing privileges."
            )

    if keyless_tables:
        recommendations.append(
            f"{len(keyless_tables)} table(s) have no primary key or unique index "
            f"({', '.join(keyless_tables)}); every re-run appends their rows again. "
            "Add a key or exclude them from periodic runs."
        )

    if not recommendations:
        recommendations.append(
            "Destination is in sync with the source as of this run."
        )

    return recommendations

"""
Replication report generation and formatting.

Builds a run summary from per-table results and renders it as console text,
JSON, or CSV.
"""

from .formatters import export_report_csv, export_report_json, format_report_console
from .generator import RunStatus, format_timestamp, generate_report

__all__ = [
    'generate_report',
    'format_timestamp',
    'RunStatus',
    'export_report_json',
    'export_report_csv',
    'format_report_console',
]

"""
Distributed tracing using OpenTelemetry.

Instruments:
- Per-table replication runs
- Destination DDL application
- Paginated page copies

Spans are no-ops until initialize_tracing() configures an exporter.
"""

from .spans import add_span_attributes, trace_operation
from .tracer import (
    get_tracer,
    initialize_tracing,
    is_tracing_initialized,
    shutdown_tracing,
)

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "is_tracing_initialized",
    "shutdown_tracing",
    "trace_operation",
    "add_span_attributes",
]

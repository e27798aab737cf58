"""
Span helpers used across the replication code.

Attribute values keep their type when OpenTelemetry accepts it (str, bool,
int, float and homogeneous sequences of those); anything else is recorded
as its string form.
"""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .tracer import get_tracer

_PRIMITIVES = (str, bool, int, float)


def _attribute_value(value: Any) -> Any:
    if isinstance(value, _PRIMITIVES):
        return value
    if isinstance(value, Sequence) and value and all(isinstance(v, str) for v in value):
        return list(value)
    return str(value)


def _set_attributes(span: trace.Span, attributes: dict[str, Any]) -> None:
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, _attribute_value(value))


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes: Any,
) -> Iterator[trace.Span]:
    """
    Run the block inside a new span

    An exception escaping the block marks the span as failed, records the
    exception on it, and is re-raised unchanged.

    Example:
        >>> with trace_operation("replicate_page", table="users", offset=5000):
        ...     copy_page()
    """
    with get_tracer().start_as_current_span(
        operation_name,
        kind=kind,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        _set_attributes(span, attributes)
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, f"{type(e).__name__}: {e}"))
            raise


def add_span_attributes(**attributes: Any) -> None:
    """Attach attributes to whichever span is current, if it is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        _set_attributes(span, attributes)

"""
OpenTelemetry provider setup.

Nothing is exported until initialize_tracing() is given an OTLP endpoint (or
OTLP_ENDPOINT is set); before that, spans go to OpenTelemetry's default
no-op provider, so a run without a collector pays nothing for tracing.
"""

import logging
import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "mysql-replicate"

_provider: TracerProvider | None = None


def initialize_tracing(
    service_name: str = DEFAULT_SERVICE_NAME,
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Install a TracerProvider that exports replication spans

    Args:
        service_name: service.name resource attribute
        otlp_endpoint: gRPC collector address such as "localhost:4317";
            defaults to the OTLP_ENDPOINT environment variable
        console_export: Also print finished spans to stdout

    Returns:
        Tracer bound to the new provider
    """
    global _provider

    if _provider is not None:
        logger.warning("Tracing already initialized")
        return _provider.get_tracer(service_name)

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))

    otlp_endpoint = otlp_endpoint or os.getenv("OTLP_ENDPOINT")
    if otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
        logger.info(f"Exporting traces to {otlp_endpoint}")

    if console_export:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    if not otlp_endpoint and not console_export:
        logger.warning("Tracing initialized without an exporter; spans will be dropped")

    trace.set_tracer_provider(provider)
    _provider = provider
    return provider.get_tracer(service_name)


def get_tracer() -> trace.Tracer:
    """Tracer from the installed provider, or from the global no-op one."""
    if _provider is not None:
        return _provider.get_tracer(DEFAULT_SERVICE_NAME)
    return trace.get_tracer(DEFAULT_SERVICE_NAME)


def is_tracing_initialized() -> bool:
    return _provider is not None


def shutdown_tracing() -> None:
    """Flush pending spans; safe to call when tracing was never initialized."""
    global _provider

    if _provider is None:
        return

    provider, _provider = _provider, None
    try:
        provider.shutdown()
    except Exception as e:
        logger.error(f"Error flushing traces: {e}")
    else:
        logger.info("Tracing shut down")

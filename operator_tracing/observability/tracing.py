"""
OpenTelemetry tracer provider setup.

Spans are only exported when an OTLP endpoint is configured; otherwise they
are created and closed locally so propagation keeps working.
"""

from typing import Optional

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from ..config.settings import Settings

logger = structlog.get_logger(__name__)

INSTRUMENTATION_NAME = "operator_tracing"

_provider: Optional[TracerProvider] = None


def init_tracing(settings: Settings) -> trace.Tracer:
    """
    Initialize the global tracer provider and return the operator tracer.

    Args:
        settings: Operator settings
    """
    global _provider

    resource = Resource.create({
        "service.name": settings.service_name,
        "service.version": settings.version,
        "deployment.environment": settings.environment,
    })
    provider = TracerProvider(resource=resource)

    if settings.tracing.otlp_endpoint:
        exporter = OTLPSpanExporter(
            endpoint=settings.tracing.otlp_endpoint,
            insecure=settings.tracing.otlp_insecure,
        )
        provider.add_span_processor(BatchSpanProcessor(exporter))
        logger.info("tracing.exporter_configured", endpoint=settings.tracing.otlp_endpoint)
    else:
        logger.warning("tracing.exporter_disabled", reason="no OTLP endpoint configured")

    trace.set_tracer_provider(provider)
    _provider = provider

    return provider.get_tracer(INSTRUMENTATION_NAME, settings.version)


def shutdown_tracing() -> None:
    """Flush and shut down the tracer provider."""
    global _provider
    if _provider is not None:
        _provider.shutdown()
        _provider = None

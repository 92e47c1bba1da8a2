"""
Trace context carrier stored as a resource annotation.

The reconcilers never call each other, so the causal link between their
spans travels on the resources themselves: a W3C ``traceparent`` value is
written once into an annotation and read back by every later reconcile
that wants to parent a span on it.
"""

from contextlib import contextmanager
from typing import Dict, Iterator, Mapping, Optional

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import NonRecordingSpan, Span, SpanContext, Status, StatusCode
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator
from opentelemetry.util.types import Attributes
from pydantic import BaseModel, ConfigDict, Field

from ..errors import TraceSerializationError

TRACEPARENT = "traceparent"
DEFAULT_ANNOTATION_KEY = TRACEPARENT

_propagator = TraceContextTextMapPropagator()


class TraceCarrier(BaseModel):
    """Serialized trace context; consumers pass it through inject/extract only."""

    model_config = ConfigDict(frozen=True)

    traceparent: str = Field(min_length=1)

    @classmethod
    def from_annotations(
        cls, annotations: Optional[Mapping[str, str]], key: str = DEFAULT_ANNOTATION_KEY
    ) -> "TraceCarrier":
        value = (annotations or {}).get(key)
        if not value:
            raise TraceSerializationError(f"annotation {key!r} is missing or empty")
        return cls(traceparent=value)

    def to_annotations(self, key: str = DEFAULT_ANNOTATION_KEY) -> Dict[str, str]:
        return {key: self.traceparent}

    def as_headers(self) -> Dict[str, str]:
        return {TRACEPARENT: self.traceparent}


def inject(span_context: SpanContext) -> TraceCarrier:
    """
    Serialize a span context into a carrier.

    Raises:
        TraceSerializationError: the context is invalid or the propagator
            produced no value
    """
    if span_context is None or not span_context.is_valid:
        raise TraceSerializationError("cannot inject an invalid span context")

    headers: Dict[str, str] = {}
    _propagator.inject(headers, context=trace.set_span_in_context(NonRecordingSpan(span_context)))

    value = headers.get(TRACEPARENT)
    if not value:
        raise TraceSerializationError("propagator did not produce a traceparent")
    return TraceCarrier(traceparent=value)


def extract(carrier: Optional[TraceCarrier]) -> SpanContext:
    """
    Deserialize a carrier into a remote span context usable as a parent.

    Raises:
        TraceSerializationError: the carrier is absent or malformed
    """
    if carrier is None:
        raise TraceSerializationError("no trace carrier available")

    ctx = _propagator.extract(carrier.as_headers())
    span_context = trace.get_current_span(ctx).get_span_context()
    if not span_context.is_valid:
        raise TraceSerializationError(f"malformed traceparent {carrier.traceparent!r}")
    return span_context


@contextmanager
def start_child_span(
    tracer: trace.Tracer,
    operation_name: str,
    parent: Optional[SpanContext] = None,
    attributes: Attributes = None,
) -> Iterator[Span]:
    """
    Start a span under ``parent`` (or a new root) and end it on exit.

    The span is ended on every exit path. An exception raised inside the
    block is recorded on the span, marks it as an error and propagates.
    """
    if parent is not None:
        context = trace.set_span_in_context(NonRecordingSpan(parent))
    else:
        # empty context: never inherit whatever span happens to be current
        context = Context()

    span = tracer.start_span(operation_name, context=context, attributes=attributes)
    try:
        yield span
    except Exception as exc:
        span.record_exception(exc)
        span.set_status(Status(StatusCode.ERROR, str(exc)))
        raise
    finally:
        span.end()

"""Spans parented on the trace context stored in a resource's annotations."""

from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from opentelemetry import trace
from opentelemetry.trace import Span, SpanContext

from .carrier import DEFAULT_ANNOTATION_KEY, TraceCarrier, extract, start_child_span
from ..errors import TraceSerializationError
from ..models.resources import KubernetesResource
from ..observability.metrics import operator_metrics

logger = structlog.get_logger(__name__)


class ResourceSpanFactory:
    """Opens spans for mutations performed on behalf of a resource."""

    def __init__(self, tracer: trace.Tracer, annotation_key: str = DEFAULT_ANNOTATION_KEY):
        self.tracer = tracer
        self.annotation_key = annotation_key

    def parent_context(self, resource: KubernetesResource) -> Optional[SpanContext]:
        """Recover the stored trace context; None when there is nothing usable."""
        try:
            carrier = TraceCarrier.from_annotations(resource.metadata.annotations, self.annotation_key)
            return extract(carrier)
        except TraceSerializationError as e:
            operator_metrics.record_propagation_failure(direction="extract", kind=resource.KIND)
            logger.warning(
                "trace.extract_failed",
                kind=resource.KIND,
                resource=str(resource.identity),
                annotation=self.annotation_key,
                error=str(e),
            )
            return None

    @contextmanager
    def start_for(self, resource: KubernetesResource, operation: str) -> Iterator[Span]:
        parent = self.parent_context(resource)
        attributes = {
            "k8s.resource.kind": resource.KIND,
            "k8s.namespace.name": resource.metadata.namespace,
            "k8s.resource.name": resource.metadata.name,
        }
        with start_child_span(self.tracer, operation, parent, attributes) as span:
            yield span

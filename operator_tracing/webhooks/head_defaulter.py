"""
Defaulting hook stamping a trace context onto new Head resources.

Runs before a Head is persisted. On the create path it starts the root span
of the Head's trace and writes its context into the trace annotation; every
later reconcile of the Head and of the resources derived from it parents its
spans on that value.

Known race: two concurrent creates of the same Head can both see "not found"
and stamp different roots. Only one create is persisted by the API server,
so the stored resource still carries exactly one trace context.
"""

import structlog
from opentelemetry import trace

from ..clients.kubernetes_client import ClusterClient
from ..errors import ClusterError, NotFoundError, TraceSerializationError
from ..models.resources import Head
from ..observability.metrics import operator_metrics
from ..propagation.carrier import DEFAULT_ANNOTATION_KEY, inject, start_child_span

logger = structlog.get_logger(__name__)

ROOT_OPERATION = "get-head"


class HeadTraceDefaulter:
    """Injects the trace annotation once per Head and keeps it stable afterwards."""

    def __init__(
        self,
        client: ClusterClient,
        tracer: trace.Tracer,
        annotation_key: str = DEFAULT_ANNOTATION_KEY,
    ):
        self.client = client
        self.tracer = tracer
        self.annotation_key = annotation_key

    async def default(self, head: Head) -> Head:
        """
        Apply the trace annotation to ``head`` in place and return it.

        Never raises: failures leave the resource as it was (fail open).
        """
        log = logger.bind(namespace=head.metadata.namespace, name=head.metadata.name)

        if not head.metadata.name:
            # generateName: no stored copy can exist yet
            log.info("head_defaulter.generated_name")
            return self._inject_root(head, log)

        try:
            current = await self.client.get(Head, head.metadata.namespace, head.metadata.name)
        except NotFoundError:
            log.info("head_defaulter.head_not_found", action="inject")
            return self._inject_root(head, log)
        except ClusterError as e:
            log.warning("head_defaulter.lookup_failed", error=str(e))
            return head

        log.info("head_defaulter.head_found", action="keep")
        stored = current.metadata.annotations.get(self.annotation_key)
        incoming = head.metadata.annotations.get(self.annotation_key)
        if stored and incoming != stored:
            # the established trace identity is immutable: dropped or rewritten values are reset
            head.metadata.annotations = {**head.metadata.annotations, self.annotation_key: stored}
            log.info("head_defaulter.annotation_restored", rejected=incoming)
        return head

    def _inject_root(self, head: Head, log) -> Head:
        with start_child_span(
            self.tracer,
            ROOT_OPERATION,
            attributes={
                "k8s.resource.kind": Head.KIND,
                "k8s.namespace.name": head.metadata.namespace,
                "k8s.resource.name": head.metadata.name,
            },
        ) as span:
            try:
                carrier = inject(span.get_span_context())
            except TraceSerializationError as e:
                operator_metrics.record_propagation_failure(direction="inject", kind=Head.KIND)
                log.warning("head_defaulter.inject_failed", error=str(e))
                return head

        head.metadata.annotations = {
            **head.metadata.annotations,
            **carrier.to_annotations(self.annotation_key),
        }
        operator_metrics.trace_injections_total.inc()
        log.info("head_defaulter.trace_injected", annotation=self.annotation_key, traceparent=carrier.traceparent)
        return head

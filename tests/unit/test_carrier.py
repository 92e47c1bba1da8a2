"""Tests for the trace context carrier."""

import pytest
from opentelemetry.trace import INVALID_SPAN_CONTEXT, StatusCode

from operator_tracing.errors import TraceSerializationError
from operator_tracing.propagation.carrier import (
    TraceCarrier,
    extract,
    inject,
    start_child_span,
)

TRACEPARENT = "00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01"


class TestInjectExtract:
    def test_inject_writes_w3c_traceparent(self, tracer):
        span = tracer.start_span("root")
        context = span.get_span_context()
        span.end()

        carrier = inject(context)

        assert carrier.traceparent == (
            f"00-{context.trace_id:032x}-{context.span_id:016x}-{context.trace_flags:02x}"
        )

    def test_inject_rejects_invalid_context(self):
        with pytest.raises(TraceSerializationError):
            inject(INVALID_SPAN_CONTEXT)

    def test_extract_recovers_remote_parent(self):
        context = extract(TraceCarrier(traceparent=TRACEPARENT))

        assert context.trace_id == 0x0AF7651916CD43DD8448EB211C80319C
        assert context.span_id == 0xB7AD6B7169203331
        assert context.is_remote

    def test_extract_then_inject_is_stable(self):
        carrier = TraceCarrier(traceparent=TRACEPARENT)

        assert inject(extract(carrier)) == carrier

    def test_extract_without_carrier_fails(self):
        with pytest.raises(TraceSerializationError):
            extract(None)

    @pytest.mark.parametrize("value", ["garbage", "00-zz-yy-01", "00-00000000000000000000000000000000-b7ad6b7169203331-01"])
    def test_extract_malformed_value_fails(self, value):
        with pytest.raises(TraceSerializationError):
            extract(TraceCarrier(traceparent=value))


class TestAnnotations:
    def test_from_annotations_reads_configured_key(self):
        carrier = TraceCarrier.from_annotations({"trace": TRACEPARENT, "other": "x"}, key="trace")

        assert carrier.traceparent == TRACEPARENT
        assert carrier.to_annotations("trace") == {"trace": TRACEPARENT}

    @pytest.mark.parametrize("annotations", [None, {}, {"traceparent": ""}])
    def test_from_annotations_missing_value_fails(self, annotations):
        with pytest.raises(TraceSerializationError):
            TraceCarrier.from_annotations(annotations)


class TestStartChildSpan:
    def test_span_is_parented_and_ended(self, tracer, span_exporter):
        parent = extract(TraceCarrier(traceparent=TRACEPARENT))

        with start_child_span(tracer, "create-child", parent, {"k8s.resource.name": "demo"}):
            assert span_exporter.get_finished_spans() == ()

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "create-child"
        assert span.context.trace_id == parent.trace_id
        assert span.parent.span_id == parent.span_id
        assert span.attributes["k8s.resource.name"] == "demo"

    def test_without_parent_starts_new_root(self, tracer, span_exporter):
        with tracer.start_as_current_span("ambient") as ambient:
            with start_child_span(tracer, "get-head") as span:
                assert span.get_span_context().trace_id != ambient.get_span_context().trace_id

        root = next(s for s in span_exporter.get_finished_spans() if s.name == "get-head")
        assert root.parent is None

    def test_exception_is_recorded_and_propagated(self, tracer, span_exporter):
        with pytest.raises(RuntimeError):
            with start_child_span(tracer, "create-deploy"):
                raise RuntimeError("boom")

        (span,) = span_exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR
        assert span.events[0].name == "exception"
        assert span.end_time is not None

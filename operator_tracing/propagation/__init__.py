"""Trace context propagation through resource annotations."""

from .carrier import (
    DEFAULT_ANNOTATION_KEY,
    TraceCarrier,
    extract,
    inject,
    start_child_span,
)
from .spans import ResourceSpanFactory

__all__ = [
    "DEFAULT_ANNOTATION_KEY",
    "ResourceSpanFactory",
    "TraceCarrier",
    "extract",
    "inject",
    "start_child_span",
]

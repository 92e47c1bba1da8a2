"""Error taxonomy for the operator.

Cluster calls raise ``ClusterError`` subclasses. ``NotFoundError`` is an
expected outcome during races with deletion and is handled by the callers;
every other failure is surfaced so the event delivery layer retries with
backoff.
"""

from typing import Optional


class OperatorError(Exception):
    """Base class for operator errors."""


class ClusterError(OperatorError):
    """A call against the cluster API failed."""

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        namespace: Optional[str] = None,
        name: Optional[str] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.status = status


class NotFoundError(ClusterError):
    """The requested resource does not exist."""


class TransientClusterError(ClusterError):
    """Get/create/update failed for infrastructure reasons (retried upstream)."""


class TraceSerializationError(OperatorError):
    """A trace context could not be injected into or extracted from a carrier."""


class OwnerReferenceError(OperatorError):
    """The controller owner reference could not be established."""

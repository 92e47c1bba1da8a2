"""
Shared reconcile state machine.

A parent resource owns exactly one child with the same name and namespace.
Each pass re-reads both from the cluster and performs at most one mutation:

    Absent -> PendingCreate -> Converged     child missing, created
    Converged -> StatusDrift -> Converged    child readiness differs from parent status
    * -> Deleting                            deletion marker seen; terminal

Failures are raised to the caller; the event delivery layer owns retries.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, Type, TypeVar

import structlog

from ..clients.kubernetes_client import ClusterClient
from ..errors import NotFoundError, OperatorError
from ..models.resources import KubernetesResource, NamespacedName
from ..observability.metrics import operator_metrics
from ..propagation.spans import ResourceSpanFactory

logger = structlog.get_logger(__name__)

P = TypeVar("P", bound=KubernetesResource)
C = TypeVar("C", bound=KubernetesResource)


class ReconcileState(str, Enum):
    NOT_FOUND = "NotFound"
    ABSENT = "Absent"
    PENDING_CREATE = "PendingCreate"
    CONVERGED = "Converged"
    STATUS_DRIFT = "StatusDrift"
    DELETING = "Deleting"


@dataclass(frozen=True)
class ReconcileResult:
    state: ReconcileState
    action: Optional[str] = None

    @property
    def mutated(self) -> bool:
        return self.action is not None


class HierarchyReconciler(Generic[P, C]):
    """Converges the child owned by a parent and mirrors its readiness into the parent status."""

    controller_name: str = ""
    parent_kind: Type[P]
    child_kind: Type[C]
    create_operation: str = ""
    ready_operation_prefix: str = ""

    def __init__(self, client: ClusterClient, spans: ResourceSpanFactory):
        self.client = client
        self.spans = spans

    def desired_child(self, parent: P) -> C:
        raise NotImplementedError

    def child_ready(self, child: C) -> bool:
        raise NotImplementedError

    async def reconcile(self, identity: NamespacedName) -> ReconcileResult:
        log = logger.bind(controller=self.controller_name, resource=str(identity))
        start = time.perf_counter()
        try:
            result = await self._reconcile(identity, log)
        except OperatorError as e:
            operator_metrics.record_reconcile_error(self.controller_name, type(e).__name__)
            log.error(f"{self.controller_name}.reconcile_failed", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            operator_metrics.reconcile_duration.labels(controller=self.controller_name).observe(
                time.perf_counter() - start
            )

        operator_metrics.record_reconcile(self.controller_name, result.state.value, result.action or "none")
        log.info(f"{self.controller_name}.finished", state=result.state.value, action=result.action)
        return result

    async def _reconcile(self, identity: NamespacedName, log) -> ReconcileResult:
        try:
            parent = await self.client.get(self.parent_kind, identity.namespace, identity.name)
        except NotFoundError:
            log.info(f"{self.controller_name}.parent_not_found")
            return ReconcileResult(ReconcileState.NOT_FOUND)

        if parent.metadata.is_deleting:
            log.info(f"{self.controller_name}.parent_deleting")
            return ReconcileResult(ReconcileState.DELETING)

        desired = self.desired_child(parent)
        self.client.set_owner_reference(parent, desired)

        try:
            existing = await self.client.get(
                self.child_kind, desired.metadata.namespace, desired.metadata.name
            )
        except NotFoundError:
            return await self._create_child(parent, desired, log)

        is_ready = self.child_ready(existing)
        if is_ready == parent.status.ready:
            return ReconcileResult(ReconcileState.CONVERGED)

        return await self._update_parent_status(parent, is_ready, log)

    async def _create_child(self, parent: P, desired: C, log) -> ReconcileResult:
        log.info(
            f"{self.controller_name}.child_absent",
            state=ReconcileState.PENDING_CREATE.value,
            child_kind=self.child_kind.KIND,
        )
        with self.spans.start_for(parent, self.create_operation):
            await self.client.create(desired)
        return ReconcileResult(ReconcileState.CONVERGED, self.create_operation)

    async def _update_parent_status(self, parent: P, is_ready: bool, log) -> ReconcileResult:
        log.info(
            f"{self.controller_name}.status_drift",
            state=ReconcileState.STATUS_DRIFT.value,
            observed_ready=parent.status.ready,
            child_ready=is_ready,
        )
        operation = f"{self.ready_operation_prefix}-{str(is_ready).lower()}"
        parent.status.ready = is_ready
        with self.spans.start_for(parent, operation):
            await self.client.update_status(parent)
        return ReconcileResult(ReconcileState.CONVERGED, operation)

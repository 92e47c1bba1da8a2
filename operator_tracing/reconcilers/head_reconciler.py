"""Head loop: owns a ChildA and mirrors ChildA.status.ready into Head.status.ready."""

from .base import HierarchyReconciler
from ..clients.kubernetes_client import ClusterClient
from ..models.resources import ChildA, Head, build_child_from_head
from ..propagation.spans import ResourceSpanFactory


class HeadReconciler(HierarchyReconciler[Head, ChildA]):
    controller_name = "head_reconciler"
    parent_kind = Head
    child_kind = ChildA
    create_operation = "create-child"
    ready_operation_prefix = "head-ready"

    def __init__(self, client: ClusterClient, spans: ResourceSpanFactory):
        super().__init__(client, spans)
        # the ChildA inherits the Head's trace context under the same key
        self.annotation_key = spans.annotation_key

    def desired_child(self, parent: Head) -> ChildA:
        return build_child_from_head(parent, self.annotation_key)

    def child_ready(self, child: ChildA) -> bool:
        return child.status.ready

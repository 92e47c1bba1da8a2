"""ChildA loop: owns a Deployment and mirrors its readiness into ChildA.status.ready."""

from .base import HierarchyReconciler
from ..models.resources import ChildA, Deployment, build_deployment_from_child


class ChildAReconciler(HierarchyReconciler[ChildA, Deployment]):
    controller_name = "childa_reconciler"
    parent_kind = ChildA
    child_kind = Deployment
    create_operation = "create-deploy"
    ready_operation_prefix = "child-ready"

    def desired_child(self, parent: ChildA) -> Deployment:
        return build_deployment_from_child(parent)

    def child_ready(self, child: Deployment) -> bool:
        return child.status.is_ready

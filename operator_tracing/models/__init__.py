from .resources import (
    ChildA,
    Deployment,
    DeploymentStatus,
    Head,
    KubernetesResource,
    NamespacedName,
    ObjectMeta,
    OwnerReference,
    build_child_from_head,
    build_deployment_from_child,
)
from .ownership import set_controller_reference

__all__ = [
    "ChildA",
    "Deployment",
    "DeploymentStatus",
    "Head",
    "KubernetesResource",
    "NamespacedName",
    "ObjectMeta",
    "OwnerReference",
    "build_child_from_head",
    "build_deployment_from_child",
    "set_controller_reference",
]

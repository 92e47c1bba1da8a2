"""
Resource schemas for the Head → ChildA → Deployment hierarchy.

Models parse the camelCase manifests returned by the Kubernetes API and
render them back with ``to_manifest()``. Unknown fields are ignored, so a
full Deployment read from the cluster parses into the narrow view the
reconcilers need.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

GROUP = "dummy.example.com"
VERSION = "v1alpha1"

APP_LABEL = "app"
APP_LABEL_VALUE = "demo"
PARENT_LABEL = "parent"
MAIN_CONTAINER = "main"


@dataclass(frozen=True)
class NamespacedName:
    """Identity of a namespaced resource."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class OwnerReference(_Schema):
    api_version: str = Field(alias="apiVersion")
    kind: str
    name: str
    uid: str
    controller: bool = False
    block_owner_deletion: bool = Field(default=False, alias="blockOwnerDeletion")


class ObjectMeta(_Schema):
    name: str = ""
    namespace: str = "default"
    uid: Optional[str] = None
    resource_version: Optional[str] = Field(default=None, alias="resourceVersion")
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    owner_references: List[OwnerReference] = Field(default_factory=list, alias="ownerReferences")
    deletion_timestamp: Optional[datetime] = Field(default=None, alias="deletionTimestamp")

    @property
    def is_deleting(self) -> bool:
        return self.deletion_timestamp is not None

    def controller_reference(self) -> Optional[OwnerReference]:
        for reference in self.owner_references:
            if reference.controller:
                return reference
        return None


class KubernetesResource(_Schema):
    """Base for every resource handled by the operator."""

    GROUP: ClassVar[str] = ""
    VERSION: ClassVar[str] = ""
    KIND: ClassVar[str] = ""
    PLURAL: ClassVar[str] = ""

    metadata: ObjectMeta = Field(default_factory=ObjectMeta)

    @classmethod
    def api_version(cls) -> str:
        return f"{cls.GROUP}/{cls.VERSION}" if cls.GROUP else cls.VERSION

    @classmethod
    def from_manifest(cls, manifest: Dict[str, Any]):
        return cls.model_validate(manifest)

    def to_manifest(self) -> Dict[str, Any]:
        body = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        return {"apiVersion": self.api_version(), "kind": self.KIND, **body}

    @property
    def identity(self) -> NamespacedName:
        return NamespacedName(self.metadata.namespace, self.metadata.name)


class ReadinessStatus(_Schema):
    ready: bool = False


class HeadSpec(_Schema):
    child_image: str = Field(default="", alias="childImage")


class Head(KubernetesResource):
    GROUP: ClassVar[str] = GROUP
    VERSION: ClassVar[str] = VERSION
    KIND: ClassVar[str] = "Head"
    PLURAL: ClassVar[str] = "heads"

    spec: HeadSpec = Field(default_factory=HeadSpec)
    status: ReadinessStatus = Field(default_factory=ReadinessStatus)


class ChildASpec(_Schema):
    image: str = ""


class ChildA(KubernetesResource):
    GROUP: ClassVar[str] = GROUP
    VERSION: ClassVar[str] = VERSION
    KIND: ClassVar[str] = "ChildA"
    PLURAL: ClassVar[str] = "childas"

    spec: ChildASpec = Field(default_factory=ChildASpec)
    status: ReadinessStatus = Field(default_factory=ReadinessStatus)


class Container(_Schema):
    name: str
    image: str = ""


class PodSpec(_Schema):
    containers: List[Container] = Field(default_factory=list)


class TemplateMeta(_Schema):
    labels: Dict[str, str] = Field(default_factory=dict)


class PodTemplateSpec(_Schema):
    metadata: TemplateMeta = Field(default_factory=TemplateMeta)
    spec: PodSpec = Field(default_factory=PodSpec)


class LabelSelector(_Schema):
    match_labels: Dict[str, str] = Field(default_factory=dict, alias="matchLabels")


class DeploymentSpec(_Schema):
    replicas: Optional[int] = None
    selector: LabelSelector = Field(default_factory=LabelSelector)
    template: PodTemplateSpec = Field(default_factory=PodTemplateSpec)


class DeploymentStatus(_Schema):
    replicas: Optional[int] = None
    ready_replicas: Optional[int] = Field(default=None, alias="readyReplicas")

    @property
    def is_ready(self) -> bool:
        # the API server omits zero counters
        replicas = self.replicas or 0
        ready_replicas = self.ready_replicas or 0
        return replicas > 0 and ready_replicas == replicas


class Deployment(KubernetesResource):
    GROUP: ClassVar[str] = "apps"
    VERSION: ClassVar[str] = "v1"
    KIND: ClassVar[str] = "Deployment"
    PLURAL: ClassVar[str] = "deployments"

    spec: DeploymentSpec = Field(default_factory=DeploymentSpec)
    status: DeploymentStatus = Field(default_factory=DeploymentStatus)

    def to_manifest(self) -> Dict[str, Any]:
        manifest = super().to_manifest()
        # status belongs to the deployment controller
        manifest.pop("status", None)
        return manifest


def build_child_from_head(head: Head, annotation_key: str) -> ChildA:
    """Desired ChildA for a Head; only the trace annotation is carried over."""
    annotations = {}
    if annotation_key in head.metadata.annotations:
        annotations[annotation_key] = head.metadata.annotations[annotation_key]

    return ChildA(
        metadata=ObjectMeta(
            name=head.metadata.name,
            namespace=head.metadata.namespace,
            annotations=annotations,
        ),
        spec=ChildASpec(image=head.spec.child_image),
    )


def build_deployment_from_child(child: ChildA) -> Deployment:
    """Desired Deployment for a ChildA."""
    labels = {APP_LABEL: APP_LABEL_VALUE, PARENT_LABEL: child.metadata.name}

    return Deployment(
        metadata=ObjectMeta(
            name=child.metadata.name,
            namespace=child.metadata.namespace,
            labels=dict(labels),
        ),
        spec=DeploymentSpec(
            selector=LabelSelector(match_labels=dict(labels)),
            template=PodTemplateSpec(
                metadata=TemplateMeta(labels=dict(labels)),
                spec=PodSpec(containers=[Container(name=MAIN_CONTAINER, image=child.spec.image)]),
            ),
        ),
    )

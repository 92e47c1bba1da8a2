"""
Root pytest configuration for the operator tests.

Provides an in-memory cluster standing in for the Kubernetes API and a
tracer wired to an in-memory span exporter.
"""

import copy
import itertools
from typing import Any, Dict, List, Optional, Tuple, Type

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from operator_tracing.errors import NotFoundError, TransientClusterError
from operator_tracing.models.ownership import set_controller_reference
from operator_tracing.models.resources import GROUP, VERSION, KubernetesResource
from operator_tracing.propagation.spans import ResourceSpanFactory


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: unit tests")
    config.addinivalue_line("markers", "integration: tests exercising several components together")


class InMemoryCluster:
    """
    ClusterClient keeping resources in a dict.

    Stored objects are deep copies so callers never share state with the
    "API server". ``fail(operation, kind, times)`` makes the next ``times`` matching calls
    raise TransientClusterError.
    """

    def __init__(self):
        self.objects: Dict[Tuple[str, str, str], KubernetesResource] = {}
        self.calls: List[Tuple[str, str, str, str]] = []
        self._failures: Dict[Tuple[str, str], List[Exception]] = {}
        self._uids = itertools.count(1)
        self._versions = itertools.count(1)

    def put(self, resource: KubernetesResource) -> KubernetesResource:
        """Seed a resource as if it had been created earlier."""
        stored = resource.model_copy(deep=True)
        stored.metadata.uid = stored.metadata.uid or f"uid-{next(self._uids)}"
        stored.metadata.resource_version = str(next(self._versions))
        self.objects[self._key(type(stored), stored.metadata.namespace, stored.metadata.name)] = stored
        return stored.model_copy(deep=True)

    def stored(self, kind: Type[KubernetesResource], namespace: str, name: str) -> Optional[KubernetesResource]:
        return self.objects.get(self._key(kind, namespace, name))

    def fail(
        self,
        operation: str,
        kind: Type[KubernetesResource],
        error: Optional[Exception] = None,
        times: int = 1,
    ) -> None:
        error = error or TransientClusterError(
            f"{operation} {kind.KIND} failed: 500 Internal Server Error", kind=kind.KIND, status=500
        )
        self._failures[(operation, kind.KIND)] = [error] * times

    @property
    def mutations(self) -> List[Tuple[str, str, str, str]]:
        return [call for call in self.calls if call[0] != "get"]

    async def get(self, kind, namespace, name):
        self._record("get", kind, namespace, name)
        stored = self.objects.get(self._key(kind, namespace, name))
        if stored is None:
            raise NotFoundError(f"{kind.KIND} {namespace}/{name} not found", kind=kind.KIND,
                                namespace=namespace, name=name, status=404)
        return stored.model_copy(deep=True)

    async def create(self, resource):
        kind = type(resource)
        self._record("create", kind, resource.metadata.namespace, resource.metadata.name)
        key = self._key(kind, resource.metadata.namespace, resource.metadata.name)
        if key in self.objects:
            raise TransientClusterError(f"{kind.KIND} already exists", kind=kind.KIND, status=409)
        self.put(resource)

    async def update_status(self, resource):
        kind = type(resource)
        self._record("update_status", kind, resource.metadata.namespace, resource.metadata.name)
        stored = self.objects.get(self._key(kind, resource.metadata.namespace, resource.metadata.name))
        if stored is None:
            raise NotFoundError(f"{kind.KIND} not found", kind=kind.KIND, status=404)
        stored.status = copy.deepcopy(resource.status)
        stored.metadata.resource_version = str(next(self._versions))

    async def patch_annotations(self, kind, namespace, name, annotations):
        self._record("patch", kind, namespace, name)
        stored = self.objects.get(self._key(kind, namespace, name))
        if stored is None:
            raise NotFoundError(f"{kind.KIND} not found", kind=kind.KIND, status=404)
        stored.metadata.annotations = {**stored.metadata.annotations, **annotations}
        stored.metadata.resource_version = str(next(self._versions))

    def set_owner_reference(self, owner, dependent):
        set_controller_reference(owner, dependent)

    def _record(self, operation, kind, namespace, name):
        self.calls.append((operation, kind.KIND, namespace, name))
        pending = self._failures.get((operation, kind.KIND))
        if pending:
            raise pending.pop()

    @staticmethod
    def _key(kind, namespace, name):
        return (kind.KIND, namespace, name)


@pytest.fixture
def cluster():
    return InMemoryCluster()


@pytest.fixture
def span_exporter():
    return InMemorySpanExporter()


@pytest.fixture
def tracer(span_exporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider.get_tracer("operator_tracing.tests")


@pytest.fixture
def spans(tracer):
    return ResourceSpanFactory(tracer)


@pytest.fixture
def head_manifest() -> Dict[str, Any]:
    return {
        "apiVersion": f"{GROUP}/{VERSION}",
        "kind": "Head",
        "metadata": {
            "name": "demo",
            "namespace": "default",
            "uid": "head-uid-1",
            "resourceVersion": "10",
            "annotations": {
                "traceparent": "00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01",
                "team": "payments",
            },
        },
        "spec": {"childImage": "nginx:1.25"},
        "status": {"ready": False},
    }


@pytest.fixture
def deployment_manifest() -> Dict[str, Any]:
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {
            "name": "demo",
            "namespace": "default",
            "uid": "deploy-uid-1",
            "labels": {"app": "demo", "parent": "demo"},
            "ownerReferences": [
                {
                    "apiVersion": f"{GROUP}/{VERSION}",
                    "kind": "ChildA",
                    "name": "demo",
                    "uid": "child-uid-1",
                    "controller": True,
                    "blockOwnerDeletion": True,
                }
            ],
        },
        "spec": {
            "replicas": 1,
            "selector": {"matchLabels": {"app": "demo", "parent": "demo"}},
            "template": {
                "metadata": {"labels": {"app": "demo", "parent": "demo"}},
                "spec": {"containers": [{"name": "main", "image": "nginx:1.25", "ports": []}]},
            },
        },
        "status": {"replicas": 1, "readyReplicas": 1, "observedGeneration": 2},
    }

"""Cluster client capability backed by the official Kubernetes client."""

import asyncio
from typing import Any, Dict, Optional, Protocol, Type, TypeVar

import structlog
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from ..errors import NotFoundError, TransientClusterError
from ..models.ownership import set_controller_reference
from ..models.resources import Deployment, KubernetesResource
from ..observability.metrics import operator_metrics

logger = structlog.get_logger(__name__)

R = TypeVar("R", bound=KubernetesResource)


class ClusterClient(Protocol):
    """The narrow cluster interface consumed by reconcilers and the defaulting hook."""

    async def get(self, kind: Type[R], namespace: str, name: str) -> R: ...

    async def create(self, resource: KubernetesResource) -> None: ...

    async def update_status(self, resource: KubernetesResource) -> None: ...

    async def patch_annotations(
        self, kind: Type[KubernetesResource], namespace: str, name: str, annotations: Dict[str, str]
    ) -> None: ...

    def set_owner_reference(self, owner: KubernetesResource, dependent: KubernetesResource) -> None: ...


class KubernetesClusterClient:
    """
    ClusterClient over CustomObjectsApi (Head, ChildA) and AppsV1Api (Deployment).

    Blocking API calls run in a worker thread. ApiException 404 becomes
    NotFoundError; every other failure becomes TransientClusterError.
    """

    def __init__(
        self,
        in_cluster: bool = True,
        custom_api: Optional[client.CustomObjectsApi] = None,
        apps_api: Optional[client.AppsV1Api] = None,
    ):
        """
        Args:
            in_cluster: Use the service account config instead of the local kubeconfig.
            custom_api: Pre-built CustomObjectsApi (skips connect()).
            apps_api: Pre-built AppsV1Api (skips connect()).
        """
        self.in_cluster = in_cluster
        self.custom_api = custom_api
        self.apps_api = apps_api
        self._api_client: Optional[client.ApiClient] = None

    async def connect(self) -> None:
        """Load cluster credentials and build the API objects."""
        try:
            if self.in_cluster:
                config.load_incluster_config()
            else:
                config.load_kube_config()

            self._api_client = client.ApiClient()
            self.custom_api = client.CustomObjectsApi(self._api_client)
            self.apps_api = client.AppsV1Api(self._api_client)

            logger.info("kubernetes.connected", in_cluster=self.in_cluster)
        except Exception as e:
            logger.error("kubernetes.connection_failed", error=str(e))
            raise

    def is_healthy(self) -> bool:
        return self.custom_api is not None and self.apps_api is not None

    async def get(self, kind: Type[R], namespace: str, name: str) -> R:
        self._ensure_connected(kind, namespace, name)
        if kind is Deployment:
            manifest = await self._call(
                "get", kind, namespace, name,
                self.apps_api.read_namespaced_deployment, name=name, namespace=namespace
            )
        else:
            manifest = await self._call(
                "get", kind, namespace, name,
                self.custom_api.get_namespaced_custom_object,
                group=kind.GROUP, version=kind.VERSION, namespace=namespace,
                plural=kind.PLURAL, name=name
            )
        return kind.from_manifest(manifest)

    async def create(self, resource: KubernetesResource) -> None:
        kind = type(resource)
        namespace, name = resource.metadata.namespace, resource.metadata.name
        self._ensure_connected(kind, namespace, name)
        body = resource.to_manifest()

        if kind is Deployment:
            await self._call(
                "create", kind, namespace, name,
                self.apps_api.create_namespaced_deployment, namespace=namespace, body=body
            )
        else:
            await self._call(
                "create", kind, namespace, name,
                self.custom_api.create_namespaced_custom_object,
                group=kind.GROUP, version=kind.VERSION, namespace=namespace,
                plural=kind.PLURAL, body=body
            )

        logger.info("kubernetes.created", kind=kind.KIND, namespace=namespace, name=name)

    async def update_status(self, resource: KubernetesResource) -> None:
        """Replace the status subresource; the fetched resourceVersion guards against stale writes."""
        kind = type(resource)
        namespace, name = resource.metadata.namespace, resource.metadata.name
        self._ensure_connected(kind, namespace, name)
        body = resource.to_manifest()

        if kind is Deployment:
            await self._call(
                "update_status", kind, namespace, name,
                self.apps_api.replace_namespaced_deployment_status,
                name=name, namespace=namespace, body=body
            )
        else:
            await self._call(
                "update_status", kind, namespace, name,
                self.custom_api.replace_namespaced_custom_object_status,
                group=kind.GROUP, version=kind.VERSION, namespace=namespace,
                plural=kind.PLURAL, name=name, body=body
            )

        logger.info("kubernetes.status_updated", kind=kind.KIND, namespace=namespace, name=name)

    async def patch_annotations(
        self, kind: Type[KubernetesResource], namespace: str, name: str, annotations: Dict[str, str]
    ) -> None:
        """Merge-patch metadata annotations; `spec` and `status` are left untouched."""
        self._ensure_connected(kind, namespace, name)
        body = {"metadata": {"annotations": annotations}}

        if kind is Deployment:
            await self._call(
                "patch", kind, namespace, name,
                self.apps_api.patch_namespaced_deployment,
                name=name, namespace=namespace, body=body
            )
        else:
            await self._call(
                "patch", kind, namespace, name,
                self.custom_api.patch_namespaced_custom_object,
                group=kind.GROUP, version=kind.VERSION, namespace=namespace,
                plural=kind.PLURAL, name=name, body=body
            )

        logger.debug("kubernetes.annotations_patched", kind=kind.KIND, namespace=namespace, name=name)

    def set_owner_reference(self, owner: KubernetesResource, dependent: KubernetesResource) -> None:
        set_controller_reference(owner, dependent)

    def _ensure_connected(self, kind: Type[KubernetesResource], namespace: str, name: str) -> None:
        if not self.is_healthy():
            raise TransientClusterError(
                "kubernetes client is not connected", kind=kind.KIND, namespace=namespace, name=name
            )

    async def _call(self, operation: str, kind: Type[KubernetesResource], namespace: str, name: str, fn, /, **kwargs) -> Dict[str, Any]:
        with operator_metrics.k8s_operation_duration.labels(operation=operation, kind=kind.KIND).time():
            try:
                result = await asyncio.to_thread(fn, **kwargs)
            except ApiException as e:
                if e.status == 404:
                    operator_metrics.record_k8s_operation(operation, kind.KIND, "not_found")
                    raise NotFoundError(
                        f"{kind.KIND} {namespace}/{name} not found",
                        kind=kind.KIND, namespace=namespace, name=name, status=e.status
                    ) from e

                operator_metrics.record_k8s_operation(operation, kind.KIND, "error")
                logger.error(
                    f"kubernetes.{operation}_failed",
                    kind=kind.KIND,
                    namespace=namespace,
                    name=name,
                    status_code=e.status,
                    error=e.reason
                )
                raise TransientClusterError(
                    f"{operation} {kind.KIND} {namespace}/{name} failed: {e.status} {e.reason}",
                    kind=kind.KIND, namespace=namespace, name=name, status=e.status
                ) from e
            except Exception as e:
                operator_metrics.record_k8s_operation(operation, kind.KIND, "error")
                logger.error(
                    f"kubernetes.{operation}_failed",
                    kind=kind.KIND,
                    namespace=namespace,
                    name=name,
                    error=str(e)
                )
                raise TransientClusterError(
                    f"{operation} {kind.KIND} {namespace}/{name} failed: {e}",
                    kind=kind.KIND, namespace=namespace, name=name
                ) from e

        operator_metrics.record_k8s_operation(operation, kind.KIND, "success")
        return self._to_manifest(result)

    def _to_manifest(self, obj: Any) -> Dict[str, Any]:
        if obj is None or isinstance(obj, dict):
            return obj or {}
        # typed models (AppsV1Api) are converted back to camelCase manifests
        serializer = self._api_client or client.ApiClient()
        return serializer.sanitize_for_serialization(obj)

"""
Kubernetes operator for the Head → ChildA → Deployment hierarchy.

kopf delivers the reconcile triggers: changes of a resource itself and a
periodic resync. A change of an owned resource is mapped back through the
controller owner reference and stamped onto the owner as an annotation, so
the owner is reconciled by its own update handler: serialized per owner and
retried by kopf on failure. Clients, reconcilers and the defaulting
hook are built once at startup and handed to the handlers through the kopf
memo.

Run with ``kopf run -m operator_tracing.operator.main`` or the
``operator-tracing`` console script.
"""

from typing import Any, Dict, Mapping, Optional, Type

import kopf
import structlog
from prometheus_client import start_http_server
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..clients.kubernetes_client import ClusterClient, KubernetesClusterClient
from ..config.settings import get_settings
from ..errors import NotFoundError, OwnerReferenceError, TransientClusterError
from ..models.resources import (
    APP_LABEL,
    APP_LABEL_VALUE,
    GROUP,
    VERSION,
    ChildA,
    Deployment,
    Head,
    KubernetesResource,
    NamespacedName,
    ObjectMeta,
)
from ..observability.logging import init_logging
from ..observability.tracing import init_tracing, shutdown_tracing
from ..propagation.spans import ResourceSpanFactory
from ..reconcilers.base import HierarchyReconciler
from ..reconcilers.childa_reconciler import ChildAReconciler
from ..reconcilers.head_reconciler import HeadReconciler
from ..webhooks.head_defaulter import HeadTraceDefaulter

logger = structlog.get_logger(__name__)

STORAGE_PREFIX = "operator-tracing.dummy.example.com"
WEBHOOK_CONFIGURATION = "operator-tracing.dummy.example.com"
# changes whenever an owned resource changes; its only purpose is to wake the owner
OWNED_REVISION_ANNOTATION = "dummy.example.com/owned-revision"

_settings = get_settings()
RESYNC_INTERVAL = _settings.reconcile.resync_interval_seconds


@kopf.on.startup()
async def startup_handler(settings: kopf.OperatorSettings, memo: kopf.Memo, **kwargs):
    """
    Initialize observability, the cluster client and the reconcilers.
    """
    app_settings = get_settings()
    init_logging(app_settings)
    logger.info("operator.starting", service=app_settings.service_name, version=app_settings.version)

    tracer = init_tracing(app_settings)

    if app_settings.metrics_port:
        start_http_server(app_settings.metrics_port)
        logger.info("operator.metrics_server_started", port=app_settings.metrics_port)

    cluster = KubernetesClusterClient(in_cluster=app_settings.kubernetes.in_cluster)
    await cluster.connect()

    annotation_key = app_settings.tracing.annotation_key
    spans = ResourceSpanFactory(tracer, annotation_key)

    memo.app_settings = app_settings
    memo.cluster = cluster
    memo.head_reconciler = HeadReconciler(cluster, spans)
    memo.childa_reconciler = ChildAReconciler(cluster, spans)
    memo.head_defaulter = HeadTraceDefaulter(cluster, tracer, annotation_key)

    # keep kopf bookkeeping out of the status subresource owned by the reconcilers
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(prefix=STORAGE_PREFIX)
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
        prefix=STORAGE_PREFIX,
        key="last-handled-configuration",
    )

    if app_settings.webhook.enabled:
        settings.admission.server = kopf.WebhookServer(
            addr="0.0.0.0",
            port=app_settings.webhook.port,
            host=app_settings.webhook.host,
            certfile=app_settings.webhook.certfile,
            pkeyfile=app_settings.webhook.pkeyfile,
        )
        settings.admission.managed = WEBHOOK_CONFIGURATION
        logger.info("operator.webhook_enabled", port=app_settings.webhook.port)

    logger.info("operator.started")


@kopf.on.cleanup()
async def cleanup_handler(**kwargs):
    """
    Flush pending spans on shutdown.
    """
    logger.info("operator.shutting_down")
    shutdown_tracing()


# Head loop

@kopf.on.resume(GROUP, VERSION, "heads")
@kopf.on.create(GROUP, VERSION, "heads")
@kopf.on.update(GROUP, VERSION, "heads")
async def head_changed(name: str, namespace: str, memo: kopf.Memo, **kwargs):
    await run_reconcile(memo.head_reconciler, namespace, name, memo)


@kopf.timer(GROUP, VERSION, "heads", interval=RESYNC_INTERVAL, initial_delay=RESYNC_INTERVAL)
async def head_resync(name: str, namespace: str, memo: kopf.Memo, **kwargs):
    await run_reconcile(memo.head_reconciler, namespace, name, memo)


@kopf.on.event(GROUP, VERSION, "childas")
async def childa_event(event: Dict[str, Any], meta: Mapping[str, Any], namespace: str, memo: kopf.Memo, **kwargs):
    """
    Any ChildA change, status flips included, re-triggers its controlling Head.
    """
    await fan_out(memo, event, meta, namespace, ChildA, Head)


# ChildA loop

@kopf.on.resume(GROUP, VERSION, "childas")
@kopf.on.create(GROUP, VERSION, "childas")
@kopf.on.update(GROUP, VERSION, "childas")
async def childa_changed(name: str, namespace: str, memo: kopf.Memo, **kwargs):
    await run_reconcile(memo.childa_reconciler, namespace, name, memo)


@kopf.timer(GROUP, VERSION, "childas", interval=RESYNC_INTERVAL, initial_delay=RESYNC_INTERVAL)
async def childa_resync(name: str, namespace: str, memo: kopf.Memo, **kwargs):
    await run_reconcile(memo.childa_reconciler, namespace, name, memo)


@kopf.on.event("apps", "v1", "deployments", labels={APP_LABEL: APP_LABEL_VALUE})
async def deployment_event(event: Dict[str, Any], meta: Mapping[str, Any], namespace: str, memo: kopf.Memo, **kwargs):
    """
    Deployment changes (replica readiness) re-trigger the controlling ChildA.
    """
    await fan_out(memo, event, meta, namespace, Deployment, ChildA)


# Defaulting hook

@kopf.on.mutate(GROUP, VERSION, "heads", operations=["CREATE", "UPDATE"], id="head-trace-defaulter")
async def head_defaulter(body: Mapping[str, Any], patch: kopf.Patch, namespace: Optional[str], memo: kopf.Memo, **kwargs):
    """
    Stamp the trace annotation onto new Heads; keep it on updates.
    """
    head = Head.from_manifest(to_plain(body))
    if namespace:
        head.metadata.namespace = namespace
    before = dict(head.metadata.annotations)

    await memo.head_defaulter.default(head)

    for key, value in head.metadata.annotations.items():
        if before.get(key) != value:
            patch.metadata.annotations[key] = value


async def run_reconcile(reconciler: HierarchyReconciler, namespace: str, name: str, memo: kopf.Memo) -> None:
    """
    Run one reconcile pass and translate failures into kopf retries.

    Returns None so kopf does not persist handler results into the status.
    """
    try:
        await reconciler.reconcile(NamespacedName(namespace, name))
    except NotFoundError as e:
        # the resource vanished between read and write; the next event settles it
        logger.info("operator.resource_vanished", controller=reconciler.controller_name, error=str(e))
    except (TransientClusterError, OwnerReferenceError) as e:
        raise kopf.TemporaryError(str(e), delay=memo.app_settings.reconcile.retry_delay_seconds) from e


async def fan_out(
    memo: kopf.Memo,
    event: Dict[str, Any],
    meta: Mapping[str, Any],
    namespace: str,
    owned_kind: Type[KubernetesResource],
    owner_kind: Type[KubernetesResource],
) -> None:
    """
    Wake the controlling owner of a changed resource.

    Event handlers are never retried by kopf, so the reconcile itself runs
    in the owner's update handler. A failed notification is logged; the
    periodic resync picks the owner up.
    """
    owner = controller_name(meta, owner_kind)
    if owner is None:
        return

    revision = f"{owned_kind.KIND}/{meta.get('name')}@{meta.get('resourceVersion')}"
    log = logger.bind(owner_kind=owner_kind.KIND, namespace=namespace, owner=owner, revision=revision)
    log.debug("operator.owned_changed", event_type=event.get("type"))

    try:
        await notify_owner(memo.cluster, owner_kind, namespace, owner, revision)
    except NotFoundError:
        log.info("operator.owner_gone")
    except TransientClusterError as e:
        log.warning("operator.owner_notify_failed", error=str(e))


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
    retry=retry_if_exception_type(TransientClusterError),
    reraise=True,
)
async def notify_owner(
    cluster: ClusterClient,
    owner_kind: Type[KubernetesResource],
    namespace: str,
    owner: str,
    revision: str,
) -> None:
    await cluster.patch_annotations(owner_kind, namespace, owner, {OWNED_REVISION_ANNOTATION: revision})


def controller_name(meta: Mapping[str, Any], owner_kind: Type[KubernetesResource]) -> Optional[str]:
    """Name of the controlling owner of ``owner_kind``, if any."""
    reference = ObjectMeta.model_validate(to_plain(meta)).controller_reference()
    if reference is None:
        return None
    if reference.kind != owner_kind.KIND or reference.api_version != owner_kind.api_version():
        return None
    return reference.name


def to_plain(value: Any) -> Any:
    """Copy kopf's read-only mapping views into plain dicts and lists."""
    if isinstance(value, Mapping):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    return value


def main() -> None:
    """Console entrypoint."""
    namespaces = _settings.kubernetes.namespaces
    kopf.run(
        standalone=True,
        clusterwide=not namespaces,
        namespaces=namespaces,
    )

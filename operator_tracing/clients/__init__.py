from .kubernetes_client import ClusterClient, KubernetesClusterClient

__all__ = ["ClusterClient", "KubernetesClusterClient"]

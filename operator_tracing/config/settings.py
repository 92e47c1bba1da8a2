"""
Operator configuration using Pydantic Settings.

Nested sections are overridden with ``__`` separated environment variables,
e.g. ``TRACING__OTLP_ENDPOINT`` or ``RECONCILE__RETRY_DELAY_SECONDS``.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class KubernetesSettings(BaseModel):
    """Kubernetes API access."""
    in_cluster: bool = Field(default=True, description="Use the in-cluster service account")
    namespaces: List[str] = Field(
        default_factory=list,
        description="Namespaces to watch; empty watches the whole cluster"
    )


class TracingSettings(BaseModel):
    """OpenTelemetry settings."""
    otlp_endpoint: str = Field(default="", description="OTLP gRPC endpoint; empty disables export")
    otlp_insecure: bool = Field(default=True)
    annotation_key: str = Field(
        default="traceparent",
        description="Annotation holding the propagated trace context"
    )


class ReconcileSettings(BaseModel):
    """Reconcile loop settings."""
    retry_delay_seconds: float = Field(default=10.0, description="Delay before a failed reconcile is retried")
    resync_interval_seconds: float = Field(default=300.0, description="Periodic level-triggered resync")


class WebhookSettings(BaseModel):
    """Admission webhook server for the Head defaulting hook."""
    enabled: bool = Field(default=False)
    host: Optional[str] = Field(default=None, description="Hostname the API server uses to reach the webhook")
    port: int = Field(default=9443)
    certfile: Optional[str] = Field(default=None)
    pkeyfile: Optional[str] = Field(default=None)


class Settings(BaseSettings):
    """Main operator settings."""

    service_name: str = Field(default="k8s-operator-tracing")
    version: str = Field(default="0.1.0")
    environment: str = Field(default="production")
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    metrics_port: int = Field(default=8080, description="Prometheus port; 0 disables the server")

    kubernetes: KubernetesSettings = Field(default_factory=KubernetesSettings)
    tracing: TracingSettings = Field(default_factory=TracingSettings)
    reconcile: ReconcileSettings = Field(default_factory=ReconcileSettings)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)

    model_config = {
        "env_file": ".env",
        "env_nested_delimiter": "__",
        "case_sensitive": False
    }


@lru_cache
def get_settings() -> Settings:
    """Return the singleton settings instance."""
    return Settings()

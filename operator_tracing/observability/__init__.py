from .logging import init_logging
from .metrics import operator_metrics
from .tracing import init_tracing, shutdown_tracing

__all__ = ["init_logging", "init_tracing", "operator_metrics", "shutdown_tracing"]

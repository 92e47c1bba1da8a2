"""
Prometheus metrics for the operator.
"""

from prometheus_client import Counter, Histogram


class OperatorMetrics:
    """Prometheus metrics for reconciles, cluster calls and trace propagation."""

    def __init__(self):
        # Reconciles
        self.reconcile_total = Counter(
            "operator_tracing_reconcile_total",
            "Total reconcile passes",
            ["controller", "state", "action"]
        )

        self.reconcile_errors_total = Counter(
            "operator_tracing_reconcile_errors_total",
            "Reconcile passes that surfaced an error",
            ["controller", "error_type"]
        )

        self.reconcile_duration = Histogram(
            "operator_tracing_reconcile_duration_seconds",
            "Duration of reconcile passes",
            ["controller"],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10]
        )

        # Kubernetes API
        self.k8s_operations_total = Counter(
            "operator_tracing_k8s_operations_total",
            "Total Kubernetes API operations",
            ["operation", "kind", "status"]
        )

        self.k8s_operation_duration = Histogram(
            "operator_tracing_k8s_operation_duration_seconds",
            "Duration of Kubernetes API operations",
            ["operation", "kind"],
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0)
        )

        # Trace propagation
        self.trace_propagation_failures_total = Counter(
            "operator_tracing_trace_propagation_failures_total",
            "Trace contexts that could not be injected or extracted",
            ["direction", "kind"]
        )

        self.trace_injections_total = Counter(
            "operator_tracing_trace_injections_total",
            "Trace contexts stamped onto Head resources by the defaulting hook"
        )

    def record_reconcile(self, controller: str, state: str, action: str = "none"):
        self.reconcile_total.labels(controller=controller, state=state, action=action).inc()

    def record_reconcile_error(self, controller: str, error_type: str):
        self.reconcile_errors_total.labels(controller=controller, error_type=error_type).inc()

    def record_k8s_operation(self, operation: str, kind: str, status: str):
        self.k8s_operations_total.labels(operation=operation, kind=kind, status=status).inc()

    def record_propagation_failure(self, direction: str, kind: str):
        self.trace_propagation_failures_total.labels(direction=direction, kind=kind).inc()


# Global instance
operator_metrics = OperatorMetrics()

from .base import HierarchyReconciler, ReconcileResult, ReconcileState
from .childa_reconciler import ChildAReconciler
from .head_reconciler import HeadReconciler

__all__ = [
    "ChildAReconciler",
    "HeadReconciler",
    "HierarchyReconciler",
    "ReconcileResult",
    "ReconcileState",
]

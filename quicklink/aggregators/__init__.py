"""Read-side click aggregation and counter reconciliation."""

from quicklink.aggregators.reconciler import (
    ClickCountReconciler,
    ReconcileResult,
    get_reconciler,
    reconcile_click_counts,
    start_reconciler,
    stop_reconciler,
)

__all__ = [
    "ClickCountReconciler",
    "ReconcileResult",
    "get_reconciler",
    "reconcile_click_counts",
    "start_reconciler",
    "stop_reconciler",
]

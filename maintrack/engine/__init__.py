"""Maintenance engine for maintrack."""

from maintrack.engine.status import determine_status, refresh_status
from maintrack.engine.window import compute_window
from maintrack.engine.aggregation import aggregate_status, recompute_product
from maintrack.engine.lifecycle import TaskLifecycleService, ProductService
from maintrack.engine.reconciliation import run_reconciliation, ReconciliationResult
from maintrack.engine.notifications import run_notification_sweep, NotificationResult
from maintrack.engine.calendar_view import calendar_events, user_calendar

__all__ = [
    "determine_status",
    "refresh_status",
    "compute_window",
    "aggregate_status",
    "recompute_product",
    "TaskLifecycleService",
    "ProductService",
    "run_reconciliation",
    "ReconciliationResult",
    "run_notification_sweep",
    "NotificationResult",
    "calendar_events",
    "user_calendar",
]

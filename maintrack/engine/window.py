"""Maintenance window calculation for recurring tasks."""

from datetime import datetime, timedelta
from typing import Optional

from maintrack.models.task import Task, MaintenanceWindow


def has_recurrence_config(task: Task) -> bool:
    return bool(task.is_recurring) and task.frequency is not None and task.maintenance_window_days is not None


def compute_window(task: Task, anchor: datetime) -> Optional[MaintenanceWindow]:
    """Compute the next maintenance window of a recurring task.

    The task becomes due `frequency` days after `anchor` and stays acceptable
    for `maintenance_window_days` after that.

    Args:
        task: Task carrying the recurrence configuration
        anchor: Instant the interval counts from (completion time, or the
            last maintenance supplied at creation)

    Returns:
        MaintenanceWindow, or None when the task is not recurring or its
        configuration is incomplete
    """
    if not has_recurrence_config(task):
        return None
    start = anchor + timedelta(days=task.frequency)
    return MaintenanceWindow(
        start_date=start,
        end_date=start + timedelta(days=task.maintenance_window_days),
    )

"""Task status rule for maintrack.

Status is a cache of `determine_status`; every write path that changes a
date-bearing field goes through `refresh_status`.
"""

from datetime import datetime, timedelta

from maintrack.models.constants import HEALTHY_HORIZON_DAYS
from maintrack.models.task import Task, TaskStatus


def determine_status(task: Task, now: datetime) -> TaskStatus:
    """Compute a task's status from its due date.

    - completed is sticky (only the demotion sweep clears it)
    - no due date: healthy
    - due more than HEALTHY_HORIZON_DAYS out: healthy
    - due now or within the horizon: maintenance
    - due strictly in the past: overdue

    Args:
        task: Task to evaluate
        now: Current instant

    Returns:
        TaskStatus for the task
    """
    if task.status == TaskStatus.COMPLETED:
        return TaskStatus.COMPLETED

    due = task.next_maintenance
    if due is None:
        return TaskStatus.HEALTHY
    if due > now + timedelta(days=HEALTHY_HORIZON_DAYS):
        return TaskStatus.HEALTHY
    if due >= now:
        return TaskStatus.MAINTENANCE
    return TaskStatus.OVERDUE


def refresh_status(task: Task, now: datetime) -> Task:
    """Return a copy of `task` with its status recomputed and `updated_at` stamped."""
    return task.model_copy(update={"status": determine_status(task, now), "updated_at": now})

"""Task and product creation factory for maintrack.

This module centralizes entity construction so ids, timestamps and
defaults are applied the same way everywhere.
"""

import uuid
from datetime import datetime
from typing import Optional, List

from maintrack.models.task import Task, TaskStatus, MaintenanceWindow
from maintrack.models.product import Product, ProductStatus


def create_task_base(
    user_id: str,
    product_id: str,
    task_name: str,
    is_recurring: bool,
    now: datetime,
    description: Optional[str] = None,
    last_maintenance: Optional[datetime] = None,
    frequency: Optional[int] = None,
    maintenance_window_days: Optional[int] = None,
    maintenance_window_dates: Optional[MaintenanceWindow] = None,
    next_maintenance: Optional[datetime] = None,
    status: Optional[TaskStatus] = None,
) -> Task:
    """Create a task with a fresh id and creation timestamps.

    Status is not derived here; callers run the status rule on the result.

    Args:
        user_id: Owner of the task
        product_id: Product the task is attached to
        task_name: Task name (required)
        is_recurring: Whether the task regenerates a window after completion
        now: Creation instant (from the injected clock)
        description: Optional description
        last_maintenance: Last time the task was performed
        frequency: Recurrence interval in days
        maintenance_window_days: Tolerance window width in days
        maintenance_window_dates: Current completion window
        next_maintenance: Due date
        status: Initial status (defaults to healthy)

    Returns:
        Task object
    """
    return Task(
        id=str(uuid.uuid4()),
        product_id=product_id,
        user_id=user_id,
        task_name=task_name,
        description=description,
        status=status if status is not None else TaskStatus.HEALTHY,
        is_recurring=is_recurring,
        last_maintenance=last_maintenance,
        frequency=frequency,
        maintenance_window_days=maintenance_window_days,
        maintenance_window_dates=maintenance_window_dates,
        next_maintenance=next_maintenance,
        created_at=now,
        updated_at=now,
    )


def create_product_base(
    user_id: str,
    name: str,
    now: datetime,
    category: Optional[str] = None,
    manufacturer: Optional[str] = None,
    model: Optional[str] = None,
    purchase_date: Optional[datetime] = None,
    tags: Optional[List[str]] = None,
    icon_url: Optional[str] = None,
    notification_preferences: Optional[List[int]] = None,
) -> Product:
    """Create a product with no tasks and a healthy status."""
    return Product(
        id=str(uuid.uuid4()),
        user_id=user_id,
        name=name,
        category=category,
        manufacturer=manufacturer,
        model=model,
        purchase_date=purchase_date,
        tags=tags or [],
        icon_url=icon_url,
        status=ProductStatus.HEALTHY,
        task_ids=[],
        notification_preferences=notification_preferences,
        created_at=now,
        updated_at=now,
    )

"""Calendar view of a user's maintenance tasks."""

from typing import Dict, List, Optional

from maintrack.database.product_repository import ProductRepository
from maintrack.database.repository import TaskRepository
from maintrack.models.task import Task

UNKNOWN_PRODUCT = "Unknown Product"


def calendar_events(tasks: List[Task], product_names: Dict[str, str]) -> List[dict]:
    """One event per task, starting and ending on its due date."""
    return [
        {
            "id": task.id,
            "title": task.task_name,
            "description": task.description,
            "start": task.next_maintenance,
            "end": task.next_maintenance,
            "status": task.status,
            "product": {
                "id": task.product_id,
                "name": product_names.get(task.product_id, UNKNOWN_PRODUCT),
            },
        }
        for task in tasks
    ]


def user_calendar(
    user_id: str,
    *,
    tasks: TaskRepository,
    products: ProductRepository,
    product_id: Optional[str] = None,
) -> List[dict]:
    """Calendar events for a user's scheduled tasks, optionally for one product.

    Tasks without a due date have no place on a calendar and are left out.
    """
    scheduled = tasks.list_calendar(user_id, product_id=product_id)
    names = products.names_for([task.product_id for task in scheduled])
    return calendar_events(scheduled, names)

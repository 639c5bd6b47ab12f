"""Product status aggregation for maintrack."""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from maintrack.clock import Clock, utc_now
from maintrack.database.product_repository import ProductRepository
from maintrack.database.repository import TaskRepository
from maintrack.errors import NotFoundError
from maintrack.models.product import Product, ProductStatus
from maintrack.models.task import Task, TaskStatus

logger = logging.getLogger(__name__)


def aggregate_status(statuses: Iterable[TaskStatus]) -> ProductStatus:
    """Worst status among a product's tasks (completed counts as healthy)."""
    values = {getattr(s, "value", s) for s in statuses}
    if TaskStatus.OVERDUE.value in values:
        return ProductStatus.OVERDUE
    if TaskStatus.MAINTENANCE.value in values:
        return ProductStatus.MAINTENANCE
    return ProductStatus.HEALTHY


def _latest_performed(tasks: List[Task]) -> Optional[Task]:
    done = [t for t in tasks if t.last_maintenance is not None]
    return max(done, key=lambda t: t.last_maintenance) if done else None


def _soonest_due(tasks: List[Task]) -> Optional[Task]:
    scheduled = [t for t in tasks if t.next_maintenance is not None]
    return min(scheduled, key=lambda t: t.next_maintenance) if scheduled else None


def recompute_product(
    product_id: str,
    *,
    tasks: TaskRepository,
    products: ProductRepository,
    clock: Clock = utc_now,
) -> Product:
    """Recompute a product's status and overall-maintenance pointers from its tasks.

    Idempotent: running it twice without task changes leaves the product as is.

    Raises:
        NotFoundError: If the product does not exist
    """
    product = products.get(product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")

    product_tasks = tasks.list_for_product(product_id)
    last_task = _latest_performed(product_tasks)
    next_task = _soonest_due(product_tasks)
    status = aggregate_status(t.status for t in product_tasks)

    last_id = last_task.id if last_task else None
    next_id = next_task.id if next_task else None
    if (
        product.status == status
        and product.last_overall_maintenance_id == last_id
        and product.next_overall_maintenance_id == next_id
    ):
        return product

    now: datetime = clock()
    saved = products.save(
        product.model_copy(
            update={
                "status": status,
                "last_overall_maintenance_id": last_id,
                "next_overall_maintenance_id": next_id,
                "updated_at": now,
            }
        )
    )
    logger.debug(f"Product {product_id} aggregated to {status.value} from {len(product_tasks)} tasks")
    return saved

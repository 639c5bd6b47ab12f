"""Periodic reconciliation of task statuses.

Two sweeps run in sequence each tick:

1. Demotion: completed recurring tasks older than the cooldown go back to
   healthy so the status rule applies to them again.
2. Re-evaluation: healthy and maintenance tasks are re-derived against the
   current time; every change is persisted and triggers one notification.
   Overdue tasks are left alone (the sweep never heals them).

Both sweeps are unattended: failures are logged per task and never raised.
"""

import logging
from datetime import timedelta
from typing import Dict, List, Optional, Set, Tuple

from maintrack.clock import Clock, utc_now
from maintrack.database.product_repository import ProductRepository
from maintrack.database.repository import TaskRepository
from maintrack.database.user_repository import UserRepository
from maintrack.engine.aggregation import recompute_product
from maintrack.engine.status import refresh_status
from maintrack.models.constants import COMPLETION_COOLDOWN_HOURS
from maintrack.models.product import Product
from maintrack.models.task import Task, TaskStatus
from maintrack.models.user import User
from maintrack.services.notifier import Notifier

logger = logging.getLogger(__name__)

REEVALUATED_STATUSES = (TaskStatus.HEALTHY, TaskStatus.MAINTENANCE)


class ReconciliationResult:
    """Summary of one reconciliation tick."""

    def __init__(self):
        self.demoted: List[str] = []
        self.evaluated: int = 0
        self.changed: Dict[str, Tuple[str, str]] = {}
        self.notified: int = 0
        self.skipped: List[str] = []
        self.failed: List[str] = []

    def as_dict(self) -> dict:
        return {
            "demoted": len(self.demoted),
            "evaluated": self.evaluated,
            "changed": len(self.changed),
            "notified": self.notified,
            "skipped": len(self.skipped),
            "failed": len(self.failed),
        }


def safe_notify(notifier: Notifier, user: User, product: Product, task: Task) -> bool:
    """Call the notifier; log and swallow any failure."""
    try:
        notifier.notify(user, product, task)
        return True
    except Exception:
        logger.exception(f"Notification failed for task {task.id} (user {user.id})")
        return False


def demote_completed_tasks(
    *,
    tasks: TaskRepository,
    clock: Clock = utc_now,
    cooldown: timedelta = timedelta(hours=COMPLETION_COOLDOWN_HOURS),
) -> List[str]:
    """Reset completed recurring tasks whose last maintenance is older than `cooldown`.

    Non-recurring completed tasks are never demoted.

    Returns:
        IDs of the demoted tasks
    """
    now = clock()
    demoted = tasks.demote_completed_recurring(now - cooldown, now)
    if demoted:
        logger.info(f"Demoted {len(demoted)} completed recurring tasks to healthy")
    return demoted


def reevaluate_statuses(
    *,
    tasks: TaskRepository,
    products: ProductRepository,
    users: UserRepository,
    notifier: Notifier,
    clock: Clock = utc_now,
    result: Optional[ReconciliationResult] = None,
) -> ReconciliationResult:
    """Re-derive the status of every healthy/maintenance task and notify on change."""
    result = result or ReconciliationResult()
    now = clock()
    touched_products: Set[str] = set()

    for task in tasks.list_by_status(REEVALUATED_STATUSES):
        result.evaluated += 1
        try:
            product = products.get(task.product_id)
            user = users.get(task.user_id)
            if product is None or user is None:
                logger.warning(
                    f"Skipping dangling task {task.id}: "
                    f"product={'ok' if product else 'missing'} user={'ok' if user else 'missing'}"
                )
                result.skipped.append(task.id)
                continue

            refreshed = refresh_status(task, now)
            if refreshed.status == task.status:
                continue

            saved = tasks.save(refreshed)
            old_status = getattr(task.status, "value", task.status)
            new_status = getattr(saved.status, "value", saved.status)
            result.changed[task.id] = (old_status, new_status)
            touched_products.add(task.product_id)
            logger.info(f"Task {task.id}: {old_status} -> {new_status}")
            if safe_notify(notifier, user, product, saved):
                result.notified += 1
        except Exception:
            logger.exception(f"Failed to re-evaluate task {task.id}")
            result.failed.append(task.id)

    for product_id in sorted(touched_products):
        try:
            recompute_product(product_id, tasks=tasks, products=products, clock=clock)
        except Exception:
            logger.exception(f"Failed to re-aggregate product {product_id}")

    return result


def run_reconciliation(
    *,
    tasks: TaskRepository,
    products: ProductRepository,
    users: UserRepository,
    notifier: Notifier,
    clock: Clock = utc_now,
) -> ReconciliationResult:
    """Run one reconciliation tick (demotion then re-evaluation). Never raises."""
    result = ReconciliationResult()
    try:
        result.demoted = demote_completed_tasks(tasks=tasks, clock=clock)
    except Exception:
        logger.exception("Demotion sweep failed")

    try:
        reevaluate_statuses(
            tasks=tasks,
            products=products,
            users=users,
            notifier=notifier,
            clock=clock,
            result=result,
        )
    except Exception:
        logger.exception("Re-evaluation sweep failed")

    logger.info(f"Reconciliation finished: {result.as_dict()}")
    return result

"""Daily maintenance reminder sweep."""

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from maintrack.clock import Clock, utc_now
from maintrack.database.product_repository import ProductRepository
from maintrack.database.repository import TaskRepository
from maintrack.database.user_repository import UserRepository
from maintrack.engine.reconciliation import safe_notify
from maintrack.models.constants import DEFAULT_NOTIFICATION_PREFERENCES
from maintrack.models.product import Product
from maintrack.models.task import Task
from maintrack.models.user import User
from maintrack.services.notifier import Notifier

logger = logging.getLogger(__name__)


class NotificationResult:
    """Summary of one reminder sweep."""

    def __init__(self):
        self.scanned: int = 0
        self.sent: List[Tuple[str, int]] = []
        self.skipped: List[str] = []
        self.failed: List[str] = []

    def as_dict(self) -> dict:
        return {
            "scanned": self.scanned,
            "sent": len(self.sent),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
        }


def due_offsets(next_maintenance: date, offsets: Sequence[int], today: date) -> List[int]:
    """Offsets whose reminder date (due date minus offset days) is today."""
    return [offset for offset in offsets if next_maintenance - timedelta(days=offset) == today]


def run_notification_sweep(
    *,
    tasks: TaskRepository,
    products: ProductRepository,
    users: UserRepository,
    notifier: Notifier,
    clock: Clock = utc_now,
) -> NotificationResult:
    """Send reminders for every scheduled task whose reminder date is today.

    Offsets come from the product's notification preferences (default: one
    day before and on the due date). Each offset fires at most once, on its
    exact reminder date. Never raises.
    """
    result = NotificationResult()
    today = clock().date()
    product_cache: Dict[str, Optional[Product]] = {}
    user_cache: Dict[str, Optional[User]] = {}

    try:
        scheduled: List[Task] = tasks.list_scheduled()
    except Exception:
        logger.exception("Failed to load scheduled tasks")
        return result

    for task in scheduled:
        result.scanned += 1
        try:
            if task.product_id not in product_cache:
                product_cache[task.product_id] = products.get(task.product_id)
            if task.user_id not in user_cache:
                user_cache[task.user_id] = users.get(task.user_id)
            product = product_cache[task.product_id]
            user = user_cache[task.user_id]
            if product is None or user is None:
                logger.warning(f"Skipping reminders for dangling task {task.id}")
                result.skipped.append(task.id)
                continue

            # An empty list turns reminders off for the product.
            offsets = product.notification_preferences
            if offsets is None:
                offsets = list(DEFAULT_NOTIFICATION_PREFERENCES)
            for offset in due_offsets(task.next_maintenance.date(), offsets, today):
                if safe_notify(notifier, user, product, task):
                    result.sent.append((task.id, offset))
                else:
                    result.failed.append(task.id)
        except Exception:
            logger.exception(f"Failed to process reminders for task {task.id}")
            result.failed.append(task.id)

    logger.info(f"Notification sweep finished: {result.as_dict()}")
    return result

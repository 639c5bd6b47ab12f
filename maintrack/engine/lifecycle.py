"""Task lifecycle operations: create, complete, postpone, update, delete.

Each operation is a read-modify-write against the stores without optimistic
concurrency control (last write wins). After every change the owning
product is re-aggregated and the action is recorded through `log_action`.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

from maintrack.clock import Clock, utc_now
from maintrack.database.product_repository import ADD, ProductRepository
from maintrack.database.repository import TaskRepository
from maintrack.engine.aggregation import recompute_product
from maintrack.engine.status import refresh_status
from maintrack.engine.window import compute_window
from maintrack.errors import NotFoundError, UnauthorizedError, ValidationError
from maintrack.models.action_log import ActionType, EntityType
from maintrack.models.product import Product
from maintrack.models.task import MaintenanceWindow, Task, TaskStatus
from maintrack.models.task_factory import create_task_base
from maintrack.services.action_logger import LogAction, noop_log_action

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = frozenset(
    {"id", "product_id", "user_id", "is_recurring", "status", "created_at", "updated_at"}
)
UPDATABLE_FIELDS = frozenset(
    {"task_name", "description", "frequency", "maintenance_window_days", "last_maintenance", "next_maintenance"}
)
RECURRENCE_FIELDS = ("frequency", "maintenance_window_days")


def parse_datetime(value: Any, field: str) -> Optional[datetime]:
    """Coerce a payload value to a naive UTC datetime.

    Accepts datetime, date or an ISO-8601 string; None passes through.

    Raises:
        ValidationError: If the value cannot be parsed
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, datetime.min.time())
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValidationError(f"{field} must be an ISO-8601 date") from e
    else:
        raise ValidationError(f"{field} must be a date")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_int(value: Any, field: str, minimum: int) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return value


def check_recurrence_invariants(task: Task) -> None:
    """Reject tasks whose recurrence fields disagree with `is_recurring`.

    Raises:
        ValidationError: If the configuration is inconsistent
    """
    if task.is_recurring:
        if task.frequency is None:
            raise ValidationError("frequency is required for recurring tasks")
        if task.maintenance_window_days is None:
            raise ValidationError("maintenance_window_days is required for recurring tasks")
        return
    for field in RECURRENCE_FIELDS:
        if getattr(task, field) is not None:
            raise ValidationError(f"{field} only applies to recurring tasks")
    if task.maintenance_window_dates is not None:
        raise ValidationError("maintenance_window_dates only applies to recurring tasks")


class TaskLifecycleService:
    """Mutates tasks while keeping status, windows and product aggregates consistent."""

    def __init__(
        self,
        tasks: TaskRepository,
        products: ProductRepository,
        *,
        log_action: LogAction = noop_log_action,
        clock: Clock = utc_now,
    ):
        self.tasks = tasks
        self.products = products
        self.log_action = log_action
        self.clock = clock

    def get(self, task_id: str) -> Task:
        """Get a task or raise NotFoundError."""
        task = self.tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def get_owned(self, task_id: str, user_id: str) -> Task:
        """Get a task and check it belongs to `user_id`."""
        task = self.get(task_id)
        if task.user_id != user_id:
            raise UnauthorizedError(f"Task {task_id} does not belong to the current user")
        return task

    def _refresh_product(self, product_id: str) -> None:
        if self.products.get(product_id) is None:
            logger.warning(f"Product {product_id} missing; skipping aggregation")
            return
        recompute_product(product_id, tasks=self.tasks, products=self.products, clock=self.clock)

    def _initial_window(self, draft: Task, explicit: Any, anchor: datetime) -> Optional[MaintenanceWindow]:
        if isinstance(explicit, MaintenanceWindow):
            explicit = explicit.model_dump()
        if isinstance(explicit, Mapping) and explicit.get("start_date") is not None:
            start = parse_datetime(explicit.get("start_date"), "maintenance_window_dates.start_date")
            end = parse_datetime(explicit.get("end_date"), "maintenance_window_dates.end_date")
            if end is None:
                end = start + timedelta(days=draft.maintenance_window_days)
            try:
                return MaintenanceWindow(start_date=start, end_date=end)
            except ValueError as e:
                raise ValidationError(f"Invalid maintenance window: {e}") from e
        return compute_window(draft, anchor)

    def create(self, user_id: str, product_id: str, task_data: Mapping[str, Any]) -> Task:
        """Create a task attached to a product.

        Recurring tasks take their first due date from an explicit
        `maintenance_window_dates.start_date`, or from a window computed from
        `last_maintenance` (or now). Non-recurring tasks use the supplied
        one-off `next_maintenance`.

        Raises:
            NotFoundError: If the product does not exist
            UnauthorizedError: If the product belongs to another user
            ValidationError: If required fields are missing or inconsistent
        """
        product = self.products.get(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        if product.user_id != user_id:
            raise UnauthorizedError(f"Product {product_id} does not belong to the current user")

        task_name = task_data.get("task_name")
        if not isinstance(task_name, str) or not task_name.strip():
            raise ValidationError("task_name is required")
        is_recurring = task_data.get("is_recurring")
        if not isinstance(is_recurring, bool):
            raise ValidationError("is_recurring must be explicitly true or false")

        now = self.clock()
        last_maintenance = parse_datetime(task_data.get("last_maintenance"), "last_maintenance")
        draft = create_task_base(
            user_id=user_id,
            product_id=product_id,
            task_name=task_name.strip(),
            is_recurring=is_recurring,
            now=now,
            description=task_data.get("description"),
            last_maintenance=last_maintenance,
            frequency=parse_int(task_data.get("frequency"), "frequency", 1),
            maintenance_window_days=parse_int(
                task_data.get("maintenance_window_days"), "maintenance_window_days", 0
            ),
        )

        if is_recurring:
            check_recurrence_invariants(draft)
            window = self._initial_window(
                draft, task_data.get("maintenance_window_dates"), last_maintenance or now
            )
            draft = draft.model_copy(
                update={"maintenance_window_dates": window, "next_maintenance": window.start_date}
            )
        else:
            if task_data.get("maintenance_window_dates") is not None:
                raise ValidationError("maintenance_window_dates only applies to recurring tasks")
            check_recurrence_invariants(draft)
            draft = draft.model_copy(
                update={"next_maintenance": parse_datetime(task_data.get("next_maintenance"), "next_maintenance")}
            )

        task = self.tasks.create(refresh_status(draft, now))
        self.products.update_task_refs(product_id, ADD, task.id)
        self._refresh_product(product_id)
        logger.info(f"Created task {task.id} on product {product_id} (status={task.status})")
        self.log_action(
            user_id,
            ActionType.CREATE.value,
            EntityType.TASK.value,
            task.id,
            f'Task "{task.task_name}" was created',
        )
        return task

    def complete(self, task_id: str) -> Task:
        """Mark a task completed now and pre-arm the next window of a recurring task.

        Raises:
            NotFoundError: If the task does not exist
        """
        task = self.get(task_id)
        now = self.clock()
        update: Dict[str, Any] = {
            "status": TaskStatus.COMPLETED,
            "last_maintenance": now,
            "updated_at": now,
        }
        if task.is_recurring:
            window = compute_window(task, now)
            if window is None:
                logger.warning(f"Recurring task {task_id} has incomplete recurrence config; no next window")
            update["maintenance_window_dates"] = window
            update["next_maintenance"] = window.start_date if window else None
        else:
            update["next_maintenance"] = None

        saved = self.tasks.save(task.model_copy(update=update))
        self._refresh_product(saved.product_id)
        logger.info(f"Completed task {task_id}; next maintenance {saved.next_maintenance}")
        self.log_action(
            saved.user_id,
            ActionType.COMPLETE.value,
            EntityType.TASK.value,
            saved.id,
            f'Task "{saved.task_name}" was completed',
        )
        return saved

    def postpone(self, task_id: str, days: int) -> Task:
        """Shift a task's due date by `days`.

        Status and the maintenance window are left untouched; the next
        reconciliation tick re-derives status from the shifted date.

        Raises:
            ValidationError: If days < 1 or the task has no due date
            NotFoundError: If the task does not exist
        """
        if isinstance(days, bool) or not isinstance(days, int) or days < 1:
            raise ValidationError("days must be an integer >= 1")
        task = self.get(task_id)
        if task.next_maintenance is None:
            raise ValidationError(f"Task {task_id} has no scheduled maintenance to postpone")

        saved = self.tasks.save(
            task.model_copy(
                update={
                    "next_maintenance": task.next_maintenance + timedelta(days=days),
                    "updated_at": self.clock(),
                }
            )
        )
        self._refresh_product(saved.product_id)
        logger.info(f"Postponed task {task_id} by {days} days to {saved.next_maintenance}")
        self.log_action(
            saved.user_id,
            ActionType.POSTPONE.value,
            EntityType.TASK.value,
            saved.id,
            f'Task "{saved.task_name}" was postponed by {days} days',
        )
        return saved

    def update(self, task_id: str, patch: Mapping[str, Any]) -> Task:
        """Merge `patch` into a task and re-validate recurrence invariants.

        Changing `frequency` or `maintenance_window_days` (or
        `last_maintenance`) of a recurring task re-arms its window from the
        last maintenance. Recurring tasks derive `next_maintenance` from their
        window, so it cannot be patched directly; use postpone.

        Raises:
            ValidationError: If the patch touches immutable or unknown fields,
                or leaves the task inconsistent
            NotFoundError: If the task does not exist
        """
        immutable = sorted(set(patch) & IMMUTABLE_FIELDS)
        if immutable:
            raise ValidationError(f"Fields cannot be changed: {', '.join(immutable)}")
        unknown = sorted(set(patch) - UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(unknown)}")

        task = self.get(task_id)
        now = self.clock()
        changes: Dict[str, Any] = {}
        if "task_name" in patch:
            name = patch["task_name"]
            if not isinstance(name, str) or not name.strip():
                raise ValidationError("task_name cannot be empty")
            changes["task_name"] = name.strip()
        if "description" in patch:
            changes["description"] = patch["description"]
        if "frequency" in patch:
            changes["frequency"] = parse_int(patch["frequency"], "frequency", 1)
        if "maintenance_window_days" in patch:
            changes["maintenance_window_days"] = parse_int(
                patch["maintenance_window_days"], "maintenance_window_days", 0
            )
        if "last_maintenance" in patch:
            changes["last_maintenance"] = parse_datetime(patch["last_maintenance"], "last_maintenance")
        if "next_maintenance" in patch:
            if task.is_recurring:
                raise ValidationError("next_maintenance of a recurring task is derived from its window")
            changes["next_maintenance"] = parse_datetime(patch["next_maintenance"], "next_maintenance")

        merged = task.model_copy(update=changes)
        check_recurrence_invariants(merged)

        rearm = merged.is_recurring and any(
            changes.get(f) != getattr(task, f) for f in (*RECURRENCE_FIELDS, "last_maintenance") if f in changes
        )
        if rearm:
            window = compute_window(merged, merged.last_maintenance or now)
            merged = merged.model_copy(
                update={"maintenance_window_dates": window, "next_maintenance": window.start_date}
            )

        saved = self.tasks.save(refresh_status(merged, now))
        self._refresh_product(saved.product_id)
        logger.info(f"Updated task {task_id}: {sorted(changes)}")
        self.log_action(
            saved.user_id,
            ActionType.UPDATE.value,
            EntityType.TASK.value,
            saved.id,
            f'Task "{saved.task_name}" was updated',
        )
        return saved

    def delete(self, task_id: str) -> None:
        """Delete a task and pull it from every product that references it.

        Raises:
            NotFoundError: If the task does not exist
        """
        task = self.get(task_id)
        self.tasks.delete(task_id)
        affected = set(self.products.pull_task_from_all(task_id, user_id=task.user_id))
        affected.add(task.product_id)
        for product_id in sorted(affected):
            self._refresh_product(product_id)
        logger.info(f"Deleted task {task_id}")
        self.log_action(
            task.user_id,
            ActionType.DELETE.value,
            EntityType.TASK.value,
            task_id,
            f'Task "{task.task_name}" was deleted',
        )


class ProductService:
    """Product create/update/delete with cascade to tasks."""

    def __init__(
        self,
        tasks: TaskRepository,
        products: ProductRepository,
        *,
        log_action: LogAction = noop_log_action,
        clock: Clock = utc_now,
    ):
        self.tasks = tasks
        self.products = products
        self.log_action = log_action
        self.clock = clock

    def get_owned(self, product_id: str, user_id: str) -> Product:
        product = self.products.get(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        if product.user_id != user_id:
            raise UnauthorizedError(f"Product {product_id} does not belong to the current user")
        return product

    def create(self, product: Product) -> Product:
        created = self.products.create(product)
        self.log_action(
            created.user_id,
            ActionType.CREATE.value,
            EntityType.PRODUCT.value,
            created.id,
            f'Product "{created.name}" was created',
        )
        return created

    def update(self, product_id: str, user_id: str, patch: Mapping[str, Any]) -> Product:
        """Merge descriptive fields and notification preferences into a product.

        Raises:
            ValidationError: If the patch touches derived fields or has invalid preferences
        """
        allowed = {
            "name", "category", "manufacturer", "model", "purchase_date",
            "tags", "icon_url", "notification_preferences",
        }
        rejected = sorted(set(patch) - allowed)
        if rejected:
            raise ValidationError(f"Fields cannot be changed: {', '.join(rejected)}")
        product = self.get_owned(product_id, user_id)
        if "name" in patch and (not isinstance(patch["name"], str) or not patch["name"].strip()):
            raise ValidationError("name cannot be empty")
        changes = dict(patch)
        if "purchase_date" in changes:
            changes["purchase_date"] = parse_datetime(changes["purchase_date"], "purchase_date")
        try:
            merged = Product.model_validate({**product.model_dump(), **changes, "updated_at": self.clock()})
        except ValueError as e:
            raise ValidationError(str(e)) from e
        saved = self.products.save(merged)
        self.log_action(
            user_id,
            ActionType.UPDATE.value,
            EntityType.PRODUCT.value,
            product_id,
            f'Product "{saved.name}" was updated',
        )
        return saved

    def delete(self, product_id: str, user_id: str) -> None:
        """Delete a product and cascade to its tasks."""
        product = self.get_owned(product_id, user_id)
        removed = self.tasks.delete_for_product(product_id)
        self.products.delete(product_id)
        logger.info(f"Deleted product {product_id} and {removed} tasks")
        self.log_action(
            user_id,
            ActionType.DELETE.value,
            EntityType.PRODUCT.value,
            product_id,
            f'Product "{product.name}" was deleted',
        )

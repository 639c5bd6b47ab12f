"""Repository layer for task database operations."""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import asc

from maintrack.errors import DBError, NotFoundError
from maintrack.models.task import Task, TaskStatus
from maintrack.database.models import TaskDB, enum_to_value

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for Task database operations (the task store)."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {type(e).__name__}: {str(e)}")
            raise DBError(f"Failed to {action}") from e

    def create(self, task: Task) -> Task:
        """Create a new task."""
        task_db = TaskDB.from_pydantic(task)
        self.db.add(task_db)
        self._commit(f"create task {task.id}")
        self.db.refresh(task_db)
        logger.debug(f"Created task {task.id}: {task.task_name[:50]}")
        return task_db.to_pydantic()

    def get(self, task_id: str) -> Optional[Task]:
        """Get task by ID."""
        task_db = self.db.query(TaskDB).filter(TaskDB.id == task_id).first()
        return task_db.to_pydantic() if task_db else None

    def list_for_product(self, product_id: str) -> List[Task]:
        """Get all tasks attached to a product."""
        tasks_db = self.db.query(TaskDB).filter(TaskDB.product_id == product_id).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def list_by_status(self, statuses: Iterable[TaskStatus]) -> List[Task]:
        """Get all tasks whose stored status is one of `statuses`."""
        values = [enum_to_value(s) for s in statuses]
        tasks_db = (
            self.db.query(TaskDB)
            .filter(TaskDB.status.in_(values))
            .order_by(asc(TaskDB.next_maintenance).nulls_last())
            .all()
        )
        return [task_db.to_pydantic() for task_db in tasks_db]

    def list_scheduled(self) -> List[Task]:
        """Get all tasks that have a due date."""
        tasks_db = (
            self.db.query(TaskDB)
            .filter(TaskDB.next_maintenance.isnot(None))
            .order_by(asc(TaskDB.next_maintenance))
            .all()
        )
        return [task_db.to_pydantic() for task_db in tasks_db]

    def list_for_user(
        self,
        user_id: str,
        *,
        product_id: Optional[str] = None,
        status: Optional[TaskStatus] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Task], int]:
        """Filtered page of a user's tasks sorted by due date (soonest first).

        Returns:
            (tasks on the page, total matching count)
        """
        query = self.db.query(TaskDB).filter(TaskDB.user_id == user_id)
        if product_id:
            query = query.filter(TaskDB.product_id == product_id)
        if status:
            query = query.filter(TaskDB.status == enum_to_value(status))
        if search:
            query = query.filter(TaskDB.task_name.ilike(f"%{search}%"))
        total = query.count()
        tasks_db = (
            query.order_by(asc(TaskDB.next_maintenance).nulls_last(), asc(TaskDB.created_at))
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [task_db.to_pydantic() for task_db in tasks_db], total

    def list_calendar(self, user_id: str, product_id: Optional[str] = None) -> List[Task]:
        """A user's tasks that have a due date, soonest first."""
        query = self.db.query(TaskDB).filter(
            TaskDB.user_id == user_id,
            TaskDB.next_maintenance.isnot(None),
        )
        if product_id:
            query = query.filter(TaskDB.product_id == product_id)
        tasks_db = query.order_by(asc(TaskDB.next_maintenance), asc(TaskDB.created_at)).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def save(self, task: Task) -> Task:
        """Persist all mutable fields of an existing task."""
        task_db = self.db.query(TaskDB).filter(TaskDB.id == task.id).first()
        if not task_db:
            raise NotFoundError(f"Task {task.id} not found")
        task_db.apply(task)
        self._commit(f"update task {task.id}")
        self.db.refresh(task_db)
        logger.debug(f"Updated task {task.id}: status={task_db.status}")
        return task_db.to_pydantic()

    def delete(self, task_id: str) -> bool:
        """Delete a task by ID."""
        task_db = self.db.query(TaskDB).filter(TaskDB.id == task_id).first()
        if not task_db:
            return False
        self.db.delete(task_db)
        self._commit(f"delete task {task_id}")
        logger.debug(f"Deleted task {task_id}")
        return True

    def delete_for_product(self, product_id: str) -> int:
        """Delete every task attached to a product."""
        affected = (
            self.db.query(TaskDB)
            .filter(TaskDB.product_id == product_id)
            .delete(synchronize_session=False)
        )
        self._commit(f"delete tasks of product {product_id}")
        logger.debug(f"Deleted {affected} tasks of product {product_id}")
        return int(affected)

    def demote_completed_recurring(self, cutoff: datetime, now: datetime) -> List[str]:
        """Reset completed recurring tasks last performed at or before `cutoff` to healthy.

        Returns:
            IDs of the demoted tasks
        """
        conditions = (
            TaskDB.status == TaskStatus.COMPLETED.value,
            TaskDB.is_recurring.is_(True),
            TaskDB.last_maintenance.isnot(None),
            TaskDB.last_maintenance <= cutoff,
        )
        ids = [row[0] for row in self.db.query(TaskDB.id).filter(*conditions).all()]
        if not ids:
            return []
        affected = (
            self.db.query(TaskDB)
            .filter(TaskDB.id.in_(ids), *conditions)
            .update(
                {TaskDB.status: TaskStatus.HEALTHY.value, TaskDB.updated_at: now},
                synchronize_session=False,
            )
        )
        self._commit("demote completed recurring tasks")
        logger.debug(f"Demoted {affected} completed recurring tasks")
        return ids

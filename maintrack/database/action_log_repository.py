"""Repository for activity log entries."""

import logging
import uuid
from datetime import datetime
from typing import List
from sqlalchemy.orm import Session
from sqlalchemy import desc

from maintrack.errors import DBError
from maintrack.models.action_log import ActionLog
from maintrack.database.models import ActionLogDB, enum_to_value

logger = logging.getLogger(__name__)


class ActionLogRepository:
    """Append-only store for user actions."""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        *,
        user_id: str,
        action_type: str,
        entity_type: str,
        entity_id: str,
        details: str,
        timestamp: datetime,
    ) -> ActionLog:
        row = ActionLogDB(
            id=str(uuid.uuid4()),
            user_id=user_id,
            action_type=enum_to_value(action_type),
            entity_type=enum_to_value(entity_type),
            entity_id=entity_id,
            details=details,
            timestamp=timestamp,
        )
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to append action log: {type(e).__name__}: {str(e)}")
            raise DBError("Failed to append action log") from e

    def list_for_entity(self, entity_id: str) -> List[ActionLog]:
        rows = (
            self.db.query(ActionLogDB)
            .filter(ActionLogDB.entity_id == entity_id)
            .order_by(desc(ActionLogDB.timestamp))
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def list_for_user(self, user_id: str, limit: int = 50) -> List[ActionLog]:
        rows = (
            self.db.query(ActionLogDB)
            .filter(ActionLogDB.user_id == user_id)
            .order_by(desc(ActionLogDB.timestamp))
            .limit(limit)
            .all()
        )
        return [row.to_pydantic() for row in rows]

"""Activity logging hook used by lifecycle operations."""

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from maintrack.clock import Clock, utc_now
from maintrack.database.action_log_repository import ActionLogRepository

logger = logging.getLogger(__name__)

# (user_id, action_type, entity_type, entity_id, details) -> None
LogAction = Callable[[str, str, str, str, str], None]


def noop_log_action(user_id, action_type, entity_type, entity_id, details) -> None:
    return None


class ActionLogRecorder:
    """Fire-and-forget `log_action` that appends to the action_logs table.

    Failures are logged and swallowed; an audit write never fails the
    operation that triggered it.
    """

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.repo = ActionLogRepository(db)
        self.clock = clock or utc_now

    def __call__(self, user_id, action_type, entity_type, entity_id, details) -> None:
        if not all([user_id, action_type, entity_type, entity_id, details]):
            logger.error(
                f"log_action called with missing parameters: "
                f"{user_id!r} {action_type!r} {entity_type!r} {entity_id!r} {details!r}"
            )
            return
        try:
            self.repo.append(
                user_id=user_id,
                action_type=action_type,
                entity_type=entity_type,
                entity_id=entity_id,
                details=details,
                timestamp=self.clock(),
            )
        except Exception:
            logger.exception(f"Failed to record {action_type} on {entity_type} {entity_id}")

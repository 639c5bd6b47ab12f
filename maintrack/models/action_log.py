"""ActionLog data model for maintrack."""

from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field


class ActionType(str, Enum):
    """Kind of user action recorded in the activity log."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    COMPLETE = "COMPLETE"
    POSTPONE = "POSTPONE"


class EntityType(str, Enum):
    """Entity an action applies to."""
    PRODUCT = "PRODUCT"
    TASK = "TASK"
    USER = "USER"


class ActionLog(BaseModel):
    """Activity log entry for a user action."""

    id: str = Field(..., description="Unique log entry identifier")
    user_id: str = Field(..., description="User who performed the action")
    action_type: ActionType = Field(..., description="Type of action")
    entity_type: EntityType = Field(..., description="Type of entity affected")
    entity_id: str = Field(..., description="ID of the entity affected")
    details: str = Field(..., description="Human-readable description")
    timestamp: datetime = Field(..., description="When the action happened")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

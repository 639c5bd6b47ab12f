"""Task data model for maintrack."""

from datetime import datetime
from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field, field_validator


class TaskStatus(str, Enum):
    """Task status enumeration."""
    HEALTHY = "healthy"
    MAINTENANCE = "maintenance"  # Due within the healthy horizon
    OVERDUE = "overdue"
    COMPLETED = "completed"  # Sticky until the demotion sweep clears it (recurring only)


class MaintenanceWindow(BaseModel):
    """Concrete completion window of a recurring task."""

    start_date: datetime = Field(..., description="Date the task becomes due")
    end_date: datetime = Field(..., description="Last date of the tolerance window")

    @field_validator("end_date")
    @classmethod
    def _validate_end_date(cls, v, info):
        start = info.data.get("start_date")
        if start is not None and v < start:
            raise ValueError("end_date must be >= start_date")
        return v

    def contains(self, moment: datetime) -> bool:
        return self.start_date <= moment <= self.end_date


class Task(BaseModel):
    """Canonical Task model."""

    id: str = Field(..., description="Unique task identifier (UUID v4)")
    product_id: str = Field(..., description="Product this task belongs to")
    user_id: str = Field(..., description="User ID who owns this task")
    task_name: str = Field(..., description="Task name")
    description: Optional[str] = Field(None, description="Task description")
    status: TaskStatus = Field(TaskStatus.HEALTHY, description="Cached result of the status rule")
    is_recurring: bool = Field(..., description="Whether the task regenerates a window after completion")
    last_maintenance: Optional[datetime] = Field(None, description="Last time the task was performed")
    frequency: Optional[int] = Field(None, ge=1, description="Recurrence interval in days")
    maintenance_window_days: Optional[int] = Field(
        None,
        ge=0,
        description="Tolerance after the due date before the task is overdue",
    )
    maintenance_window_dates: Optional[MaintenanceWindow] = Field(
        None, description="Current completion window (derived)"
    )
    next_maintenance: Optional[datetime] = Field(None, description="Authoritative due date")
    created_at: datetime = Field(..., description="Task creation timestamp")
    updated_at: datetime = Field(..., description="Task last update timestamp")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

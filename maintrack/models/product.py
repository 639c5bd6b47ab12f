"""Product data model for maintrack."""

from datetime import datetime
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, Field, field_validator

from maintrack.models.constants import (
    DEFAULT_NOTIFICATION_PREFERENCES,
    MAX_NOTIFICATION_OFFSET_DAYS,
    MAX_NOTIFICATION_PREFERENCES,
)


class ProductStatus(str, Enum):
    """Aggregated product status (a product is never completed)."""
    HEALTHY = "healthy"
    MAINTENANCE = "maintenance"
    OVERDUE = "overdue"


def normalize_notification_preferences(value: Optional[List[int]]) -> List[int]:
    """Validate a list of days-before offsets.

    Deduplicates while preserving order. Falls back to the default for None.

    Raises:
        ValueError: If an offset is negative, too large, or the list is too long
    """
    if value is None:
        return list(DEFAULT_NOTIFICATION_PREFERENCES)
    seen = set()
    out: List[int] = []
    for offset in value:
        offset = int(offset)
        if offset < 0 or offset > MAX_NOTIFICATION_OFFSET_DAYS:
            raise ValueError(
                f"notification offsets must be between 0 and {MAX_NOTIFICATION_OFFSET_DAYS} days"
            )
        if offset not in seen:
            seen.add(offset)
            out.append(offset)
    if len(out) > MAX_NOTIFICATION_PREFERENCES:
        raise ValueError(f"at most {MAX_NOTIFICATION_PREFERENCES} notification offsets are allowed")
    return out


class Product(BaseModel):
    """Product that requires maintenance."""

    id: str = Field(..., description="Unique product identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who owns this product")
    name: str = Field(..., description="Product name")
    category: Optional[str] = Field(None, description="Product category")
    manufacturer: Optional[str] = Field(None, description="Manufacturer name")
    model: Optional[str] = Field(None, description="Product model")
    purchase_date: Optional[datetime] = Field(None, description="Purchase date")
    tags: List[str] = Field(default_factory=list, description="Free-form tags")
    icon_url: Optional[str] = Field(None, description="Icon or image URL")
    status: ProductStatus = Field(ProductStatus.HEALTHY, description="Worst status among the product's tasks")
    task_ids: List[str] = Field(default_factory=list, description="Referenced task IDs")
    last_overall_maintenance_id: Optional[str] = Field(
        None, description="Task with the most recent last_maintenance"
    )
    next_overall_maintenance_id: Optional[str] = Field(
        None, description="Task with the soonest next_maintenance"
    )
    notification_preferences: List[int] = Field(
        default_factory=lambda: list(DEFAULT_NOTIFICATION_PREFERENCES),
        description="Days before the due date on which to send reminders",
    )
    created_at: datetime = Field(..., description="Product creation timestamp")
    updated_at: datetime = Field(..., description="Product last update timestamp")

    @field_validator("notification_preferences", mode="before")
    @classmethod
    def _validate_notification_preferences(cls, v):
        return normalize_notification_preferences(v)

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

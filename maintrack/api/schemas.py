"""Request/response models for the maintrack API."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from maintrack.models.action_log import ActionLog
from maintrack.models.product import Product
from maintrack.models.task import MaintenanceWindow, Task


class RegisterRequest(BaseModel):
    """Request model for account registration."""
    email: str = Field(..., min_length=3, description="Login email address")
    password: str = Field(..., min_length=8, description="Account password")
    name: Optional[str] = Field(None, description="Display name")


class LoginRequest(BaseModel):
    """Request model for password login."""
    email: str = Field(..., description="Login email address")
    password: str = Field(..., description="Account password")


class AuthResponse(BaseModel):
    """Response model for authentication."""
    access_token: str
    token_type: str = "bearer"
    user: dict


class ProductCreateRequest(BaseModel):
    """Request model for creating a product."""
    name: str = Field(..., min_length=1, description="Product name")
    category: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    purchase_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    icon_url: Optional[str] = None
    notification_preferences: Optional[List[int]] = Field(
        None, description="Reminder offsets in days before the due date"
    )


class ProductUpdateRequest(BaseModel):
    """Partial product update. Unknown fields are passed through and rejected by the service."""
    name: Optional[str] = None
    category: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    purchase_date: Optional[datetime] = None
    tags: Optional[List[str]] = None
    icon_url: Optional[str] = None
    notification_preferences: Optional[List[int]] = None

    class Config:
        extra = "allow"


class ProductResponse(BaseModel):
    product: Product


class ProductListResponse(BaseModel):
    products: List[Product]
    count: int
    total: int
    page: int
    limit: int


class CategoryListResponse(BaseModel):
    categories: List[str]


class TaskCreateRequest(BaseModel):
    """Request model for creating a task.

    Presence rules (task_name, is_recurring, recurrence fields) are enforced by
    the lifecycle service so they surface as 400 errors.
    """
    task_name: Optional[str] = Field(None, description="Task name")
    description: Optional[str] = None
    is_recurring: Optional[bool] = Field(None, description="Whether the task repeats")
    frequency: Optional[int] = Field(None, description="Days between maintenances")
    maintenance_window_days: Optional[int] = Field(None, description="Length of the acceptable window in days")
    maintenance_window_dates: Optional[MaintenanceWindow] = None
    last_maintenance: Optional[datetime] = None
    next_maintenance: Optional[datetime] = Field(None, description="Due date of a one-off task")


class TaskUpdateRequest(BaseModel):
    """Partial task update. Unknown and immutable fields are rejected by the service."""
    task_name: Optional[str] = None
    description: Optional[str] = None
    frequency: Optional[int] = None
    maintenance_window_days: Optional[int] = None
    last_maintenance: Optional[datetime] = None
    next_maintenance: Optional[datetime] = None

    class Config:
        extra = "allow"


class PostponeRequest(BaseModel):
    days: int = Field(..., description="Days to shift the due date by (>= 1)")


class TaskResponse(BaseModel):
    task: Task


class TaskListResponse(BaseModel):
    tasks: List[Task]
    count: int
    total: int
    page: int
    limit: int


class ActivityResponse(BaseModel):
    actions: List[ActionLog]
    count: int


class JobRunResponse(BaseModel):
    job: str
    summary: dict
    skipped: bool = Field(False, description="True if a run of this job was already in progress")


class CalendarProduct(BaseModel):
    id: str
    name: str


class CalendarEvent(BaseModel):
    """A task placed on the calendar at its due date."""
    id: str
    title: str
    description: Optional[str] = None
    start: datetime
    end: datetime
    status: str
    product: CalendarProduct


class CalendarResponse(BaseModel):
    events: List[CalendarEvent]
    count: int

"""SQLAlchemy database models for maintrack."""

import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, JSON, ForeignKey
from typing import Union, TypeVar, Type

from maintrack.clock import utc_now
from maintrack.database.database import Base
from maintrack.models.task import TaskStatus
from maintrack.models.product import ProductStatus

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


class TaskDB(Base):
    """Database model for Task."""

    __tablename__ = "tasks"

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Ownership
    product_id = Column(String, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Basic fields
    task_name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    status = Column(String, nullable=False, default=TaskStatus.HEALTHY.value, index=True)

    # Recurrence configuration
    is_recurring = Column(Boolean, nullable=False)
    frequency = Column(Integer, nullable=True)
    maintenance_window_days = Column(Integer, nullable=True)

    # Schedule
    last_maintenance = Column(DateTime, nullable=True)
    next_maintenance = Column(DateTime, nullable=True, index=True)
    window_start_date = Column(DateTime, nullable=True)
    window_end_date = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from maintrack.models.task import Task, MaintenanceWindow

        window = None
        if self.window_start_date is not None and self.window_end_date is not None:
            window = MaintenanceWindow(start_date=self.window_start_date, end_date=self.window_end_date)

        return Task(
            id=self.id,
            product_id=self.product_id,
            user_id=self.user_id,
            task_name=self.task_name,
            description=self.description,
            status=value_to_enum(self.status, TaskStatus, TaskStatus.HEALTHY),
            is_recurring=bool(self.is_recurring),
            last_maintenance=self.last_maintenance,
            frequency=self.frequency,
            maintenance_window_days=self.maintenance_window_days,
            maintenance_window_dates=window,
            next_maintenance=self.next_maintenance,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def apply(self, task) -> None:
        """Copy mutable fields from a Pydantic task onto this row."""
        window = task.maintenance_window_dates
        self.task_name = task.task_name
        self.description = task.description
        self.status = enum_to_value(task.status)
        self.is_recurring = task.is_recurring
        self.frequency = task.frequency
        self.maintenance_window_days = task.maintenance_window_days
        self.last_maintenance = task.last_maintenance
        self.next_maintenance = task.next_maintenance
        self.window_start_date = window.start_date if window else None
        self.window_end_date = window.end_date if window else None
        self.updated_at = task.updated_at

    @classmethod
    def from_pydantic(cls, task):
        """Create database model from Pydantic model."""
        row = cls(
            id=task.id,
            product_id=task.product_id,
            user_id=task.user_id,
            created_at=task.created_at,
        )
        row.apply(task)
        return row


class ProductDB(Base):
    """Database model for Product."""

    __tablename__ = "products"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Descriptive fields
    name = Column(String, nullable=False)
    category = Column(String, nullable=True, index=True)
    manufacturer = Column(String, nullable=True)
    model = Column(String, nullable=True)
    purchase_date = Column(DateTime, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    icon_url = Column(String, nullable=True)

    # Aggregated state
    status = Column(String, nullable=False, default=ProductStatus.HEALTHY.value)
    task_ids = Column(JSON, nullable=False, default=list)
    last_overall_maintenance_id = Column(String, nullable=True)
    next_overall_maintenance_id = Column(String, nullable=True)

    # Reminder offsets (days before due), stored as JSON array
    notification_preferences = Column(JSON, nullable=False, default=lambda: [1, 0])

    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from maintrack.models.product import Product
        return Product(
            id=self.id,
            user_id=self.user_id,
            name=self.name,
            category=self.category,
            manufacturer=self.manufacturer,
            model=self.model,
            purchase_date=self.purchase_date,
            tags=list(self.tags or []),
            icon_url=self.icon_url,
            status=value_to_enum(self.status, ProductStatus, ProductStatus.HEALTHY),
            task_ids=list(self.task_ids or []),
            last_overall_maintenance_id=self.last_overall_maintenance_id,
            next_overall_maintenance_id=self.next_overall_maintenance_id,
            notification_preferences=self.notification_preferences,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def apply(self, product) -> None:
        """Copy mutable fields from a Pydantic product onto this row.

        JSON columns are reassigned with fresh lists so SQLAlchemy sees the change.
        """
        self.name = product.name
        self.category = product.category
        self.manufacturer = product.manufacturer
        self.model = product.model
        self.purchase_date = product.purchase_date
        self.tags = list(product.tags)
        self.icon_url = product.icon_url
        self.status = enum_to_value(product.status)
        self.task_ids = list(product.task_ids)
        self.last_overall_maintenance_id = product.last_overall_maintenance_id
        self.next_overall_maintenance_id = product.next_overall_maintenance_id
        self.notification_preferences = list(product.notification_preferences)
        self.updated_at = product.updated_at

    @classmethod
    def from_pydantic(cls, product):
        """Create database model from Pydantic model."""
        row = cls(
            id=product.id,
            user_id=product.user_id,
            created_at=product.created_at,
        )
        row.apply(product)
        return row


class UserDB(Base):
    """Database model for User."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # User profile
    email = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)

    # PBKDF2 hash, never the raw password
    password_hash = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from maintrack.models.user import User
        return User(
            id=self.id,
            email=self.email,
            name=self.name,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_pydantic(cls, user, password_hash: str = None):
        """Create database model from Pydantic model."""
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            password_hash=password_hash,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class ActionLogDB(Base):
    """Database model for an activity log entry."""

    __tablename__ = "action_logs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # No FK: entries outlive deleted users and entities.
    user_id = Column(String, nullable=False, index=True)
    action_type = Column(String, nullable=False)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=False, index=True)
    details = Column(String, nullable=False, default="")
    timestamp = Column(DateTime, nullable=False, default=utc_now, index=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from maintrack.models.action_log import ActionLog
        return ActionLog(
            id=self.id,
            user_id=self.user_id,
            action_type=self.action_type,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            details=self.details,
            timestamp=self.timestamp,
        )

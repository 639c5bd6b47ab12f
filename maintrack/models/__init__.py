"""Data models for maintrack."""

from maintrack.models.task import Task, TaskStatus, MaintenanceWindow
from maintrack.models.product import Product, ProductStatus
from maintrack.models.user import User
from maintrack.models.action_log import ActionLog, ActionType, EntityType

__all__ = [
    "Task",
    "TaskStatus",
    "MaintenanceWindow",
    "Product",
    "ProductStatus",
    "User",
    "ActionLog",
    "ActionType",
    "EntityType",
]

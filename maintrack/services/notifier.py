"""Maintenance reminder delivery for maintrack.

The engine only depends on the `Notifier` protocol. Delivery is best effort:
the engine catches and logs anything a notifier raises.
"""

import logging
import os
from typing import Optional, Protocol

import requests
from dotenv import load_dotenv

from maintrack.models.product import Product
from maintrack.models.task import Task, TaskStatus
from maintrack.models.user import User

load_dotenv()

logger = logging.getLogger(__name__)

EMAIL_API_URL = os.getenv("EMAIL_API_URL", "https://api.resend.com/emails")

_SUBJECTS = {
    TaskStatus.HEALTHY.value: "Upcoming maintenance",
    TaskStatus.MAINTENANCE.value: "Maintenance due soon",
    TaskStatus.OVERDUE.value: "Maintenance overdue",
    TaskStatus.COMPLETED.value: "Maintenance completed",
}


class Notifier(Protocol):
    def notify(self, user: User, product: Product, task: Task) -> None:
        ...


def build_reminder(user: User, product: Product, task: Task) -> tuple:
    """Build the (subject, text) of a reminder for a task."""
    status = getattr(task.status, "value", task.status)
    subject = f"{_SUBJECTS.get(status, 'Maintenance reminder')}: {product.name}"
    due = task.next_maintenance.strftime("%Y-%m-%d") if task.next_maintenance else "not scheduled"
    greeting = f"Hi {user.name}," if user.name else "Hi,"
    text = (
        f"{greeting}\n\n"
        f"Task \"{task.task_name}\" on {product.name} is {status}.\n"
        f"Next maintenance: {due}\n"
    )
    return subject, text


class LoggingNotifier:
    """Notifier that only writes reminders to the log (development default)."""

    def notify(self, user: User, product: Product, task: Task) -> None:
        subject, _ = build_reminder(user, product, task)
        logger.info(f"Reminder for {user.email}: {subject} (task {task.id})")


class EmailNotifier:
    """Send reminders through an HTTP email API (Resend-compatible)."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_address: Optional[str] = None,
        api_url: str = EMAIL_API_URL,
        timeout: float = 10,
    ):
        """Initialize the email notifier.

        Args:
            api_key: Email API key. If None, reads from EMAIL_API_KEY env var.
            from_address: Sender address. If None, reads from EMAIL_FROM_ADDRESS env var.
            api_url: Endpoint accepting `{from, to, subject, text}` JSON
            timeout: Request timeout in seconds
        """
        self.api_key = api_key or os.getenv("EMAIL_API_KEY")
        if not self.api_key:
            raise ValueError("Email API key is required. Set EMAIL_API_KEY env var.")
        self.from_address = from_address or os.getenv("EMAIL_FROM_ADDRESS", "reminders@maintrack.local")
        self.api_url = api_url
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def notify(self, user: User, product: Product, task: Task) -> None:
        """Send one reminder email.

        Raises:
            requests.RequestException: If the API call fails
        """
        subject, text = build_reminder(user, product, task)
        payload = {
            "from": self.from_address,
            "to": [user.email],
            "subject": subject,
            "text": text,
        }
        response = requests.post(self.api_url, headers=self.headers, json=payload, timeout=self.timeout)
        response.raise_for_status()
        logger.debug(f"Sent reminder for task {task.id} to {user.email}")


def build_notifier(kind: Optional[str] = None) -> Notifier:
    """Build the notifier selected by `kind` or the NOTIFIER env var (`log` | `email`)."""
    kind = (kind or os.getenv("NOTIFIER", "log")).lower()
    if kind == "email":
        try:
            return EmailNotifier()
        except ValueError as e:
            logger.warning(f"{e} Falling back to log notifier")
            return LoggingNotifier()
    if kind != "log":
        logger.warning(f"Unknown NOTIFIER {kind!r}; falling back to log notifier")
    return LoggingNotifier()

"""Pytest fixtures and configuration for maintrack tests."""

import os

# Keep the app's module-level engine off the developer database.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JOBS_ENABLED", "false")
os.environ.setdefault("NOTIFIER", "log")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ADMIN_EMAILS", "test@example.com")

import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from maintrack.database.database import Base
from maintrack.database.repository import TaskRepository
from maintrack.database.product_repository import ProductRepository
from maintrack.database.user_repository import UserRepository
from maintrack.engine.lifecycle import TaskLifecycleService, ProductService
from maintrack.models.task_factory import create_product_base


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

FROZEN_NOW = datetime(2024, 3, 1, 12, 0, 0)


class FrozenClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, now: datetime = FROZEN_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingNotifier:
    """Notifier fake that records calls and can be told to fail."""

    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    def notify(self, user, product, task) -> None:
        self.calls.append((user.id, product.id, task.id, task.status))
        if self.fail:
            raise RuntimeError("notifier down")


class RecordingLogAction:
    """log_action fake that keeps every recorded action."""

    def __init__(self):
        self.entries = []

    def __call__(self, user_id, action_type, entity_type, entity_id, details) -> None:
        self.entries.append((user_id, action_type, entity_type, entity_id, details))

    def actions(self):
        return [(e[1], e[2]) for e in self.entries]


@pytest.fixture
def test_user_id():
    """Test user ID for multi-user testing."""
    return "test-user-123"


@pytest.fixture(scope="function")
def db_session(test_user_id):
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test,
    seeded with the test user (required for foreign key constraints).
    """
    from maintrack.database import models  # noqa: F401
    from maintrack.database.models import UserDB

    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    session.add(
        UserDB(
            id=test_user_id,
            email="test@example.com",
            name="Test User",
            created_at=FROZEN_NOW,
            updated_at=FROZEN_NOW,
        )
    )
    session.commit()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def action_log():
    return RecordingLogAction()


@pytest.fixture
def task_repository(db_session: Session):
    """Create a TaskRepository instance for testing."""
    return TaskRepository(db_session)


@pytest.fixture
def product_repository(db_session: Session):
    return ProductRepository(db_session)


@pytest.fixture
def user_repository(db_session: Session):
    return UserRepository(db_session)


@pytest.fixture
def lifecycle(task_repository, product_repository, action_log, clock):
    return TaskLifecycleService(task_repository, product_repository, log_action=action_log, clock=clock)


@pytest.fixture
def product_service(task_repository, product_repository, action_log, clock):
    return ProductService(task_repository, product_repository, log_action=action_log, clock=clock)


@pytest.fixture
def test_product(product_repository, test_user_id, clock):
    """A stored product owned by the test user, with default reminder offsets."""
    return product_repository.create(
        create_product_base(user_id=test_user_id, name="Espresso Machine", now=clock(), category="kitchen")
    )


@pytest.fixture
def make_task(lifecycle, test_user_id, test_product):
    """Create a task on the test product through the lifecycle service."""

    def _make(**task_data):
        data = {"task_name": "Descale", "is_recurring": False}
        data.update(task_data)
        return lifecycle.create(test_user_id, test_product.id, data)

    return _make


@pytest.fixture
def test_user(user_repository, test_user_id):
    """The seeded test user as a pydantic model."""
    return user_repository.get(test_user_id)


@pytest.fixture
def test_client(db_session: Session, test_user, clock, notifier):
    """Create a FastAPI test client with overridden database, auth, clock and notifier."""
    from maintrack.api.app import app, get_clock, get_notifier
    from maintrack.database.database import get_db
    from maintrack.auth.dependencies import get_current_user

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: test_user
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()

"""FastAPI web application for maintrack."""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from maintrack.api.schemas import (
    ActivityResponse,
    AuthResponse,
    CalendarResponse,
    CategoryListResponse,
    JobRunResponse,
    LoginRequest,
    PostponeRequest,
    ProductCreateRequest,
    ProductListResponse,
    ProductResponse,
    ProductUpdateRequest,
    RegisterRequest,
    TaskCreateRequest,
    TaskListResponse,
    TaskResponse,
    TaskUpdateRequest,
)
from maintrack.auth.dependencies import get_current_user, require_admin
from maintrack.auth.jwt import create_access_token
from maintrack.auth.passwords import hash_password, verify_password
from maintrack.clock import Clock, utc_now
from maintrack.database.action_log_repository import ActionLogRepository
from maintrack.database.database import get_db, init_db
from maintrack.database.product_repository import ProductRepository
from maintrack.database.repository import TaskRepository
from maintrack.database.user_repository import UserRepository
from maintrack.engine.calendar_view import user_calendar
from maintrack.engine.jobs import JOBS_ENABLED, default_jobs, start_jobs, stop_jobs
from maintrack.engine.lifecycle import ProductService, TaskLifecycleService, parse_datetime
from maintrack.engine.notifications import run_notification_sweep
from maintrack.engine.reconciliation import run_reconciliation
from maintrack.errors import MaintrackError, ValidationError
from maintrack.logging_setup import setup_logging
from maintrack.models.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from maintrack.models.task import TaskStatus
from maintrack.models.task_factory import create_product_base
from maintrack.models.user import User
from maintrack.services.action_logger import ActionLogRecorder
from maintrack.services.notifier import Notifier, build_notifier

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_db()
    jobs = default_jobs()
    # Manual triggers share these instances, and their locks, with the scheduled loops
    app.state.jobs = {job.name: job for job in jobs}
    handles = start_jobs(jobs) if JOBS_ENABLED else []
    try:
        yield
    finally:
        if handles:
            await stop_jobs(handles)


# Initialize FastAPI app
app = FastAPI(
    title="maintrack API",
    description="Tracks household products and keeps their recurring maintenance on schedule",
    version=API_VERSION,
    lifespan=lifespan,
)


@app.exception_handler(MaintrackError)
async def maintrack_error_handler(request: Request, exc: MaintrackError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Dependencies
def get_clock() -> Clock:
    return utc_now


def get_notifier() -> Notifier:
    return build_notifier()


def get_task_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> TaskLifecycleService:
    return TaskLifecycleService(
        TaskRepository(db),
        ProductRepository(db),
        log_action=ActionLogRecorder(db, clock=clock),
        clock=clock,
    )


def get_product_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> ProductService:
    return ProductService(
        TaskRepository(db),
        ProductRepository(db),
        log_action=ActionLogRecorder(db, clock=clock),
        clock=clock,
    )


def _page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": API_VERSION}


# Auth
@app.post("/auth/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    """Create an account and return an access token."""
    users = UserRepository(db)
    email = request.email.strip().lower()
    if users.get_by_email(email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    now = clock()
    user = users.create(
        User(id=str(uuid.uuid4()), email=email, name=request.name, created_at=now, updated_at=now),
        password_hash=hash_password(request.password),
    )
    logger.info(f"Registered user {user.id}")
    return AuthResponse(access_token=create_access_token(user.id), user=user.model_dump(mode="json"))


@app.post("/auth/login", response_model=AuthResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for an access token."""
    users = UserRepository(db)
    email = request.email.strip().lower()
    stored_hash = users.get_password_hash(email)
    if not stored_hash or not verify_password(request.password, stored_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = users.get_by_email(email)
    return AuthResponse(access_token=create_access_token(user.id), user=user.model_dump(mode="json"))


@app.get("/users/me", response_model=User)
def read_current_user(current_user: User = Depends(get_current_user)):
    return current_user


@app.get("/activity", response_model=ActivityResponse)
def list_activity(
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Most recent actions of the current user."""
    actions = ActionLogRepository(db).list_for_user(current_user.id, limit=limit)
    return ActivityResponse(actions=actions, count=len(actions))


# Products
@app.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    request: ProductCreateRequest,
    current_user: User = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
):
    try:
        product = create_product_base(
            user_id=current_user.id,
            name=request.name.strip(),
            now=service.clock(),
            category=request.category,
            manufacturer=request.manufacturer,
            model=request.model,
            purchase_date=parse_datetime(request.purchase_date, "purchase_date"),
            tags=request.tags,
            icon_url=request.icon_url,
            notification_preferences=request.notification_preferences,
        )
    except ValueError as e:
        raise ValidationError(str(e)) from e
    return ProductResponse(product=service.create(product))


@app.get("/products", response_model=ProductListResponse)
def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    products, total = ProductRepository(db).list_for_user(
        current_user.id,
        category=category,
        search=search,
        offset=_page_offset(page, limit),
        limit=limit,
    )
    return ProductListResponse(products=products, count=len(products), total=total, page=page, limit=limit)


@app.get("/products/categories", response_model=CategoryListResponse)
def list_product_categories(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return CategoryListResponse(categories=ProductRepository(db).list_categories(current_user.id))


@app.get("/products/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: str,
    current_user: User = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
):
    return ProductResponse(product=service.get_owned(product_id, current_user.id))


@app.patch("/products/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    request: ProductUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
):
    patch = request.model_dump(exclude_unset=True)
    return ProductResponse(product=service.update(product_id, current_user.id, patch))


@app.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: str,
    current_user: User = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
):
    service.delete(product_id, current_user.id)


# Tasks
@app.post("/products/{product_id}/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    product_id: str,
    request: TaskCreateRequest,
    current_user: User = Depends(get_current_user),
    service: TaskLifecycleService = Depends(get_task_service),
):
    task = service.create(current_user.id, product_id, request.model_dump(exclude_unset=True))
    return TaskResponse(task=task)


@app.get("/products/{product_id}/tasks", response_model=TaskListResponse)
def list_product_tasks(
    product_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
):
    service.get_owned(product_id, current_user.id)
    tasks, total = service.tasks.list_for_user(
        current_user.id,
        product_id=product_id,
        offset=_page_offset(page, limit),
        limit=limit,
    )
    return TaskListResponse(tasks=tasks, count=len(tasks), total=total, page=page, limit=limit)


@app.get("/tasks", response_model=TaskListResponse)
def list_tasks(
    product_id: Optional[str] = None,
    task_status: Optional[TaskStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the current user's tasks, soonest due first."""
    tasks, total = TaskRepository(db).list_for_user(
        current_user.id,
        product_id=product_id,
        status=task_status,
        search=search,
        offset=_page_offset(page, limit),
        limit=limit,
    )
    return TaskListResponse(tasks=tasks, count=len(tasks), total=total, page=page, limit=limit)


@app.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    service: TaskLifecycleService = Depends(get_task_service),
):
    return TaskResponse(task=service.get_owned(task_id, current_user.id))


@app.patch("/tasks/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: str,
    request: TaskUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: TaskLifecycleService = Depends(get_task_service),
):
    service.get_owned(task_id, current_user.id)
    return TaskResponse(task=service.update(task_id, request.model_dump(exclude_unset=True)))


@app.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    service: TaskLifecycleService = Depends(get_task_service),
):
    service.get_owned(task_id, current_user.id)
    service.delete(task_id)


@app.post("/tasks/{task_id}/complete", response_model=TaskResponse)
def complete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    service: TaskLifecycleService = Depends(get_task_service),
):
    service.get_owned(task_id, current_user.id)
    return TaskResponse(task=service.complete(task_id))


@app.post("/tasks/{task_id}/postpone", response_model=TaskResponse)
def postpone_task(
    task_id: str,
    request: PostponeRequest,
    current_user: User = Depends(get_current_user),
    service: TaskLifecycleService = Depends(get_task_service),
):
    service.get_owned(task_id, current_user.id)
    return TaskResponse(task=service.postpone(task_id, request.days))


# Calendar
@app.get("/calendar", response_model=CalendarResponse)
def get_calendar(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """The current user's scheduled tasks as calendar events."""
    events = user_calendar(current_user.id, tasks=TaskRepository(db), products=ProductRepository(db))
    return CalendarResponse(events=events, count=len(events))


@app.get("/calendar/products/{product_id}", response_model=CalendarResponse)
def get_product_calendar(
    product_id: str,
    current_user: User = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
):
    service.get_owned(product_id, current_user.id)
    events = user_calendar(
        current_user.id,
        tasks=service.tasks,
        products=service.products,
        product_id=product_id,
    )
    return CalendarResponse(events=events, count=len(events))


# Jobs
def _trigger_job(request: Request, name: str, func) -> JobRunResponse:
    """Run `func` under the named job's lock; skip if that job is already running."""
    job = request.app.state.jobs[name]
    ran, summary = job.try_run(func)
    if not ran:
        return JobRunResponse(job=name, summary={}, skipped=True)
    return JobRunResponse(job=name, summary=summary)


@app.post("/jobs/reconcile", response_model=JobRunResponse)
def run_reconcile_job(
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    """Run one reconciliation tick now."""
    logger.info(f"Reconciliation triggered by user {current_user.id}")
    return _trigger_job(
        request,
        "reconcile",
        lambda: run_reconciliation(
            tasks=TaskRepository(db),
            products=ProductRepository(db),
            users=UserRepository(db),
            notifier=notifier,
            clock=clock,
        ).as_dict(),
    )


@app.post("/jobs/notify", response_model=JobRunResponse)
def run_notify_job(
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    """Run one notification sweep now."""
    logger.info(f"Notification sweep triggered by user {current_user.id}")
    return _trigger_job(
        request,
        "notify",
        lambda: run_notification_sweep(
            tasks=TaskRepository(db),
            products=ProductRepository(db),
            users=UserRepository(db),
            notifier=notifier,
            clock=clock,
        ).as_dict(),
    )

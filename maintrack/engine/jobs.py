"""Periodic job runner for the reconciliation and notification sweeps.

Jobs are plain synchronous callables. Each tick runs the callable in a worker
thread; a tick that arrives while the previous run is still in progress is
skipped, so runs never overlap.
"""

import asyncio
import logging
import os
import threading
from typing import Any, Callable, List, Optional, Tuple

from dotenv import load_dotenv

from maintrack.database.database import SessionLocal
from maintrack.database.product_repository import ProductRepository
from maintrack.database.repository import TaskRepository
from maintrack.database.user_repository import UserRepository
from maintrack.engine.notifications import run_notification_sweep
from maintrack.engine.reconciliation import run_reconciliation
from maintrack.models.constants import DEFAULT_NOTIFY_INTERVAL_SECONDS, DEFAULT_RECONCILE_INTERVAL_SECONDS
from maintrack.services.notifier import build_notifier

load_dotenv()

logger = logging.getLogger(__name__)

JOBS_ENABLED = os.getenv("JOBS_ENABLED", "false").lower() in ("1", "true", "yes")
RECONCILE_INTERVAL_SECONDS = float(os.getenv("RECONCILE_INTERVAL_SECONDS", str(DEFAULT_RECONCILE_INTERVAL_SECONDS)))
NOTIFY_INTERVAL_SECONDS = float(os.getenv("NOTIFY_INTERVAL_SECONDS", str(DEFAULT_NOTIFY_INTERVAL_SECONDS)))


class PeriodicJob:
    """A named synchronous job fired every `interval_seconds`."""

    def __init__(self, name: str, func: Callable[[], Any], interval_seconds: float):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self.func = func
        self.interval_seconds = float(interval_seconds)
        self._lock = threading.Lock()
        self.runs = 0
        self.skipped = 0

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def try_run(self, func: Optional[Callable[[], Any]] = None) -> Tuple[bool, Any]:
        """Run `func` (default: the job's own callable) under the job's lock.

        Manual triggers pass their own callable so they share the lock with
        the scheduled ticks. Exceptions propagate to the caller.

        Returns:
            (False, None) if a run was already in progress, else (True, result)
        """
        if not self._lock.acquire(blocking=False):
            self.skipped += 1
            logger.info(f"Job {self.name} still running; skipping this tick")
            return False, None
        try:
            self.runs += 1
            return True, (func or self.func)()
        finally:
            self._lock.release()

    def run_once(self) -> Optional[Any]:
        """Run the job now unless a run is already in progress.

        Returns:
            The job's return value, or None if the run was skipped or failed
        """
        try:
            _, result = self.try_run()
        except Exception:
            logger.exception(f"Job {self.name} failed")
            return None
        return result

    async def tick(self) -> Optional[Any]:
        return await asyncio.to_thread(self.run_once)

    async def run_forever(self) -> None:
        """Fire the job on a fixed interval until cancelled."""
        logger.info(f"Starting job {self.name} every {self.interval_seconds:g}s")
        pending: Optional[asyncio.Task] = None
        try:
            while True:
                if pending is not None and not pending.done():
                    self.skipped += 1
                    logger.info(f"Job {self.name} still running; skipping this tick")
                else:
                    pending = asyncio.create_task(self.tick())
                await asyncio.sleep(self.interval_seconds)
        finally:
            # A worker thread cannot be interrupted; wait for the run in flight.
            if pending is not None and not pending.done():
                await asyncio.shield(pending)
            logger.info(f"Stopped job {self.name}")


def reconcile_job() -> dict:
    """One reconciliation tick against a fresh database session."""
    db = SessionLocal()
    try:
        result = run_reconciliation(
            tasks=TaskRepository(db),
            products=ProductRepository(db),
            users=UserRepository(db),
            notifier=build_notifier(),
        )
        return result.as_dict()
    finally:
        db.close()


def notify_job() -> dict:
    """One notification sweep against a fresh database session."""
    db = SessionLocal()
    try:
        result = run_notification_sweep(
            tasks=TaskRepository(db),
            products=ProductRepository(db),
            users=UserRepository(db),
            notifier=build_notifier(),
        )
        return result.as_dict()
    finally:
        db.close()


def default_jobs() -> List[PeriodicJob]:
    return [
        PeriodicJob("reconcile", reconcile_job, RECONCILE_INTERVAL_SECONDS),
        PeriodicJob("notify", notify_job, NOTIFY_INTERVAL_SECONDS),
    ]


def start_jobs(jobs: Optional[List[PeriodicJob]] = None) -> List[asyncio.Task]:
    """Schedule each job's loop on the running event loop."""
    return [asyncio.create_task(job.run_forever()) for job in (jobs or default_jobs())]


async def stop_jobs(handles: List[asyncio.Task]) -> None:
    for handle in handles:
        handle.cancel()
    await asyncio.gather(*handles, return_exceptions=True)

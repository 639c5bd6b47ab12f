"""Tests for the periodic job runner."""

import asyncio
import threading
import time

import pytest

from maintrack.engine.jobs import PeriodicJob


class TestPeriodicJob:

    def test_run_once_returns_result(self):
        job = PeriodicJob("sum", lambda: 42, interval_seconds=1)
        assert job.run_once() == 42
        assert job.runs == 1

    def test_failing_job_is_logged_not_raised(self):
        def boom():
            raise RuntimeError("broken")

        job = PeriodicJob("boom", boom, interval_seconds=1)
        assert job.run_once() is None
        assert job.runs == 1
        assert job.running is False

    def test_overlapping_run_is_skipped(self):
        started = threading.Event()
        release = threading.Event()

        def slow():
            started.set()
            release.wait(timeout=5)
            return "done"

        job = PeriodicJob("slow", slow, interval_seconds=1)
        worker = threading.Thread(target=job.run_once)
        worker.start()
        try:
            assert started.wait(timeout=5)
            assert job.running is True
            # Second tick while the first is still running
            assert job.run_once() is None
            assert job.skipped == 1
        finally:
            release.set()
            worker.join(timeout=5)

        assert job.runs == 1
        assert job.run_once() == "done"

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            PeriodicJob("bad", lambda: None, interval_seconds=0)

    def test_run_forever_ticks_until_cancelled(self):
        calls = []
        job = PeriodicJob("count", lambda: calls.append(1), interval_seconds=0.01)

        async def drive():
            handle = asyncio.create_task(job.run_forever())
            await asyncio.sleep(0.1)
            handle.cancel()
            with pytest.raises(asyncio.CancelledError):
                await handle

        asyncio.run(drive())
        assert len(calls) >= 2

    def test_try_run_uses_given_callable_under_the_same_lock(self):
        job = PeriodicJob("manual", lambda: "scheduled", interval_seconds=1)
        assert job.try_run(lambda: "manual") == (True, "manual")

        job._lock.acquire()
        try:
            assert job.try_run(lambda: "manual") == (False, None)
        finally:
            job._lock.release()
        assert job.runs == 1
        assert job.skipped == 1

    def test_try_run_propagates_errors(self):
        def boom():
            raise RuntimeError("broken")

        job = PeriodicJob("manual", lambda: None, interval_seconds=1)
        with pytest.raises(RuntimeError):
            job.try_run(boom)
        assert job.running is False

    def test_cancel_waits_for_run_in_flight(self):
        started = threading.Event()
        finished = threading.Event()

        def slow():
            started.set()
            time.sleep(0.2)
            finished.set()

        job = PeriodicJob("slow", slow, interval_seconds=10)

        async def drive():
            handle = asyncio.create_task(job.run_forever())
            while not started.is_set():
                await asyncio.sleep(0.01)
            handle.cancel()
            with pytest.raises(asyncio.CancelledError):
                await handle
            assert finished.is_set()

        asyncio.run(drive())
        assert job.running is False

"""Cancellable step timers: APScheduler-backed real time and a virtual clock."""

from __future__ import annotations

import heapq
import itertools
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Protocol, Tuple

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class StepTimer(Protocol):
    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> TimerHandle: ...


# ----------------------------------------------------------------------
# Real time
# ----------------------------------------------------------------------


class ScheduledJob:
    """Handle around a one-shot APScheduler job."""

    def __init__(self, job) -> None:
        self.job = job
        self.cancelled = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        try:
            self.job.remove()
        except JobLookupError:
            # Already ran.
            pass


class SchedulerTimer:
    """Run step callbacks on a background APScheduler with a single worker."""

    def __init__(
        self,
        scheduler: Optional[BackgroundScheduler] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.scheduler = scheduler or BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=1)},
            job_defaults={"coalesce": False, "max_instances": 1, "misfire_grace_time": None},
        )
        self._counter = itertools.count()

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            self.logger.debug("Step scheduler started")

    def shutdown(self, wait: bool = False) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            self.logger.debug("Step scheduler stopped")

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> ScheduledJob:
        run_date = datetime.now() + timedelta(seconds=max(0.0, delay_seconds))
        job = self.scheduler.add_job(
            callback,
            trigger=DateTrigger(run_date=run_date),
            id=f"reveal-step-{next(self._counter)}",
            name="Reveal Step",
            max_instances=1,
        )
        return ScheduledJob(job)


# ----------------------------------------------------------------------
# Virtual time
# ----------------------------------------------------------------------


class ScheduledCall:
    """Pending callback on a :class:`VirtualTimer`."""

    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualTimer:
    """Deterministic clock that only moves when told to.

    Callbacks run synchronously on the caller's thread, in due order and
    then in scheduling order for equal due times.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: List[Tuple[float, int, ScheduledCall]] = []
        self._counter = itertools.count()

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(self.now + max(0.0, delay_seconds), callback)
        heapq.heappush(self._queue, (call.due, next(self._counter), call))
        return call

    @property
    def pending(self) -> int:
        return sum(1 for _, _, call in self._queue if not call.cancelled)

    def _pop_live(self) -> Optional[ScheduledCall]:
        while self._queue:
            _, _, call = heapq.heappop(self._queue)
            if not call.cancelled:
                return call
        return None

    def next_due(self) -> Optional[float]:
        for due, _, call in sorted(self._queue):
            if not call.cancelled:
                return due
        return None

    def run_next(self) -> bool:
        """Jump to the earliest pending callback and run it."""
        call = self._pop_live()
        if call is None:
            return False
        self.now = max(self.now, call.due)
        call.callback()
        return True

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every callback that falls due."""
        target = self.now + seconds
        ran = 0
        while True:
            due = self.next_due()
            if due is None or due > target:
                break
            self.run_next()
            ran += 1
        self.now = target
        return ran

    def run_until_idle(self, limit: int = 10_000) -> int:
        ran = 0
        while ran < limit and self.run_next():
            ran += 1
        return ran


__all__ = [
    "ScheduledCall",
    "ScheduledJob",
    "SchedulerTimer",
    "StepTimer",
    "TimerHandle",
    "VirtualTimer",
]

import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional, Protocol

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

Callback = Callable[..., Awaitable[Any]]


class TimerHandle:
    """Handle of one scheduled job. cancel() is idempotent.

    The scheduler runs run() instead of the callback itself, so a run that
    the executor had already queued when cancel() was called does nothing.
    """

    def __init__(self, func: Callback, args: tuple):
        self.func: Callback = func
        self.args: tuple = args
        self.job: Optional[Job] = None
        self.cancelled: bool = False

    async def run(self) -> None:
        if self.cancelled:
            return
        await self.func(*self.args)

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        if self.job is None:
            return
        try:
            self.job.remove()
        except JobLookupError:
            # One-shot jobs are dropped by the scheduler after they run
            logging.debug(f"Job {self.job.id} already gone")


class TimerScheduler(Protocol):
    def call_every(self, seconds: float, func: Callback, *args) -> Any: ...

    def call_later(self, seconds: float, func: Callback, *args) -> Any: ...


class RevealScheduler:
    """Schedules the timers of a round reveal on an AsyncIOScheduler.

    Callbacks must be coroutine functions so that they run on the event loop
    instead of the scheduler's thread pool.
    """

    def __init__(self, scheduler: AsyncIOScheduler):
        self.scheduler: AsyncIOScheduler = scheduler

    def call_every(self, seconds: float, func: Callback, *args) -> TimerHandle:
        handle = TimerHandle(func, args)
        handle.job = self.scheduler.add_job(
            handle.run,
            "interval",
            seconds=seconds,
            max_instances=1,
            coalesce=True,
        )
        return handle

    def call_later(self, seconds: float, func: Callback, *args) -> TimerHandle:
        handle = TimerHandle(func, args)
        handle.job = self.scheduler.add_job(
            handle.run,
            "date",
            run_date=datetime.now() + timedelta(seconds=seconds),
            misfire_grace_time=None,
        )
        return handle

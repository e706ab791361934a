"""
Scheduler - periodic jobs and daily wall-clock triggers on asyncio

Every job follows the same contract:
- start() is idempotent and spawns one background task
- stop() is idempotent and only cancels *future* runs through the job's
  CancellationToken; a run already in progress completes normally
- exceptions raised by a run are logged and the job keeps its schedule

aclose() is the only path that cancels tasks outright and is meant for
process shutdown.
"""
import asyncio
from datetime import datetime, time, timedelta
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Set
from zoneinfo import ZoneInfo

from chainwatch.core.exceptions import SchedulerError
from chainwatch.logger import logger


Action = Callable[[], Awaitable[Any]]


class CancellationToken:
    """One-shot stop signal shared between a job and its background task."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; True if cancelled meanwhile."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(timeout, 0))
        except asyncio.TimeoutError:
            return False
        return True


class ScheduledJob:
    """Base class: subclasses decide how long to wait before each run."""

    def __init__(self, name: str, action: Action):
        self.name = name
        self.action = action
        self.run_count = 0
        self._token: Optional[CancellationToken] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._token is not None and not self._token.cancelled

    def start(self) -> bool:
        """Schedule future runs. Returns False if already running."""
        if self.running:
            return False
        token = CancellationToken()
        task = asyncio.get_running_loop().create_task(self._loop(token), name=f"job:{self.name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._token = token
        logger.info(f"Job '{self.name}' started")
        return True

    def stop(self) -> bool:
        """Cancel future runs. Returns False if not running."""
        if not self.running:
            return False
        self._token.cancel()
        self._token = None
        logger.info(f"Job '{self.name}' stopped")
        return True

    async def aclose(self) -> None:
        """Stop and cancel any in-flight run (shutdown only)."""
        self.stop()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def wait_idle(self) -> None:
        """Wait for stopped loops to finish their in-flight run."""
        tasks = [t for t in self._tasks if not t.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def next_delay(self) -> float:
        raise NotImplementedError

    async def _loop(self, token: CancellationToken) -> None:
        while not token.cancelled:
            if await token.wait(self.next_delay()):
                break
            await self._fire()

    async def _fire(self) -> None:
        self.run_count += 1
        logger.debug(f"Job '{self.name}' firing (run {self.run_count})")
        try:
            await self.action()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Job '{self.name}' raised; keeping schedule")


class PeriodicJob(ScheduledJob):
    """Runs ``action`` every ``interval_seconds``, measured from the end of the previous run."""

    def __init__(self, name: str, interval_seconds: float, action: Action):
        if interval_seconds <= 0:
            raise SchedulerError(f"interval must be > 0 for job '{name}', got {interval_seconds}")
        super().__init__(name, action)
        self.interval_seconds = interval_seconds

    def next_delay(self) -> float:
        return self.interval_seconds


class DailyTrigger(ScheduledJob):
    """Runs ``action`` at a wall-clock time on the given weekdays (Monday=0)."""

    def __init__(
        self,
        name: str,
        at: time,
        weekdays: Iterable[int],
        tz: ZoneInfo,
        action: Action,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(name, action)
        self.at = at
        self.weekdays = frozenset(weekdays)
        if not self.weekdays:
            raise SchedulerError(f"trigger '{name}' needs at least one weekday")
        self.tz = tz
        self._clock = clock or (lambda: datetime.now(tz))

    def next_fire_time(self, now: datetime) -> datetime:
        """First matching instant strictly after ``now``."""
        local_now = now.astimezone(self.tz)
        candidate = datetime.combine(local_now.date(), self.at, tzinfo=self.tz)
        for _ in range(8):
            if candidate > local_now and candidate.weekday() in self.weekdays:
                return candidate
            candidate += timedelta(days=1)
        raise SchedulerError(f"trigger '{self.name}' has no upcoming fire time")

    def next_delay(self) -> float:
        now = self._clock()
        return (self.next_fire_time(now) - now).total_seconds()


class Scheduler:
    """Named registry of jobs with idempotent start/stop."""

    def __init__(self):
        self._jobs: Dict[str, ScheduledJob] = {}

    def add(self, job: ScheduledJob) -> ScheduledJob:
        if job.name in self._jobs:
            raise SchedulerError(f"job '{job.name}' already registered")
        self._jobs[job.name] = job
        return job

    def get(self, name: str) -> ScheduledJob:
        try:
            return self._jobs[name]
        except KeyError:
            raise SchedulerError(f"unknown job '{name}'") from None

    def has(self, name: str) -> bool:
        return name in self._jobs

    def start(self, name: str) -> bool:
        return self.get(name).start()

    def stop(self, name: str) -> bool:
        return self.get(name).stop()

    def is_running(self, name: str) -> bool:
        job = self._jobs.get(name)
        return job is not None and job.running

    async def aclose(self) -> None:
        for job in self._jobs.values():
            await job.aclose()

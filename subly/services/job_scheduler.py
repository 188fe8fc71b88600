"""
Lightweight in-process scheduler for the daily background sweeps.
Each job has a cron expression evaluated in the clock's timezone.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from croniter import croniter

from subly.core.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

JobHandler = Callable[[], Awaitable[Any]]


@dataclass
class ScheduledJob:
    name: str
    cron: str
    handler: JobHandler
    next_run_at: Optional[datetime] = None
    last_run_at: Optional[datetime] = None
    last_result: Any = None
    last_error: Optional[str] = None
    running: bool = field(default=False, repr=False)

    def status(self) -> Dict[str, Any]:
        result = self.last_result
        if hasattr(result, "as_dict"):
            result = result.as_dict()
        return {
            "name": self.name,
            "cron": self.cron,
            "running": self.running,
            "last_run_at": self.last_run_at,
            "next_run_at": self.next_run_at,
            "last_result": result,
            "last_error": self.last_error,
        }


class JobScheduler:
    """Polls registered jobs and runs the ones whose cron time has passed."""

    def __init__(self, clock: Clock | None = None, poll_seconds: int = 30):
        self.clock = clock or SystemClock()
        self.poll_seconds = poll_seconds
        self._jobs: Dict[str, ScheduledJob] = {}
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._job_tasks: Set[asyncio.Task] = set()

    def add_job(self, name: str, cron: str, handler: JobHandler) -> ScheduledJob:
        if not croniter.is_valid(cron):
            raise ValueError(f"Invalid cron expression for job {name}: {cron!r}")
        job = ScheduledJob(name=name, cron=cron, handler=handler)
        job.next_run_at = self._compute_next_run(cron, self.clock.now())
        self._jobs[name] = job
        logger.info("Scheduled job %s (%s), next run at %s", name, cron, job.next_run_at)
        return job

    def get_job(self, name: str) -> ScheduledJob:
        try:
            return self._jobs[name]
        except KeyError:
            raise KeyError(f"Unknown job: {name}") from None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start scheduler loop as background task."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        logger.info("JobScheduler started with %s jobs", len(self._jobs))

    async def stop(self) -> None:
        """Stop scheduler loop and wait for in-flight jobs."""
        self._stop_event.set()
        if self._task:
            await self._task
            self._task = None
        if self._job_tasks:
            await asyncio.gather(*self._job_tasks, return_exceptions=True)
        logger.info("JobScheduler stopped")

    def call_later(self, delay_seconds: float, name: str, handler: JobHandler) -> None:
        """Run ``handler`` once after ``delay_seconds`` (development start-up checks)."""

        async def _delayed() -> None:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay_seconds)
                return
            except asyncio.TimeoutError:
                pass
            logger.info("Running initial %s check", name)
            try:
                await handler()
            except Exception as exc:
                logger.exception("Initial %s check failed: %s", name, exc)

        self._track(asyncio.create_task(_delayed()))

    async def run_job(self, name: str) -> Any:
        """Run a job immediately and return its result."""
        return await self._execute_job(self.get_job(name))

    def status(self) -> List[Dict[str, Any]]:
        return [job.status() for job in self._jobs.values()]

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self._tick()
            except Exception as exc:
                logger.exception("JobScheduler tick failed: %s", exc)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_seconds)
            except asyncio.TimeoutError:
                pass

    def _tick(self) -> None:
        now = self.clock.now()
        for job in self._jobs.values():
            if job.running:
                continue
            if job.next_run_at is None or job.next_run_at > now:
                continue

            # Advance before running so a failing job is not retried every poll.
            job.next_run_at = self._compute_next_run(job.cron, now)
            logger.info("%s job triggered", job.name)
            self._track(asyncio.create_task(self._execute_job(job)))

    async def _execute_job(self, job: ScheduledJob) -> Any:
        job.running = True
        try:
            result = await job.handler()
            job.last_result = result
            job.last_error = None
            return result
        except Exception as exc:
            job.last_error = str(exc)
            logger.exception("Scheduled job %s failed: %s", job.name, exc)
            return None
        finally:
            job.last_run_at = self.clock.now()
            job.running = False

    def _track(self, task: asyncio.Task) -> None:
        self._job_tasks.add(task)
        task.add_done_callback(self._job_tasks.discard)

    @staticmethod
    def _compute_next_run(cron: str, from_dt: datetime) -> Optional[datetime]:
        try:
            return croniter(cron, from_dt).get_next(datetime)
        except ValueError:
            return None

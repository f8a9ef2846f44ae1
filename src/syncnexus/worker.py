"""In-process background worker for long-running reconciliation batches.

Jobs run as independent ``asyncio`` tasks on the worker's event loop. They are
not coordinated with one another: overlapping batches are safe because every
store write is idempotent.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import uuid4

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

log = getLogger(__name__)

DEFAULT_FINISHED_JOB_RETENTION = 100


class JobState(StrEnum):
    REQUESTED = "requested"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class SyncJob:
    name: str
    id: str = field(default_factory=lambda: uuid4().hex)
    state: JobState = JobState.REQUESTED
    current: int = 0
    total: int = 0
    error: str | None = None
    result: object | None = None
    created_at: datetime = field(default_factory=_utcnow)
    finished_at: datetime | None = None

    @property
    def progress(self) -> tuple[int, int]:
        return self.current, self.total

    @property
    def done(self) -> bool:
        return self.state in {JobState.COMPLETED, JobState.FAILED}

    def report(self, current: int, total: int) -> None:
        self.current = current
        self.total = total


type JobRunner = Callable[[SyncJob], Awaitable[object]]


class SyncWorker:
    """Runs submitted jobs in the background and keeps a registry of their state."""

    def __init__(self, *, keep_finished: int = DEFAULT_FINISHED_JOB_RETENTION) -> None:
        self._jobs: dict[str, SyncJob] = {}
        self._keep_finished = keep_finished
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        self._running = True
        log.info("Sync worker started")

    def submit(self, name: str, runner: JobRunner) -> SyncJob:
        """Schedule ``runner`` and return its job record immediately.

        Must be called from within the event loop the worker should run on.
        """

        if not self._running:
            raise RuntimeError("Sync worker is not running")
        job = SyncJob(name=name)
        self._jobs[job.id] = job
        task = asyncio.get_running_loop().create_task(self._run(job, runner), name=job.id)
        self._tasks[job.id] = task
        log.info(f"Submitted job {job.id} ({name})")
        return job

    def get(self, job_id: str) -> SyncJob | None:
        return self._jobs.get(job_id)

    def jobs(self) -> list[SyncJob]:
        return list(self._jobs.values())

    async def join(self, job_id: str | None = None) -> None:
        """Wait for one job, or for every job still in flight."""

        if job_id is not None:
            task = self._tasks.get(job_id)
            tasks = [task] if task is not None else []
        else:
            tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def stop(self) -> None:
        """Cancel every unfinished job and wait for the cancellations to land."""

        self._running = False
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        for job in self._jobs.values():
            if not job.done:
                job.state = JobState.FAILED
                job.error = "cancelled"
        self._prune()
        log.info(f"Sync worker stopped ({len(tasks)} job(s) cancelled)")

    async def _run(self, job: SyncJob, runner: JobRunner) -> None:
        job.state = JobState.RUNNING
        try:
            job.result = await runner(job)
        except asyncio.CancelledError:
            job.state = JobState.FAILED
            job.error = "cancelled"
            raise
        except Exception as exc:  # noqa: BLE001
            log.exception(f"Job {job.id} ({job.name}) failed")
            job.state = JobState.FAILED
            job.error = str(exc)
        else:
            job.state = JobState.COMPLETED
            log.info(f"Job {job.id} ({job.name}) completed")
        finally:
            job.finished_at = _utcnow()
            self._tasks.pop(job.id, None)
            self._prune()

    def _prune(self) -> None:
        """Forget the oldest finished jobs beyond the retention limit."""

        finished = [job_id for job_id, job in self._jobs.items() if job.done]
        for job_id in finished[: max(len(finished) - self._keep_finished, 0)]:
            del self._jobs[job_id]

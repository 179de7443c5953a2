#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Job Scheduler - runs submitted jobs on a fixed pool of asyncio workers

Each job is a unit of work handed to the pipeline runner. Jobs run
concurrently up to the pool size and independently of each other.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Set, Any
import asyncio

from config.constants import DEFAULT_PARALLEL_JOBS
from config.logging_config import get_logger

logger = get_logger(__name__)

# run(job_id) -> anything; the runner handles its own failures
JobRunner = Callable[[str], Awaitable[Any]]


@dataclass
class SchedulerStats:
    """Counters since start."""
    submitted: int = 0
    finished: int = 0
    crashed: int = 0


class JobScheduler:
    """
    Queue of job ids consumed by ``max_parallel_jobs`` worker tasks.

    Usage:
        scheduler = JobScheduler(runner.run, max_parallel_jobs=2)
        scheduler.start()
        scheduler.submit(job_id)
        ...
        await scheduler.stop()
    """

    def __init__(self, run_job: JobRunner, max_parallel_jobs: int = DEFAULT_PARALLEL_JOBS):
        if max_parallel_jobs < 1:
            raise ValueError(f"max_parallel_jobs must be at least 1, got {max_parallel_jobs}")

        self._run_job = run_job
        self.max_parallel_jobs = max_parallel_jobs
        self.stats = SchedulerStats()

        self._queue: Optional["asyncio.Queue[str]"] = None
        self._workers: List[asyncio.Task] = []
        self._active: Set[str] = set()

    @property
    def is_running(self) -> bool:
        return bool(self._workers)

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue else 0

    def is_active(self, job_id: str) -> bool:
        """True while the job is waiting or running."""
        return job_id in self._active

    def start(self):
        """Start the worker tasks (inside a running event loop)."""
        if self._workers:
            return

        self._queue = asyncio.Queue()
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"job-worker-{index}")
            for index in range(self.max_parallel_jobs)
        ]
        logger.info(f"JobScheduler started with {self.max_parallel_jobs} workers")

    def submit(self, job_id: str):
        """
        Queue a job.

        Raises:
            RuntimeError: If the scheduler is not started
        """
        if self._queue is None:
            raise RuntimeError("JobScheduler is not started")
        if job_id in self._active:
            logger.warning(f"[{job_id}] Already scheduled")
            return

        self._active.add(job_id)
        self._queue.put_nowait(job_id)
        self.stats.submitted += 1
        logger.debug(f"[{job_id}] Submitted ({self.pending} waiting)")

    async def wait_idle(self):
        """Wait until every submitted job has finished."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self):
        """Stop the workers. Jobs still waiting in the queue are not run."""
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)

        self._workers = []
        self._queue = None
        self._active.clear()
        logger.info("JobScheduler stopped")

    async def _worker(self, index: int):
        queue = self._queue
        while True:
            job_id = await queue.get()
            try:
                await self._run_job(job_id)
                self.stats.finished += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.stats.crashed += 1
                logger.error(f"[{job_id}] Worker {index}: job crashed: {type(e).__name__}: {e}")
            finally:
                self._active.discard(job_id)
                queue.task_done()

"""
Progress publishing.
Pushes job snapshots to any number of observers at step granularity and
answers polls with the latest snapshot.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote
import asyncio
import json

from config.logging_config import get_logger

from .job_handler import Job, JobStatus

logger = get_logger(__name__)

Snapshot = Dict[str, Any]

_TERMINAL = (JobStatus.COMPLETED.value, JobStatus.FAILED.value)


def build_snapshot(job: Job) -> Snapshot:
    """
    Serializable view of a job.

    Only files with a translated artifact appear in ``results``.
    """
    return {
        "id": job.id,
        "status": job.status.value,
        "language": job.language,
        "step": job.current_step.value.lower() if job.current_step else None,
        "percentage": job.percentage,
        "results": [
            {
                "id": file.id,
                "originalName": file.original_name,
                "translatedName": file.translated_name,
                "originalUrl": f"/api/files/{job.id}/original/{quote(file.original_name)}",
                "translatedUrl": f"/api/files/{job.id}/translated/{quote(file.translated_name)}",
            }
            for file in job.files
            if file.is_translated
        ],
    }


def is_terminal_snapshot(snapshot: Snapshot) -> bool:
    return snapshot.get("status") in _TERMINAL


def format_sse(snapshot: Snapshot) -> str:
    """One server-sent event carrying the snapshot as JSON."""
    return f"data: {json.dumps(snapshot, ensure_ascii=False)}\n\n"


class Subscription:
    """
    Async iterator over the snapshots of one job.

    Ends right after yielding a terminal snapshot, or when closed.
    """

    def __init__(self, publisher: "ProgressPublisher", job_id: str):
        self.job_id = job_id
        self._publisher = publisher
        self._queue: "asyncio.Queue[Optional[Snapshot]]" = asyncio.Queue()
        self._closed = False
        self._finished = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, snapshot: Snapshot):
        if self._closed:
            return
        self._queue.put_nowait(snapshot)

    def close(self):
        """Stop receiving snapshots. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)
        self._publisher._unsubscribe(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Snapshot:
        if self._finished:
            raise StopAsyncIteration

        snapshot = await self._queue.get()
        if snapshot is None:
            self._finished = True
            raise StopAsyncIteration

        if is_terminal_snapshot(snapshot):
            self._finished = True
            self.close()
        return snapshot


class ProgressPublisher:
    """
    Delivers job snapshots to observers.

    Features:
    - Push: ``subscribe`` yields the current snapshot, then one per transition
    - Poll: ``snapshot`` returns the latest snapshot of a running job
    - The terminal snapshot reaches each subscriber once, then it closes
    - Publishing never blocks; a slow or vanished observer only affects itself
    - Finished jobs are not kept; callers read them back from the store

    Usage:
        publisher = ProgressPublisher()
        handler.add_listener(publisher.publish)

        subscription = publisher.subscribe(job_id)
        try:
            async for snapshot in subscription:
                send(format_sse(snapshot))
        finally:
            subscription.close()
    """

    def __init__(self):
        self._latest: Dict[str, Snapshot] = {}
        self._subscribers: Dict[str, List[Subscription]] = {}

        logger.debug("ProgressPublisher created")

    def publish(self, job: Job):
        """Record the job's state and push it to its subscribers."""
        snapshot = build_snapshot(job)
        self._latest[job.id] = snapshot

        subscribers = self._subscribers.get(job.id, [])
        for subscription in list(subscribers):
            subscription.push(snapshot)

        if is_terminal_snapshot(snapshot):
            if subscribers:
                logger.debug(f"[{job.id}] Terminal snapshot sent to {len(subscribers)} observer(s)")
            self._subscribers.pop(job.id, None)
            self._latest.pop(job.id, None)

    def seed(self, job: Job):
        """Make a running job known without notifying anyone (e.g. loaded from the store)."""
        if job.is_terminal:
            return
        self._latest.setdefault(job.id, build_snapshot(job))

    def snapshot(self, job_id: str) -> Optional[Snapshot]:
        """Latest snapshot of a running job, or None when unknown or finished."""
        return self._latest.get(job_id)

    def subscribe(self, job_id: str, fallback: Optional[Snapshot] = None) -> Subscription:
        """
        Subscribe to a job's snapshots.

        Args:
            job_id: Job to follow
            fallback: Snapshot to start from when the job is not held here,
                typically a finished job read back from the store

        Raises:
            KeyError: If the job is unknown and no fallback is given
        """
        current = self._latest.get(job_id, fallback)
        if current is None:
            raise KeyError(job_id)

        subscription = Subscription(self, job_id)
        subscription.push(current)
        if not is_terminal_snapshot(current):
            self._subscribers.setdefault(job_id, []).append(subscription)
        return subscription

    def subscriber_count(self, job_id: str) -> int:
        return len(self._subscribers.get(job_id, []))

    def forget(self, job_id: str):
        """Drop a job and close its subscriptions."""
        self._latest.pop(job_id, None)
        for subscription in self._subscribers.pop(job_id, []):
            subscription.close()

    def _unsubscribe(self, subscription: Subscription):
        subscribers = self._subscribers.get(subscription.job_id)
        if subscribers and subscription in subscribers:
            subscribers.remove(subscription)
            if not subscribers:
                del self._subscribers[subscription.job_id]

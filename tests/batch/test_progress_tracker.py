"""
Unit tests for core.batch.progress_tracker module.

Tests ProgressPublisher push/poll delivery and the snapshot format.
"""

import asyncio
import json
import pytest

from core.batch.job_handler import FileRecord, Job, JobHandler, PipelineStep
from core.batch.progress_tracker import (
    ProgressPublisher,
    build_snapshot,
    format_sse,
)


@pytest.fixture
def job():
    job = Job(id="job_42", language="Spanish")
    job.files = [
        FileRecord(id="f1", job_id="job_42", original_name="a b.pdf", original_path="/u/a b.pdf"),
        FileRecord(id="f2", job_id="job_42", original_name="c.pdf", original_path="/u/c.pdf"),
    ]
    return job


async def collect(subscription, limit: int = 10):
    items = []
    async for snapshot in subscription:
        items.append(snapshot)
        if len(items) >= limit:
            break
    return items


class TestBuildSnapshot:
    """Tests for build_snapshot."""

    def test_queued_job(self, job):
        snapshot = build_snapshot(job)
        assert snapshot == {
            "id": "job_42",
            "status": "QUEUED",
            "language": "Spanish",
            "step": None,
            "percentage": 0,
            "results": [],
        }

    def test_only_translated_files_listed(self, job):
        job.files[0].translated_name = "translated_a b.pdf"
        job.files[0].translated_path = "/u/translated/translated_a b.pdf"
        job.current_step = PipelineStep.TRANSLATE

        snapshot = build_snapshot(job)

        assert snapshot["step"] == "translate"
        assert snapshot["results"] == [{
            "id": "f1",
            "originalName": "a b.pdf",
            "translatedName": "translated_a b.pdf",
            "originalUrl": "/api/files/job_42/original/a%20b.pdf",
            "translatedUrl": "/api/files/job_42/translated/translated_a%20b.pdf",
        }]

    def test_format_sse(self, job):
        event = format_sse(build_snapshot(job))
        assert event.startswith("data: ")
        assert event.endswith("\n\n")
        assert json.loads(event[len("data: "):])["id"] == "job_42"


class TestProgressPublisher:
    """Tests for ProgressPublisher."""

    def test_poll(self, job):
        publisher = ProgressPublisher()
        assert publisher.snapshot(job.id) is None

        publisher.publish(job)
        assert publisher.snapshot(job.id)["status"] == "QUEUED"

    def test_subscribe_unknown_job(self):
        with pytest.raises(KeyError):
            ProgressPublisher().subscribe("missing")

    @pytest.mark.asyncio
    async def test_push_until_terminal(self, job):
        publisher = ProgressPublisher()
        handler = JobHandler(job, listeners=[publisher.publish])
        publisher.seed(job)

        subscription = publisher.subscribe(job.id)
        consumer = asyncio.create_task(collect(subscription))

        handler.accept_upload()
        handler.finish_extraction()
        handler.finish_translation()
        handler.finish_generation()

        snapshots = await asyncio.wait_for(consumer, timeout=1)

        assert [(s["status"], s["percentage"]) for s in snapshots] == [
            ("QUEUED", 0),
            ("PROCESSING", 25),
            ("PROCESSING", 50),
            ("PROCESSING", 75),
            ("COMPLETED", 100),
        ]
        assert subscription.closed
        assert publisher.subscriber_count(job.id) == 0

    @pytest.mark.asyncio
    async def test_terminal_job_yields_once(self, job):
        publisher = ProgressPublisher()
        handler = JobHandler(job, listeners=[publisher.publish])
        handler.accept_upload()
        handler.fail(PipelineStep.UPLOAD, "no files")

        with pytest.raises(KeyError):
            publisher.subscribe(job.id)

        subscription = publisher.subscribe(job.id, build_snapshot(job))
        snapshots = await asyncio.wait_for(collect(subscription), timeout=1)

        assert [s["status"] for s in snapshots] == ["FAILED"]
        assert publisher.subscriber_count(job.id) == 0

    def test_finished_job_not_retained(self, job):
        publisher = ProgressPublisher()
        handler = JobHandler(job, listeners=[publisher.publish])
        handler.accept_upload()
        assert publisher.snapshot(job.id)["status"] == "PROCESSING"

        handler.fail(PipelineStep.UPLOAD, "no files")

        assert publisher.snapshot(job.id) is None
        publisher.seed(job)
        assert publisher.snapshot(job.id) is None

    @pytest.mark.asyncio
    async def test_running_snapshot_preferred_over_fallback(self, job):
        publisher = ProgressPublisher()
        publisher.seed(job)
        stale = {**build_snapshot(job), "status": "FAILED"}

        subscription = publisher.subscribe(job.id, stale)
        subscription.close()

        assert [s["status"] for s in await collect(subscription)] == ["QUEUED"]

    @pytest.mark.asyncio
    async def test_many_observers(self, job):
        publisher = ProgressPublisher()
        handler = JobHandler(job, listeners=[publisher.publish])
        publisher.seed(job)

        subscriptions = [publisher.subscribe(job.id) for _ in range(3)]
        consumers = [asyncio.create_task(collect(s)) for s in subscriptions]

        handler.accept_upload()
        handler.fail(PipelineStep.EXTRACT, "conversion failed")

        results = await asyncio.wait_for(asyncio.gather(*consumers), timeout=1)
        for snapshots in results:
            assert [s["status"] for s in snapshots] == ["QUEUED", "PROCESSING", "FAILED"]
            assert snapshots[-1]["step"] == "extract"

    @pytest.mark.asyncio
    async def test_disconnect_does_not_affect_others(self, job):
        publisher = ProgressPublisher()
        handler = JobHandler(job, listeners=[publisher.publish])
        publisher.seed(job)

        leaving = publisher.subscribe(job.id)
        staying = publisher.subscribe(job.id)
        leaving.close()
        leaving.close()

        handler.accept_upload()
        handler.finish_extraction()
        handler.finish_translation()
        handler.finish_generation()

        assert job.percentage == 100
        assert await collect(leaving) == []
        snapshots = await asyncio.wait_for(collect(staying), timeout=1)
        assert snapshots[-1]["status"] == "COMPLETED"

    def test_seed_does_not_overwrite(self, job):
        publisher = ProgressPublisher()
        publisher.publish(job)
        job.percentage = 99
        publisher.seed(job)
        assert publisher.snapshot(job.id)["percentage"] == 0

    @pytest.mark.asyncio
    async def test_forget_closes_subscriptions(self, job):
        publisher = ProgressPublisher()
        publisher.seed(job)
        subscription = publisher.subscribe(job.id)

        publisher.forget(job.id)

        snapshots = await asyncio.wait_for(collect(subscription), timeout=1)
        assert [s["status"] for s in snapshots] == ["QUEUED"]
        assert publisher.snapshot(job.id) is None

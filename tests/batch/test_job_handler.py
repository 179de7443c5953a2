"""
Unit tests for core.batch.job_handler module.

Tests the job state machine: legal transitions, terminal states,
persistence order and listener isolation.
"""

import pytest
from unittest.mock import Mock

from core.batch.job_handler import (
    FileRecord,
    Job,
    JobHandler,
    JobStatus,
    PipelineStep,
)
from core.errors import InvalidTransitionError


@pytest.fixture
def job():
    return Job(id="job_001", language="French")


def run_to(handler: JobHandler, step: PipelineStep):
    events = [
        handler.accept_upload,
        handler.finish_extraction,
        handler.finish_translation,
        handler.finish_generation,
    ]
    for event in events[:step.order + 1]:
        event()


class TestEnums:
    """Tests for JobStatus and PipelineStep."""

    def test_terminal_statuses(self):
        assert JobStatus.COMPLETED.is_terminal
        assert JobStatus.FAILED.is_terminal
        assert not JobStatus.QUEUED.is_terminal
        assert not JobStatus.PROCESSING.is_terminal

    def test_step_order_and_percentages(self):
        assert [step.order for step in PipelineStep] == [0, 1, 2, 3]
        assert [step.percentage for step in PipelineStep] == [25, 50, 75, 100]


class TestHappyPath:
    """Tests for the normal progression."""

    def test_new_job_is_queued(self, job):
        assert job.status == JobStatus.QUEUED
        assert job.current_step is None
        assert job.percentage == 0

    def test_full_progression(self, job):
        handler = JobHandler(job)
        seen = []
        handler.add_listener(lambda j: seen.append((j.status, j.current_step, j.percentage)))

        run_to(handler, PipelineStep.GENERATE)

        assert seen == [
            (JobStatus.PROCESSING, PipelineStep.UPLOAD, 25),
            (JobStatus.PROCESSING, PipelineStep.EXTRACT, 50),
            (JobStatus.PROCESSING, PipelineStep.TRANSLATE, 75),
            (JobStatus.COMPLETED, PipelineStep.GENERATE, 100),
        ]
        assert job.is_terminal

    def test_each_transition_persisted_once(self, job):
        store = Mock()
        handler = JobHandler(job, store=store)

        handler.accept_upload()
        handler.finish_extraction()

        assert store.call_count == 2
        store.assert_called_with("job_001", JobStatus.PROCESSING, PipelineStep.EXTRACT, 50)


class TestIllegalTransitions:
    """Tests for rejected transitions."""

    def test_queued_only_reaches_processing(self, job):
        handler = JobHandler(job)
        for event in (handler.finish_extraction, handler.finish_translation, handler.finish_generation):
            with pytest.raises(InvalidTransitionError):
                event()
        assert job.status == JobStatus.QUEUED

    def test_steps_cannot_be_skipped(self, job):
        handler = JobHandler(job)
        handler.accept_upload()
        with pytest.raises(InvalidTransitionError):
            handler.finish_translation()
        assert job.current_step == PipelineStep.UPLOAD

    def test_steps_cannot_repeat(self, job):
        handler = JobHandler(job)
        handler.accept_upload()
        with pytest.raises(InvalidTransitionError):
            handler.accept_upload()

    def test_completed_is_final(self, job):
        handler = JobHandler(job)
        run_to(handler, PipelineStep.GENERATE)

        with pytest.raises(InvalidTransitionError):
            handler.fail(PipelineStep.GENERATE, "late error")
        with pytest.raises(InvalidTransitionError):
            handler.accept_upload()
        assert job.status == JobStatus.COMPLETED

    def test_failed_is_final(self, job):
        handler = JobHandler(job)
        handler.accept_upload()
        handler.fail(PipelineStep.EXTRACT, "boom")

        with pytest.raises(InvalidTransitionError):
            handler.finish_extraction()
        with pytest.raises(InvalidTransitionError):
            handler.fail(PipelineStep.EXTRACT, "again")


class TestFail:
    """Tests for stage exceptions."""

    def test_fail_keeps_percentage(self, job):
        handler = JobHandler(job)
        run_to(handler, PipelineStep.EXTRACT)

        handler.fail(PipelineStep.TRANSLATE, "backend down")

        assert job.status == JobStatus.FAILED
        assert job.current_step == PipelineStep.TRANSLATE
        assert job.percentage == 50
        assert job.error == "backend down"

    def test_fail_at_upload_keeps_upload_percentage(self, job):
        handler = JobHandler(job)
        handler.accept_upload()
        handler.fail(PipelineStep.UPLOAD, "uploaded file missing")
        assert (job.status, job.current_step, job.percentage) == (JobStatus.FAILED, PipelineStep.UPLOAD, 25)

    @pytest.mark.parametrize("step", list(PipelineStep))
    def test_queued_job_cannot_fail(self, job, step):
        store = Mock()
        with pytest.raises(InvalidTransitionError):
            JobHandler(job, store=store).fail(step, "x")
        assert job.status == JobStatus.QUEUED
        store.assert_not_called()

    def test_cannot_fail_at_earlier_step(self, job):
        handler = JobHandler(job)
        run_to(handler, PipelineStep.TRANSLATE)
        with pytest.raises(InvalidTransitionError):
            handler.fail(PipelineStep.EXTRACT, "x")

    def test_fail_notifies_listeners(self, job):
        listener = Mock()
        handler = JobHandler(job)
        handler.accept_upload()
        handler.add_listener(listener)
        handler.fail(PipelineStep.UPLOAD, "x")
        listener.assert_called_once_with(job)


class TestStoreAndListeners:
    """Tests for persistence and listener isolation."""

    def test_store_failure_leaves_job_untouched(self, job):
        store = Mock(side_effect=RuntimeError("database is locked"))
        listener = Mock()
        handler = JobHandler(job, store=store, listeners=[listener])

        with pytest.raises(RuntimeError):
            handler.accept_upload()

        assert job.status == JobStatus.QUEUED
        listener.assert_not_called()

    def test_listener_error_does_not_break_transition(self, job):
        good = Mock()
        handler = JobHandler(job, listeners=[Mock(side_effect=ValueError("observer gone")), good])

        handler.accept_upload()

        assert job.current_step == PipelineStep.UPLOAD
        good.assert_called_once()

    def test_remove_listener(self, job):
        listener = Mock()
        handler = JobHandler(job, listeners=[listener])
        handler.remove_listener(listener)
        handler.accept_upload()
        listener.assert_not_called()


class TestRecordTranslation:
    """Tests for FileRecord updates."""

    def test_record_once(self, job):
        file_store = Mock()
        record = FileRecord(id="f1", job_id=job.id, original_name="a.pdf", original_path="/tmp/a.pdf")
        handler = JobHandler(job, file_store=file_store)

        assert not record.is_translated
        handler.record_translation(record, "translated_a.pdf", "/tmp/translated_a.pdf")

        assert record.is_translated
        file_store.assert_called_once_with("f1", "translated_a.pdf", "/tmp/translated_a.pdf")

        with pytest.raises(InvalidTransitionError):
            handler.record_translation(record, "again.pdf", "/tmp/again.pdf")
        assert file_store.call_count == 1

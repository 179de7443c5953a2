"""
Job lifecycle management.
Job/file records and the state machine that moves a job through the
pipeline steps.

Status:  QUEUED -> PROCESSING -> COMPLETED | FAILED
Step:    UPLOAD -> EXTRACT -> TRANSLATE -> GENERATE (only while PROCESSING)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, List
from datetime import datetime

from config.logging_config import get_logger
from config.constants import STEP_PERCENTAGES
from core.errors import InvalidTransitionError

logger = get_logger(__name__)


class JobStatus(str, Enum):
    """Job-level status."""
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class PipelineStep(str, Enum):
    """Pipeline step, in execution order."""
    UPLOAD = "UPLOAD"
    EXTRACT = "EXTRACT"
    TRANSLATE = "TRANSLATE"
    GENERATE = "GENERATE"

    @property
    def order(self) -> int:
        return _STEP_ORDER.index(self)

    @property
    def percentage(self) -> int:
        """Percentage reached once this step is done."""
        return STEP_PERCENTAGES[self.value]


_STEP_ORDER = list(PipelineStep)


@dataclass
class FileRecord:
    """One uploaded document and, once generated, its translated artifact."""
    id: str
    job_id: str
    original_name: str
    original_path: str
    translated_name: Optional[str] = None
    translated_path: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_translated(self) -> bool:
        return self.translated_name is not None and self.translated_path is not None


@dataclass
class Job:
    """A translation job over one or more files."""
    id: str
    language: str
    status: JobStatus = JobStatus.QUEUED
    current_step: Optional[PipelineStep] = None
    percentage: int = 0
    files: List[FileRecord] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


# store(job_id, status, step, percentage) persists one job row
JobStore = Callable[[str, JobStatus, Optional[PipelineStep], int], None]
# file_store(file_id, translated_name, translated_path) persists one file row
FileStore = Callable[[str, str, str], None]
TransitionListener = Callable[[Job], None]


class JobHandler:
    """
    State machine for one job.

    Every transition is persisted through ``store`` first, then applied to
    the in-memory job, then delivered to listeners. A failing store leaves
    the job untouched; failing listeners are logged and ignored.

    Usage:
        handler = JobHandler(job, store=repo.update_job_progress)
        handler.add_listener(publisher.publish)

        handler.accept_upload()        # PROCESSING / UPLOAD / 25
        handler.finish_extraction()    # PROCESSING / EXTRACT / 50
        handler.finish_translation()   # PROCESSING / TRANSLATE / 75
        handler.finish_generation()    # COMPLETED / GENERATE / 100

        handler.fail(PipelineStep.EXTRACT, "conversion failed")
    """

    def __init__(
        self,
        job: Job,
        store: Optional[JobStore] = None,
        file_store: Optional[FileStore] = None,
        listeners: Optional[List[TransitionListener]] = None,
    ):
        """
        Initialize job handler.

        Args:
            job: Job to drive, normally fresh from the repository (QUEUED)
            store: Persists status/step/percentage of the job row
            file_store: Persists the translated artifact of a file row
            listeners: Called with the job after each transition
        """
        self.job = job
        self._store = store
        self._file_store = file_store
        self._listeners: List[TransitionListener] = list(listeners or [])

        logger.debug(f"[{job.id}] JobHandler created ({job.status.value})")

    def add_listener(self, listener: TransitionListener):
        """Add transition listener."""
        self._listeners.append(listener)

    def remove_listener(self, listener: TransitionListener):
        """Remove transition listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def accept_upload(self):
        """Files are stored and the job starts processing."""
        self._advance(PipelineStep.UPLOAD)

    def finish_extraction(self):
        """Every file was converted and its chunks extracted."""
        self._advance(PipelineStep.EXTRACT)

    def finish_translation(self):
        """All batches settled and translations were reinserted."""
        self._advance(PipelineStep.TRANSLATE)

    def finish_generation(self):
        """Artifacts were generated; the job is done."""
        self._advance(PipelineStep.GENERATE, status=JobStatus.COMPLETED)

    def fail(self, step: PipelineStep, error: str = ""):
        """
        Stage exception.

        The job keeps the percentage it had reached and records the step
        that was running when it failed.

        Args:
            step: Step that raised
            error: Error message (kept in memory and logged)
        """
        job = self.job
        self._check_not_terminal()

        if job.status == JobStatus.QUEUED:
            raise InvalidTransitionError("queued job cannot fail before processing", job_id=job.id)
        if job.current_step is not None and step.order < job.current_step.order:
            raise InvalidTransitionError(
                f"cannot fail at {step.value} after {job.current_step.value}",
                job_id=job.id,
            )

        self._apply(JobStatus.FAILED, step, job.percentage)
        job.error = error or None
        logger.error(f"[{job.id}] Job failed at {step.value} ({job.percentage}%): {error}")
        self._notify()

    def record_translation(self, file: FileRecord, translated_name: str, translated_path: str):
        """
        Attach the generated artifact to a file record.

        A file record is written exactly once.
        """
        if file.is_translated:
            raise InvalidTransitionError(
                f"file {file.id} already has a translated artifact", job_id=self.job.id
            )
        if self._file_store:
            self._file_store(file.id, translated_name, translated_path)

        file.translated_name = translated_name
        file.translated_path = translated_path
        file.updated_at = datetime.now()
        logger.debug(f"[{self.job.id}] File {file.original_name} -> {translated_name}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _advance(self, step: PipelineStep, status: JobStatus = JobStatus.PROCESSING):
        job = self.job
        self._check_not_terminal()

        expected = _STEP_ORDER[0] if job.current_step is None else next_step(job.current_step)
        if job.status == JobStatus.QUEUED and step != PipelineStep.UPLOAD:
            raise InvalidTransitionError(
                f"queued job must start at UPLOAD, not {step.value}", job_id=job.id
            )
        if step != expected:
            raise InvalidTransitionError(
                f"cannot move from {_describe(job)} to {step.value}", job_id=job.id
            )

        old = _describe(job)
        self._apply(status, step, max(job.percentage, step.percentage))
        logger.info(f"[{job.id}] {old} → {_describe(job)}")
        self._notify()

    def _apply(self, status: JobStatus, step: Optional[PipelineStep], percentage: int):
        if self._store:
            self._store(self.job.id, status, step, percentage)

        self.job.status = status
        self.job.current_step = step
        self.job.percentage = percentage
        self.job.updated_at = datetime.now()

    def _check_not_terminal(self):
        if self.job.is_terminal:
            raise InvalidTransitionError(
                f"job is {self.job.status.value}, no further transitions", job_id=self.job.id
            )

    def _notify(self):
        for listener in list(self._listeners):
            try:
                listener(self.job)
            except Exception as e:
                logger.error(f"[{self.job.id}] Transition listener error: {e}")


def next_step(step: PipelineStep) -> Optional[PipelineStep]:
    index = step.order + 1
    return _STEP_ORDER[index] if index < len(_STEP_ORDER) else None


def _describe(job: Job) -> str:
    if job.current_step is None:
        return job.status.value
    return f"{job.status.value}/{job.current_step.value} ({job.percentage}%)"

"""
Pipeline runner.

Drives one job through UPLOAD -> EXTRACT -> TRANSLATE -> GENERATE, with each
step an explicit state-machine transition. Per-file working state lives only
inside one run; on disk a job only touches UPLOAD_DIR/<job_id>/.
"""

from pathlib import Path
from typing import Optional, Dict, List, Any
from dataclasses import dataclass, field
import asyncio
import time

from config.logging_config import get_logger
from config.constants import (
    DEFAULT_MAX_BATCH_CHARS,
    GENERATION_POLICY_FAIL_JOB,
    GENERATION_POLICY_ISOLATE_FILE,
    TRANSLATED_PREFIX,
)
from core.errors import GenerationError, PipelineError
from core.layout_preserve.converter import DocumentConverter
from core.layout_preserve.document_renderer import DocumentRenderer
from core.layout_preserve.extractor import Extraction, StructuralExtractor
from core.layout_preserve.markup_node import MarkupDocument, parse_markup
from core.layout_preserve.reinsertion import ReinsertionEngine

from .batcher import create_batches
from .dispatcher import TranslationDispatcher, merge_results
from .job_handler import FileRecord, Job, JobHandler, JobStatus, PipelineStep
from .progress_tracker import ProgressPublisher

logger = get_logger(__name__)


@dataclass
class RunnerConfig:
    """Configuration for PipelineRunner."""
    upload_dir: Path
    max_batch_chars: int = DEFAULT_MAX_BATCH_CHARS
    generation_failure_policy: str = GENERATION_POLICY_FAIL_JOB

    @classmethod
    def from_settings(cls, settings: Any) -> "RunnerConfig":
        return cls(
            upload_dir=Path(settings.upload_dir),
            max_batch_chars=settings.max_batch_chars,
            generation_failure_policy=settings.generation_failure_policy,
        )

    @property
    def isolate_generation_failures(self) -> bool:
        return self.generation_failure_policy == GENERATION_POLICY_ISOLATE_FILE


@dataclass
class FileWork:
    """In-memory state of one file during a run."""
    record: FileRecord
    document: MarkupDocument
    extraction: Extraction


@dataclass
class RunResult:
    """Summary of one pipeline run."""
    job_id: str
    status: Optional[JobStatus] = None
    step: Optional[PipelineStep] = None
    percentage: int = 0
    chunk_count: int = 0
    translated_chunks: int = 0
    failed_batches: int = 0
    reinsertion_failures: int = 0
    generated_files: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == JobStatus.COMPLETED


class PipelineRunner:
    """
    Runs translation jobs end-to-end.

    Uses:
    - JobHandler for the state machine (persisted through the repository)
    - DocumentConverter + StructuralExtractor for extraction
    - create_batches + TranslationDispatcher for translation
    - ReinsertionEngine to write translations back
    - DocumentRenderer for the final artifacts
    - ProgressPublisher to reach observers

    Usage:
        runner = PipelineRunner(repository, dispatcher, converter, renderer,
                                publisher, RunnerConfig.from_settings(settings))
        result = await runner.run(job_id)
    """

    def __init__(
        self,
        repository: Any,
        dispatcher: TranslationDispatcher,
        converter: DocumentConverter,
        renderer: DocumentRenderer,
        publisher: Optional[ProgressPublisher] = None,
        config: Optional[RunnerConfig] = None,
        engine: Optional[ReinsertionEngine] = None,
    ):
        """
        Initialize runner.

        Args:
            repository: Job/file store (JobRepository)
            dispatcher: Batch dispatcher holding the translation client
            converter: Conversion tool adapter
            renderer: Rendering backend client
            publisher: Progress publisher (optional)
            config: Runner configuration
            engine: Reinsertion engine (optional, default instance)
        """
        self.repository = repository
        self.dispatcher = dispatcher
        self.converter = converter
        self.renderer = renderer
        self.publisher = publisher
        self.config = config or RunnerConfig(upload_dir=Path("data/uploads"))
        self.engine = engine or ReinsertionEngine()

        logger.info(
            f"PipelineRunner initialized: "
            f"batch={self.config.max_batch_chars} chars, "
            f"generation policy={self.config.generation_failure_policy}"
        )

    def job_dir(self, job_id: str) -> Path:
        return self.config.upload_dir / job_id

    async def run(self, job_id: str) -> RunResult:
        """
        Process a job end-to-end. Never raises; failures end in FAILED.

        Args:
            job_id: Id of a QUEUED job

        Returns:
            RunResult
        """
        start_time = time.time()
        result = RunResult(job_id=job_id)

        job = self.repository.get_job(job_id)
        if job is None:
            result.error = "unknown job"
            logger.error(f"[{job_id}] Cannot run: job not found")
            return result

        if job.status != JobStatus.QUEUED:
            result.status, result.step, result.percentage = job.status, job.current_step, job.percentage
            result.error = f"job is {job.status.value}"
            logger.warning(f"[{job_id}] Not queued ({job.status.value}), skipping")
            return result

        handler = JobHandler(
            job,
            store=self.repository.update_job_progress,
            file_store=self.repository.update_file_translation,
        )
        if self.publisher:
            self.publisher.seed(job)
            handler.add_listener(self.publisher.publish)

        step = PipelineStep.UPLOAD
        try:
            handler.accept_upload()
            job_dir = self._prepare_upload(job)

            step = PipelineStep.EXTRACT
            work = await self._extract(job, job_dir)
            result.chunk_count = sum(len(item.extraction) for item in work)
            handler.finish_extraction()

            step = PipelineStep.TRANSLATE
            await self._translate(job, work, result)
            handler.finish_translation()

            step = PipelineStep.GENERATE
            await self._generate(handler, work, job_dir, result)
            handler.finish_generation()

        except Exception as e:
            result.error = f"{type(e).__name__}: {e}"
            try:
                handler.fail(step, result.error)
            except Exception as fail_error:
                logger.error(f"[{job_id}] Could not record failure: {fail_error}")

        result.status = job.status
        result.step = job.current_step
        result.percentage = job.percentage
        result.duration_seconds = time.time() - start_time

        logger.info(
            f"[{job_id}] Run finished: {job.status.value} "
            f"({result.translated_chunks}/{result.chunk_count} chunks, "
            f"{len(result.generated_files)} files, {result.duration_seconds:.1f}s)"
        )
        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _prepare_upload(self, job: Job) -> Path:
        """Check the uploaded files and create the job's working directories."""
        if not job.files:
            raise PipelineError("job has no files")

        for record in job.files:
            if not Path(record.original_path).is_file():
                raise PipelineError(f"uploaded file missing: {record.original_path}")

        job_dir = self.job_dir(job.id)
        (job_dir / "translated").mkdir(parents=True, exist_ok=True)
        return job_dir

    async def _extract(self, job: Job, job_dir: Path) -> List[FileWork]:
        """Convert every file to markup and extract its chunks."""
        loop = asyncio.get_event_loop()
        work: List[FileWork] = []

        for index, record in enumerate(job.files):
            markup = await self.converter.convert(
                record.original_path,
                job_dir / "markup" / record.id,
            )
            document = await loop.run_in_executor(None, parse_markup, markup)

            # Prefix keeps ids unique across the job's files
            extractor = StructuralExtractor(id_prefix=f"f{index}-c")
            extraction = extractor.extract(document.root)

            logger.info(
                f"[{job.id}] {record.original_name}: {len(extraction)} chunks "
                f"({extraction.total_chars:,} chars)"
            )
            work.append(FileWork(record=record, document=document, extraction=extraction))

        return work

    async def _translate(self, job: Job, work: List[FileWork], result: RunResult):
        """Batch, dispatch and reinsert every file's chunks."""
        chunks = [chunk for item in work for chunk in item.extraction.chunks]
        batches = create_batches(chunks, max_chars=self.config.max_batch_chars)

        logger.info(f"[{job.id}] Translating {len(chunks)} chunks in {len(batches)} batches")

        groups = await self.dispatcher.dispatch(batches, job.language)
        translations: Dict[str, str] = merge_results(groups)

        result.translated_chunks = len(translations)
        result.failed_batches = sum(
            1 for batch, group in zip(batches, groups) if len(batch) and not group
        )

        for item in work:
            stats = self.engine.reinsert(translations, item.extraction.nodes)
            result.reinsertion_failures += stats.failed

    async def _generate(
        self,
        handler: JobHandler,
        work: List[FileWork],
        job_dir: Path,
        result: RunResult,
    ):
        """Render every file and record its artifact."""
        job = handler.job

        for item in work:
            record = item.record
            translated_name = f"{TRANSLATED_PREFIX}{Path(record.original_name).stem}.pdf"
            output_path = job_dir / "translated" / translated_name

            try:
                await self.renderer.render_to_file(item.document.render(), output_path)
            except GenerationError as e:
                if not self.config.isolate_generation_failures:
                    raise
                logger.warning(f"[{job.id}] {record.original_name} left untranslated: {e}")
                continue

            handler.record_translation(record, translated_name, str(output_path))
            result.generated_files.append(str(output_path))

"""
Batch translation pipeline.
Batching, dispatch, the job state machine, progress publishing and the
runner that ties them together.
"""

from .batcher import Batch, create_batches
from .dispatcher import (
    TranslationDispatcher,
    TranslationResult,
    DispatchStats,
    merge_results,
    parse_batch_response,
)
from .job_handler import (
    JobHandler,
    Job,
    FileRecord,
    JobStatus,
    PipelineStep,
)
from .progress_tracker import (
    ProgressPublisher,
    Subscription,
    build_snapshot,
    format_sse,
)
from .orchestrator import PipelineRunner, RunnerConfig, RunResult

__all__ = [
    # Batching
    'Batch',
    'create_batches',
    # Dispatch
    'TranslationDispatcher',
    'TranslationResult',
    'DispatchStats',
    'merge_results',
    'parse_batch_response',
    # Job state machine
    'JobHandler',
    'Job',
    'FileRecord',
    'JobStatus',
    'PipelineStep',
    # Progress
    'ProgressPublisher',
    'Subscription',
    'build_snapshot',
    'format_sse',
    # Runner
    'PipelineRunner',
    'RunnerConfig',
    'RunResult',
]

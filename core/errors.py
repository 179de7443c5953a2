"""
Pipeline error types.

Fatal errors (ExtractionError, GenerationError under the fail_job policy) move
the job to FAILED. DispatchError and ReinsertionError are recovered where they
happen and only logged.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for translation pipeline errors."""
    pass


class ExtractionError(PipelineError):
    """Conversion tool failed or produced unreadable markup."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class DispatchError(PipelineError):
    """A batch request failed or returned a malformed payload."""

    def __init__(self, message: str, batch_index: Optional[int] = None):
        super().__init__(message)
        self.batch_index = batch_index


class ReinsertionError(PipelineError):
    """Translated text could not be written back into a node."""

    def __init__(self, message: str, chunk_id: Optional[str] = None):
        super().__init__(message)
        self.chunk_id = chunk_id


class GenerationError(PipelineError):
    """Rendering backend rejected the markup or could not be reached."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.path = path
        self.status_code = status_code


class InvalidTransitionError(PipelineError):
    """A job transition the state machine does not allow."""

    def __init__(self, message: str, job_id: Optional[str] = None):
        super().__init__(message)
        self.job_id = job_id

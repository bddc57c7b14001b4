"""Error taxonomy for segment generation, synchronization and formatting."""

from __future__ import annotations


class CompositionError(Exception):
    """Base class for competence-file composition errors."""


class GenerationError(CompositionError):
    """A generation attempt for one segment did not produce a result."""

    kind = "generation_error"


class EnqueueFailed(GenerationError):
    """The generation job could not be submitted to the queue."""

    kind = "enqueue_failed"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GenerationFailed(GenerationError):
    """The queue worker reported the job as failed."""

    kind = "generation_failed"


class GenerationTimedOut(GenerationError):
    """No terminal job state was seen before the deadline."""

    kind = "timed_out"

    def __init__(self, message: str, timeout: float):
        super().__init__(message)
        self.timeout = timeout


class SyncNoOp(CompositionError):
    """An update referenced a segment id that is no longer in the store."""

    def __init__(self, segment_id: str):
        super().__init__(f"Segment not found: {segment_id}")
        self.segment_id = segment_id


class FormatDegraded(UserWarning):
    """Heuristic parsing fell back to plain paragraphs for some lines."""

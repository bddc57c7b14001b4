"""Per-segment generation through the durable queue.

One ``generate`` call drives one segment through
``idle/done/error -> loading -> done|error``: it marks the segment loading,
submits a job, polls the status endpoint until a terminal state or the
deadline, and applies the result back into the store. Each call owns a
``GenerationHandle``; the handle is checked on every poll tick and again
before a result is applied, so a segment that was deleted or cancelled
while its job was running never receives a late result.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from competence_composer.clients.queue_client import QueueClient
from competence_composer.errors import GenerationError, GenerationFailed, GenerationTimedOut
from competence_composer.formatting.html import convert_html_to_plain, is_html_empty
from competence_composer.history.models import GenerationRecord
from competence_composer.history.store import GenerationHistory
from competence_composer.models.candidate import SeedContext
from competence_composer.models.queue import (
    EnhancementAction,
    EnqueuePayload,
    EnqueueRequest,
    GenerationResult,
)
from competence_composer.models.segment import Segment, SegmentStatus
from competence_composer.store import SegmentStore

logger = logging.getLogger(__name__)

CANCELLED_FIELDS = {
    "status": SegmentStatus.ERROR,
    "error": "Generation cancelled",
    "error_kind": "cancelled",
}


@dataclass
class GenerationHandle:
    """Cancellation handle for one in-flight generation request."""

    segment_id: str
    segment_type: str = ""
    action: EnhancementAction | None = None
    request: EnqueueRequest | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    job_id: str | None = None
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)

    def cancel(self) -> None:
        self.cancelled.set()

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()


@dataclass
class GenerationOutcome:
    """What happened to one generation attempt."""

    segment_id: str
    status: str  # "done" | "error" | "discarded"
    job_id: str | None = None
    error: GenerationError | None = None

    @property
    def ok(self) -> bool:
        return self.status == "done"

    @property
    def error_kind(self) -> str | None:
        return self.error.kind if self.error else None


class SegmentGenerator:
    """Runs generation requests for segments of one store.

    Any number of segments may be generating at once; each request has its
    own poll loop and results may arrive in any order.
    """

    def __init__(
        self,
        store: SegmentStore,
        queue: QueueClient,
        *,
        poll_interval: float = 1.0,
        timeout: float = 120.0,
        history: GenerationHistory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.queue = queue
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.history = history
        self.clock = clock
        self._handles: dict[str, GenerationHandle] = {}

    @property
    def in_flight(self) -> list[str]:
        """Ids of segments with a running generation."""
        return list(self._handles)

    def build_request(
        self,
        segment: Segment,
        context: SeedContext | None,
        action: EnhancementAction | None = None,
        *,
        existing_content: str | None = None,
        existing_html: str | None = None,
    ) -> EnqueueRequest:
        """Build the enqueue request for ``segment``.

        Enhancement requests carry the current content and HTML; knowledge
        segments carry the knowledge document text.
        """
        candidate = context.candidate if context else None
        knowledge = context.knowledge if context else None
        payload = EnqueuePayload(
            segment_type=segment.type,
            candidate_id=candidate.id if candidate else "",
            language=context.language if context else None,
            order=segment.order,
        )
        if action is not None:
            payload.enhancement_action = action
            payload.existing_content = segment.content if existing_content is None else existing_content
            payload.existing_html = segment.rich_content if existing_html is None else existing_html
        if segment.is_knowledge and knowledge is not None:
            payload.knowledge_text = knowledge.text
        return EnqueueRequest(type="ai_enhance" if action else "ai_optimize", payload=payload)

    def start(
        self,
        segment_id: str,
        context: SeedContext | None,
        action: EnhancementAction | None = None,
        **kwargs,
    ) -> asyncio.Task[GenerationOutcome] | None:
        """Mark the segment loading now and run the job as a background task.

        Returns None when the segment is missing or already loading.
        """
        handle = self.prepare(segment_id, context, action, **kwargs)
        if handle is None:
            return None
        task = asyncio.create_task(self.run(handle), name=f"generate:{segment_id}")
        task.add_done_callback(lambda _: self._release(handle))
        return task

    def _release(self, handle: GenerationHandle) -> None:
        # A task cancelled before its first step never reaches run's cleanup.
        if self._handles.get(handle.segment_id) is handle:
            del self._handles[handle.segment_id]
            self.store.finish_generation(handle.segment_id, handle.id, CANCELLED_FIELDS)

    def cancel(self, segment_id: str) -> bool:
        """Abandon the running generation for a segment and mark it failed.

        The external job is not stopped; this engine only stops waiting.
        """
        handle = self._handles.get(segment_id)
        if handle is None:
            return False
        handle.cancel()
        self.store.finish_generation(segment_id, handle.id, CANCELLED_FIELDS)
        logger.info("Cancelled generation for %s", segment_id)
        return True

    async def generate(
        self,
        segment_id: str,
        context: SeedContext | None,
        action: EnhancementAction | None = None,
        *,
        existing_content: str | None = None,
        existing_html: str | None = None,
    ) -> GenerationOutcome:
        """Generate (or enhance) one segment and apply the result.

        Generation errors never propagate: they are recorded on the segment
        and returned in the outcome. Prior content is kept on failure.
        """
        handle = self.prepare(
            segment_id,
            context,
            action,
            existing_content=existing_content,
            existing_html=existing_html,
        )
        if handle is None:
            return GenerationOutcome(segment_id, "discarded")
        return await self.run(handle)

    def prepare(
        self,
        segment_id: str,
        context: SeedContext | None,
        action: EnhancementAction | None = None,
        *,
        existing_content: str | None = None,
        existing_html: str | None = None,
    ) -> GenerationHandle | None:
        """Build the request and move the segment to loading.

        Returns None when the segment is missing or already loading.
        """
        segment = self.store.get(segment_id)
        if segment is None:
            logger.info("Generation skipped: segment %s not found", segment_id)
            return None

        handle = GenerationHandle(
            segment_id=segment_id,
            segment_type=segment.type,
            action=action,
            request=self.build_request(
                segment,
                context,
                action,
                existing_content=existing_content,
                existing_html=existing_html,
            ),
        )
        if not self.store.begin_generation(segment_id, handle.id):
            return None
        self._handles[segment_id] = handle
        return handle

    async def run(self, handle: GenerationHandle) -> GenerationOutcome:
        """Submit the prepared request, poll it and apply the result."""
        segment_id = handle.segment_id
        started = self.clock()

        try:
            handle.job_id = await self.queue.enqueue(handle.request)
            result = await self._poll(handle, deadline=started + self.timeout)
        except GenerationError as exc:
            outcome = self._fail(handle, exc)
        except asyncio.CancelledError:
            self.store.finish_generation(segment_id, handle.id, CANCELLED_FIELDS)
            raise
        else:
            if result is None:
                outcome = GenerationOutcome(segment_id, "discarded", handle.job_id)
            else:
                outcome = self._apply(handle, result)
        finally:
            if self._handles.get(segment_id) is handle:
                del self._handles[segment_id]

        self._record(handle, outcome, self.clock() - started)
        return outcome

    async def _poll(self, handle: GenerationHandle, deadline: float) -> GenerationResult | None:
        """Poll until completed, failed or the deadline. None means stop waiting."""
        while True:
            if self._abandoned(handle):
                return None
            try:
                status = await self.queue.get_status(handle.job_id)
            except httpx.HTTPError as exc:
                logger.warning("Status poll for job %s failed: %s", handle.job_id, exc)
                status = None
            if self._abandoned(handle):
                return None

            if status is not None:
                if status.is_completed:
                    return status.result or GenerationResult()
                if status.is_failed:
                    raise GenerationFailed(status.error or "Segment generation failed")

            remaining = deadline - self.clock()
            if remaining <= 0:
                raise GenerationTimedOut(
                    f"Job {handle.job_id} did not finish within {self.timeout:g}s",
                    timeout=self.timeout,
                )
            try:
                await asyncio.wait_for(handle.cancelled.wait(), timeout=min(self.poll_interval, remaining))
            except asyncio.TimeoutError:
                pass

    def _abandoned(self, handle: GenerationHandle) -> bool:
        if handle.is_cancelled:
            logger.info("Stopped polling job %s: cancelled", handle.job_id)
            return True
        if handle.segment_id not in self.store:
            logger.info("Stopped polling job %s: segment %s removed", handle.job_id, handle.segment_id)
            return True
        return False

    def _apply(self, handle: GenerationHandle, result: GenerationResult) -> GenerationOutcome:
        fields: dict = {"status": SegmentStatus.DONE, "error": None, "error_kind": None}
        text = result.text
        html = result.html_content if not is_html_empty(result.html_content) else None
        if text:
            fields.update(content=text, rich_content=html, editor_state=None)
        elif html:
            fields.update(content=convert_html_to_plain(html), rich_content=html, editor_state=None)
        else:
            logger.warning("Job %s completed without content; keeping previous text", handle.job_id)

        if not self.store.finish_generation(handle.segment_id, handle.id, fields):
            return GenerationOutcome(handle.segment_id, "discarded", handle.job_id)
        logger.info("Segment %s generated (job %s)", handle.segment_id, handle.job_id)
        return GenerationOutcome(handle.segment_id, "done", handle.job_id)

    def _fail(self, handle: GenerationHandle, exc: GenerationError) -> GenerationOutcome:
        logger.warning("Generation for %s failed (%s): %s", handle.segment_id, exc.kind, exc)
        applied = self.store.finish_generation(
            handle.segment_id,
            handle.id,
            {"status": SegmentStatus.ERROR, "error": str(exc), "error_kind": exc.kind},
        )
        status = "error" if applied else "discarded"
        return GenerationOutcome(handle.segment_id, status, handle.job_id, error=exc)

    def _record(self, handle: GenerationHandle, outcome: GenerationOutcome, elapsed: float) -> None:
        if self.history is None:
            return
        error_kind = outcome.error_kind or ("cancelled" if handle.is_cancelled else None)
        self.history.save_record(
            GenerationRecord(
                segment_id=handle.segment_id,
                segment_type=handle.segment_type,
                action=handle.action.value if handle.action else "generate",
                job_id=handle.job_id,
                outcome=outcome.status,
                error_kind=error_kind,
                error_message=str(outcome.error) if outcome.error else None,
                elapsed_seconds=round(elapsed, 3),
            )
        )

"""HTTP client for the generation queue enqueue and status endpoints."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from competence_composer.errors import EnqueueFailed
from competence_composer.models.queue import EnqueueRequest, JobStatus

logger = logging.getLogger(__name__)


class QueueClient:
    """Async client for the durable generation queue.

    ``enqueue`` is never retried: a failed submission is terminal for that
    attempt. Status reads are retried on transport errors only.
    """

    def __init__(
        self,
        base_url: str,
        *,
        enqueue_path: str = "/api/ai/queue/enqueue",
        status_path: str = "/api/ai/queue/status",
        timeout: float = 10.0,
        status_retries: int = 3,
        retry_wait: float = 0.2,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.enqueue_path = enqueue_path
        self.status_path = status_path
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )
        self._fetch_status_with_retry = retry(
            stop=stop_after_attempt(max(1, status_retries)),
            wait=wait_exponential(multiplier=retry_wait, max=2),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )(self._fetch_status)

    async def __aenter__(self) -> QueueClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def enqueue(self, request: EnqueueRequest) -> str:
        """Submit a generation job and return its job id.

        Raises:
            EnqueueFailed: on transport errors, non-success responses, or a
                response without a ``jobId``.
        """
        segment_type = request.payload.segment_type
        logger.debug("Enqueue %s for %s", request.type, segment_type)
        try:
            response = await self.client.post(self.enqueue_path, json=request.to_wire())
        except httpx.HTTPError as exc:
            raise EnqueueFailed(f"Could not reach queue: {exc}") from exc

        if not response.is_success:
            raise EnqueueFailed(
                f"Enqueue rejected with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise EnqueueFailed("Enqueue response is not JSON", response.status_code) from exc

        job_id = body.get("jobId") if isinstance(body, dict) else None
        if not job_id:
            raise EnqueueFailed("No jobId returned", status_code=response.status_code)
        logger.info("Enqueued job %s for %s", job_id, segment_type)
        return str(job_id)

    async def _fetch_status(self, job_id: str) -> httpx.Response:
        return await self.client.get(self.status_path, params={"id": job_id})

    async def get_status(self, job_id: str) -> JobStatus | None:
        """Read the job state. Returns None when the response carries no usable state."""
        response = await self._fetch_status_with_retry(job_id)
        if not response.is_success:
            logger.debug("Status poll for %s returned HTTP %d", job_id, response.status_code)
            return None
        try:
            return JobStatus.model_validate(response.json())
        except (ValueError, ValidationError):
            logger.warning("Unreadable status response for job %s", job_id)
            return None

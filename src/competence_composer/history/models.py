"""Generation history data models."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class GenerationRecord(BaseModel):
    """One generation attempt for one segment."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=datetime.now)
    segment_id: str
    segment_type: str
    action: str = "generate"  # "generate" | improve/expand/rewrite/optimize
    job_id: str | None = None
    outcome: str  # "done" | "error" | "discarded"
    error_kind: str | None = None
    error_message: str | None = None
    elapsed_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.outcome == "done"

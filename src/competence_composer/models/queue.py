"""Wire models for the generation queue endpoints."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from competence_composer.models.base import WireModel


class EnhancementAction(str, Enum):
    IMPROVE = "improve"
    EXPAND = "expand"
    REWRITE = "rewrite"
    OPTIMIZE = "optimize"


class EnqueuePayload(WireModel):
    segment_type: str
    candidate_id: str = ""
    language: str | None = None
    order: int = 0
    enhancement_action: EnhancementAction | None = None
    existing_content: str | None = None
    existing_html: str | None = None
    knowledge_text: str | None = None


class EnqueueRequest(WireModel):
    type: Literal["ai_optimize", "ai_enhance"]
    payload: EnqueuePayload

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GenerationResult(WireModel):
    content: str | None = None
    html_content: str | None = None
    data: dict[str, Any] | None = None

    @property
    def text(self) -> str:
        """Plain content, looking in ``data.content`` when needed."""
        if self.content:
            return self.content
        if self.data and isinstance(self.data.get("content"), str):
            return self.data["content"]
        return ""


class JobStatus(WireModel):
    status: str
    result: GenerationResult | None = None
    error: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @property
    def is_failed(self) -> bool:
        return self.status == "failed"

"""Pydantic model for one editable, generatable section of a document."""

from __future__ import annotations

from enum import Enum
from typing import Any

from competence_composer.models.base import WireModel
from competence_composer.models.candidate import ExperienceEntry


class SegmentStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    DONE = "done"
    ERROR = "error"


# Legal generation state transitions; staying in the same state is always allowed.
STATUS_TRANSITIONS: dict[SegmentStatus, frozenset[SegmentStatus]] = {
    SegmentStatus.IDLE: frozenset({SegmentStatus.LOADING}),
    SegmentStatus.LOADING: frozenset({SegmentStatus.DONE, SegmentStatus.ERROR}),
    SegmentStatus.DONE: frozenset({SegmentStatus.LOADING}),
    SegmentStatus.ERROR: frozenset({SegmentStatus.LOADING}),
}


class Segment(WireModel):
    id: str
    type: str
    title: str
    order: int
    visible: bool = True
    content: str = ""  # semi-structured plain text, source of truth
    rich_content: str | None = None  # last synchronized HTML
    status: SegmentStatus = SegmentStatus.IDLE
    editable: bool = True
    experience: ExperienceEntry | None = None
    editor_state: Any = None
    error: str | None = None
    error_kind: str | None = None
    generation_id: str | None = None

    @property
    def is_knowledge(self) -> bool:
        return self.type.upper().startswith("K_")

    @property
    def has_content(self) -> bool:
        return bool(self.content.strip() or (self.rich_content or "").strip())


def can_transition(current: SegmentStatus, new: SegmentStatus) -> bool:
    """Return True if a segment may move from ``current`` to ``new``."""
    return current == new or new in STATUS_TRANSITIONS[current]

"""Reconciling live editor state back into the segment store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from competence_composer.formatting.html import convert_html_to_plain, is_html_empty
from competence_composer.models.segment import Segment, SegmentStatus
from competence_composer.store import SegmentStore

logger = logging.getLogger(__name__)


@dataclass
class EditorSnapshot:
    """Latest state an editor surface holds for one segment."""

    text: str | None
    html: str | None = None
    state: Any = None

    @property
    def plain_text(self) -> str:
        if self.text is not None:
            return self.text
        return convert_html_to_plain(self.html or "")

    @property
    def is_state_only(self) -> bool:
        return self.text is None and self.html is None


@dataclass
class SyncReport:
    generation: int
    updated: list[str] = field(default_factory=list)
    cleared_rich: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class LiveEdits:
    """Edits held outside the store until the next sync.

    Recording an edit never touches the store.
    """

    def __init__(self):
        self._edits: dict[str, EditorSnapshot] = {}

    def __len__(self) -> int:
        return len(self._edits)

    def __contains__(self, segment_id: object) -> bool:
        return segment_id in self._edits

    def record(self, segment_id: str, text: str | None, html: str | None = None, state: Any = None) -> None:
        self._edits[segment_id] = EditorSnapshot(text=text, html=html, state=state)

    def get(self, segment_id: str) -> EditorSnapshot | None:
        return self._edits.get(segment_id)

    def discard(self, segment_id: str) -> None:
        self._edits.pop(segment_id, None)

    def pending(self) -> list[str]:
        return list(self._edits)

    def clear(self) -> None:
        self._edits.clear()


def plan_segment_sync(segment: Segment, edit: EditorSnapshot) -> dict[str, Any]:
    """Fields to write for one segment, or an empty dict when nothing changed.

    Rich HTML is dropped when the plain text changed or when the HTML is
    visually empty, so the preview falls back to formatting ``content``.
    An edit carrying neither text nor HTML only writes ``editor_state``.
    """
    if edit.is_state_only:
        if edit.state is not None and edit.state != segment.editor_state:
            return {"editor_state": edit.state}
        return {}

    text = edit.plain_text
    text_changed = text != segment.content
    rich = None if text_changed or is_html_empty(edit.html) else edit.html

    fields: dict[str, Any] = {}
    if text_changed:
        fields["content"] = text
    if rich != segment.rich_content:
        fields["rich_content"] = rich
    if edit.state is not None and edit.state != segment.editor_state:
        fields["editor_state"] = edit.state
    return fields


def sync_segments(store: SegmentStore, edits: LiveEdits) -> SyncReport:
    """Apply every pending edit to the store and bump the preview counter.

    All changes are computed before any is written. Segments that are
    generating are skipped and keep their pending edit.
    """
    planned: dict[str, dict[str, Any]] = {}
    skipped: list[str] = []
    for segment_id in edits.pending():
        segment = store.get(segment_id)
        if segment is None:
            logger.info("Dropping edit for removed segment %s", segment_id)
            edits.discard(segment_id)
            continue
        if segment.status == SegmentStatus.LOADING:
            skipped.append(segment_id)
            continue
        planned[segment_id] = plan_segment_sync(segment, edits.get(segment_id))

    updated: list[str] = []
    cleared: list[str] = []
    for segment_id, fields in planned.items():
        had_rich = store.get(segment_id).rich_content is not None
        if fields and store.update(segment_id, fields):
            updated.append(segment_id)
            if had_rich and "rich_content" in fields and fields["rich_content"] is None:
                cleared.append(segment_id)
        edits.discard(segment_id)

    generation = store.bump_preview_generation()
    logger.debug(
        "Sync %d: %d updated, %d rich cleared, %d skipped",
        generation,
        len(updated),
        len(cleared),
        len(skipped),
    )
    return SyncReport(generation=generation, updated=updated, cleared_rich=cleared, skipped=skipped)

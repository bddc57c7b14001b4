"""Segment store: the ordered segments of the document being composed."""

from __future__ import annotations

import itertools
import json
import logging
from typing import Any

from pydantic import ValidationError

from competence_composer.errors import SyncNoOp
from competence_composer.models.segment import Segment, SegmentStatus, can_transition

logger = logging.getLogger(__name__)

# Fields only the generation call that owns a loading segment may change.
GENERATION_FIELDS = frozenset({"content", "rich_content", "editor_state", "status"})


class SegmentStore:
    """Authoritative ordered collection of segments for one document.

    The store is owned by a composition session and passed to the generator,
    the sync step and the preview renderer. Every mutation goes through one
    method call, so field merges are atomic under cooperative scheduling.
    ``update`` never raises; a missing segment is logged and skipped.
    """

    def __init__(self, segments: list[Segment] | None = None):
        self._segments: dict[str, Segment] = {}
        self._inserted: dict[str, int] = {}
        self._counter = itertools.count()
        self._retired: set[str] = set()
        self.preview_generation = 0
        if segments:
            self.set_segments(segments)

    def __len__(self) -> int:
        return len(self._segments)

    def __contains__(self, segment_id: object) -> bool:
        return segment_id in self._segments

    def __iter__(self):
        return iter(self.ordered())

    # --- population ------------------------------------------------------

    def seed(self, context) -> list[Segment]:
        """Create the initial segments for ``context``.

        No-op when the store already holds segments, so calling it twice
        never duplicates anything.
        """
        if self._segments:
            logger.info("Store already seeded with %d segments, skipping", len(self._segments))
            return self.ordered()

        from competence_composer.seeding import build_segments

        for segment in build_segments(context):
            self._insert(segment)
        logger.info("Seeded %d segments", len(self._segments))
        return self.ordered()

    def add(self, segment: Segment) -> Segment:
        """Add a section. Ids are never reused within a document."""
        if not self.id_available(segment.id):
            raise ValueError(f"Segment id already used: {segment.id}")
        self._insert(segment)
        return segment

    def id_available(self, segment_id: str) -> bool:
        return segment_id not in self._segments and segment_id not in self._retired

    def set_segments(self, segments: list[Segment]) -> None:
        """Replace the whole collection."""
        self.clear()
        for segment in segments:
            self.add(segment)

    def load_existing(self, data: dict[str, Any]) -> list[Segment]:
        """Rebuild the store from a saved document.

        Reads ``sectionsConfig`` when present, else the ``metadata.sections``
        mapping. Loaded segments are marked ``done``. A missing or null
        ``order`` falls back to the list position and repeated ids get a
        numeric suffix.
        """
        segments: list[Segment] = []
        sections = data.get("sectionsConfig")
        if isinstance(sections, list):
            seen: set[str] = set()
            for index, section in enumerate(sections):
                segment_id = section.get("id") or f"section-{index}"
                if segment_id in seen:
                    base, suffix = segment_id, 2
                    while f"{base}-{suffix}" in seen:
                        suffix += 1
                    segment_id = f"{base}-{suffix}"
                    logger.warning("Duplicate section id %s renamed to %s", base, segment_id)
                seen.add(segment_id)
                order = section.get("order")
                segments.append(
                    Segment(
                        id=segment_id,
                        title=section.get("title") or f"Section {index + 1}",
                        type=section.get("type") or "general",
                        order=index if order is None else order,
                        visible=section.get("visible", True) is not False,
                        content=section.get("content") or "",
                        rich_content=section.get("htmlContent") or section.get("richContent"),
                        editor_state=section.get("editorState"),
                        status=SegmentStatus.DONE,
                    )
                )
        else:
            mapping = (data.get("metadata") or {}).get("sections") or {}
            for index, (key, value) in enumerate(mapping.items()):
                segments.append(
                    Segment(
                        id=f"section-{index}",
                        title=key.upper(),
                        type="_".join(key.lower().split()),
                        order=index,
                        content=value if isinstance(value, str) else json.dumps(value),
                        status=SegmentStatus.DONE,
                    )
                )
        segments.sort(key=lambda s: s.order)
        self.set_segments(segments)
        logger.info("Loaded %d segments from existing document", len(segments))
        return self.ordered()

    def clear(self) -> None:
        """Empty the store for a new document."""
        self._segments.clear()
        self._inserted.clear()
        self._retired.clear()

    def _insert(self, segment: Segment) -> None:
        self._segments[segment.id] = segment
        self._inserted[segment.id] = next(self._counter)

    # --- queries ---------------------------------------------------------

    def get(self, segment_id: str) -> Segment | None:
        return self._segments.get(segment_id)

    def get_by_type(self, segment_type: str) -> Segment | None:
        return next((s for s in self.ordered() if s.type == segment_type), None)

    def get_by_status(self, status: SegmentStatus) -> list[Segment]:
        return [s for s in self.ordered() if s.status == status]

    def ordered(self) -> list[Segment]:
        """All segments by ``order``, ties broken by insertion sequence."""
        return sorted(self._segments.values(), key=lambda s: (s.order, self._inserted[s.id]))

    def get_visible(self) -> list[Segment]:
        return [s for s in self.ordered() if s.visible]

    # --- mutations -------------------------------------------------------

    def update(self, segment_id: str, fields: dict[str, Any], *, owner: str | None = None) -> bool:
        """Merge ``fields`` into a segment. Returns False when nothing changed.

        While a segment is loading, content and status changes are only
        accepted from the generation that owns it (``owner``). Illegal
        status transitions and invalid values are dropped.
        """
        try:
            return self._apply(segment_id, fields, owner)
        except SyncNoOp as exc:
            logger.info("Update skipped: %s", exc)
            return False

    def _apply(self, segment_id: str, fields: dict[str, Any], owner: str | None) -> bool:
        segment = self._segments.get(segment_id)
        if segment is None:
            raise SyncNoOp(segment_id)

        changes = {}
        for key, value in fields.items():
            if key == "id" or key not in Segment.model_fields:
                logger.warning("Ignoring unknown field %r for segment %s", key, segment_id)
                continue
            changes[key] = value

        if segment.status == SegmentStatus.LOADING and owner != segment.generation_id:
            guarded = GENERATION_FIELDS.intersection(changes)
            if guarded:
                logger.warning(
                    "Segment %s is generating; dropping %s", segment_id, ", ".join(sorted(guarded))
                )
                changes = {k: v for k, v in changes.items() if k not in guarded}

        if "status" in changes:
            try:
                new_status = SegmentStatus(changes["status"])
            except ValueError:
                logger.warning("Unknown status %r for segment %s", changes["status"], segment_id)
                return False
            if not can_transition(segment.status, new_status):
                logger.warning(
                    "Illegal status transition for %s: %s -> %s",
                    segment_id,
                    segment.status.value,
                    new_status.value,
                )
                del changes["status"]

        if not changes:
            return False

        try:
            merged = Segment.model_validate({**segment.model_dump(), **changes})
        except ValidationError as exc:
            logger.warning("Rejected update for segment %s: %s", segment_id, exc)
            return False
        self._segments[segment_id] = merged
        return True

    def reorder(self, from_index: int, to_index: int) -> None:
        """Move the segment at ``from_index`` to ``to_index`` and renumber.

        Indices refer to the full ordered list, hidden segments included, so
        hidden segments keep their place relative to visible ones.
        """
        items = self.ordered()
        size = len(items)
        if not (0 <= from_index < size and 0 <= to_index < size):
            raise IndexError(f"reorder({from_index}, {to_index}) out of range for {size} segments")
        moved = items.pop(from_index)
        items.insert(to_index, moved)
        for position, segment in enumerate(items):
            if segment.order != position:
                self._segments[segment.id] = segment.model_copy(update={"order": position})

    def remove(self, segment_id: str) -> Segment | None:
        """Delete a segment. Other segments keep their ``order``."""
        segment = self._segments.pop(segment_id, None)
        if segment is None:
            logger.info("Remove skipped: segment %s not found", segment_id)
            return None
        del self._inserted[segment_id]
        self._retired.add(segment_id)
        return segment

    def next_order(self) -> int:
        return max((s.order for s in self._segments.values()), default=-1) + 1

    # --- generation helpers ----------------------------------------------

    def begin_generation(self, segment_id: str, generation_id: str) -> bool:
        """Mark a segment loading and owned by ``generation_id``."""
        segment = self._segments.get(segment_id)
        if segment is None:
            logger.info("Cannot start generation: segment %s not found", segment_id)
            return False
        if segment.status == SegmentStatus.LOADING:
            logger.warning("Segment %s is already generating", segment_id)
            return False
        return self.update(
            segment_id,
            {
                "status": SegmentStatus.LOADING,
                "generation_id": generation_id,
                "error": None,
                "error_kind": None,
            },
        )

    def finish_generation(self, segment_id: str, generation_id: str, fields: dict[str, Any]) -> bool:
        """Apply a generation's terminal fields if it still owns the segment."""
        segment = self._segments.get(segment_id)
        if segment is None:
            logger.info("Discarding result: segment %s was removed", segment_id)
            return False
        if segment.status != SegmentStatus.LOADING or segment.generation_id != generation_id:
            logger.info("Discarding result: segment %s no longer owned by %s", segment_id, generation_id)
            return False
        return self.update(segment_id, {**fields, "generation_id": None}, owner=generation_id)

    # --- preview counter -------------------------------------------------

    def bump_preview_generation(self) -> int:
        self.preview_generation += 1
        return self.preview_generation

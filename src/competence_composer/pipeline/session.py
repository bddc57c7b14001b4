"""Document-editing session: owns the store and wires its collaborators."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from competence_composer.clients.queue_client import QueueClient
from competence_composer.config import AppConfig
from competence_composer.export.preview_renderer import PreviewOptions, render_preview
from competence_composer.history.store import GenerationHistory
from competence_composer.models.candidate import HeaderInfo, SeedContext
from competence_composer.models.queue import EnhancementAction
from competence_composer.models.segment import Segment, SegmentStatus
from competence_composer.pipeline.generation import GenerationOutcome, SegmentGenerator
from competence_composer.pipeline.sync import LiveEdits, SyncReport, sync_segments
from competence_composer.store import SegmentStore

logger = logging.getLogger(__name__)


class CompositionSession:
    """One competence file being composed by one user.

    The session owns the segment store and passes it by reference to the
    generator, the sync step and the preview renderer.
    """

    def __init__(
        self,
        queue: QueueClient,
        *,
        context: SeedContext | None = None,
        poll_interval: float = 1.0,
        timeout: float = 120.0,
        history: GenerationHistory | None = None,
        preview: PreviewOptions | None = None,
        store: SegmentStore | None = None,
    ):
        self.store = store if store is not None else SegmentStore()
        self.context = context or SeedContext()
        self.edits = LiveEdits()
        self.preview_options = preview or PreviewOptions()
        self.generator = SegmentGenerator(
            self.store,
            queue,
            poll_interval=poll_interval,
            timeout=timeout,
            history=history,
        )

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        queue: QueueClient,
        context: SeedContext | None = None,
    ) -> CompositionSession:
        history = GenerationHistory(config.history.resolved_db_path) if config.history.enabled else None
        return cls(
            queue,
            context=context,
            poll_interval=config.queue.poll_interval,
            timeout=config.queue.timeout,
            history=history,
            preview=PreviewOptions.from_config(config.preview),
        )

    # --- document -----------------------------------------------------------

    def seed(self, context: SeedContext | None = None) -> list[Segment]:
        if context is not None:
            self.context = context
        return self.store.seed(self.context)

    def load_existing(self, data: dict[str, Any]) -> list[Segment]:
        self.edits.clear()
        return self.store.load_existing(data)

    def new_document(self, context: SeedContext | None = None) -> list[Segment]:
        """Abandon running generations, clear everything and seed again."""
        for segment_id in self.generator.in_flight:
            self.generator.cancel(segment_id)
        self.edits.clear()
        self.store.clear()
        return self.seed(context)

    # --- generation ---------------------------------------------------------

    async def generate_all(
        self,
        *,
        only_empty: bool = False,
        on_progress: Callable[[GenerationOutcome], None] | None = None,
    ) -> list[GenerationOutcome]:
        """Generate every segment concurrently; results are applied as they arrive."""
        targets = [
            s.id
            for s in self.store.ordered()
            if s.status != SegmentStatus.LOADING and not (only_empty and s.has_content)
        ]
        logger.info("Generating %d segments", len(targets))

        async def _run(segment_id: str) -> GenerationOutcome:
            outcome = await self.generator.generate(segment_id, self.context)
            if on_progress:
                on_progress(outcome)
            return outcome

        return list(await asyncio.gather(*(_run(seg_id) for seg_id in targets)))

    async def regenerate(self, segment_id: str) -> GenerationOutcome:
        self.edits.discard(segment_id)
        return await self.generator.generate(segment_id, self.context)

    async def enhance(self, segment_id: str, action: EnhancementAction | str) -> GenerationOutcome:
        """Improve/expand/rewrite/optimize the segment's current text.

        Unsynced edits are sent as the existing content, so the user's
        latest text is what gets enhanced.
        """
        action = EnhancementAction(action)
        edit = self.edits.get(segment_id)
        kwargs = {}
        if edit is not None:
            kwargs = {"existing_content": edit.plain_text, "existing_html": edit.html}
            self.edits.discard(segment_id)
        return await self.generator.generate(segment_id, self.context, action, **kwargs)

    def cancel(self, segment_id: str) -> bool:
        return self.generator.cancel(segment_id)

    # --- structure ------------------------------------------------------------

    def add_section(self, title: str, segment_type: str | None = None, content: str = "") -> Segment:
        """Append a new section after the last one."""
        base = "custom-" + "-".join(title.lower().split()) if title.strip() else "custom"
        segment_id, n = base, 1
        while not self.store.id_available(segment_id):
            n += 1
            segment_id = f"{base}-{n}"
        segment = Segment(
            id=segment_id,
            title=title,
            type=segment_type or title.upper(),
            order=self.store.next_order(),
            content=content,
        )
        return self.store.add(segment)

    def remove_section(self, segment_id: str) -> Segment | None:
        self.generator.cancel(segment_id)
        self.edits.discard(segment_id)
        return self.store.remove(segment_id)

    def rename(self, segment_id: str, title: str) -> bool:
        return self.store.update(segment_id, {"title": title})

    def toggle_visibility(self, segment_id: str) -> bool:
        segment = self.store.get(segment_id)
        if segment is None:
            logger.info("Toggle skipped: segment %s not found", segment_id)
            return False
        return self.store.update(segment_id, {"visible": not segment.visible})

    def move(self, from_index: int, to_index: int) -> None:
        self.store.reorder(from_index, to_index)

    # --- editing and preview --------------------------------------------------

    def record_edit(self, segment_id: str, text: str | None, html: str | None = None, state: Any = None) -> None:
        """Hold the editor's latest state until the next sync."""
        self.edits.record(segment_id, text, html, state)

    def sync_preview(self) -> SyncReport:
        return sync_segments(self.store, self.edits)

    def header(self) -> HeaderInfo:
        return HeaderInfo.from_context(self.context)

    def render_preview(self, *, sync: bool = True) -> str:
        """Sync pending edits (unless ``sync=False``) and render the preview."""
        if sync:
            self.sync_preview()
        return render_preview(
            self.store.get_visible(),
            self.header(),
            self.preview_options,
            sync_generation=self.store.preview_generation,
        )

"""HTML preview of a competence file from its visible segments."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader
from markupsafe import Markup

from competence_composer.config import PreviewConfig
from competence_composer.formatting.html import is_html_empty, strip_preview_artifacts
from competence_composer.formatting.sections import format_section
from competence_composer.models.candidate import HeaderInfo
from competence_composer.models.segment import Segment, SegmentStatus

logger = logging.getLogger(__name__)

BASE_TEMPLATE_DIR = Path(__file__).parent
STYLESHEET = BASE_TEMPLATE_DIR / "preview.css"

GOOGLE_FONTS = {
    "Inter": "Inter:wght@400;600;700",
    "Roboto": "Roboto:wght@400;500;700",
    "Open Sans": "Open+Sans:wght@400;600;700",
    "Lato": "Lato:wght@400;700",
    "Montserrat": "Montserrat:wght@400;600;700",
    "Poppins": "Poppins:wght@400;600;700",
    "Merriweather": "Merriweather:wght@400;700",
    "Playfair Display": "Playfair+Display:wght@400;700",
    "Source Sans 3": "Source+Sans+3:wght@400;600;700",
    "Source Serif 4": "Source+Serif+4:wght@400;600;700",
    "IBM Plex Sans": "IBM+Plex+Sans:wght@400;600;700",
}

SYNC_MARKER_RE = re.compile(r"\n?<!-- sync:\d+ -->")

_env = Environment(
    loader=FileSystemLoader(str(BASE_TEMPLATE_DIR)),
    autoescape=True,
)


@dataclass(frozen=True)
class PreviewOptions:
    font: str = "Inter"
    font_size: int = 12
    footer_text: str = ""
    skills_as_tags: bool = False
    title: str = "Competence File"

    @classmethod
    def from_config(cls, config: PreviewConfig) -> PreviewOptions:
        return cls(
            font=config.font,
            font_size=config.font_size,
            footer_text=config.footer_text,
            skills_as_tags=config.skills_as_tags,
        )


@dataclass
class SectionView:
    id: str
    title: str
    body: Markup
    loading: bool = False


def font_url(font: str) -> str | None:
    family = GOOGLE_FONTS.get(font)
    if family is None:
        return None
    return f"https://fonts.googleapis.com/css2?family={family}&display=swap"


def render_segment_body(segment: Segment, options: PreviewOptions) -> str:
    """HTML body for one segment: cleaned rich content, else formatted text."""
    if segment.rich_content:
        body = strip_preview_artifacts(segment.rich_content)
        if not is_html_empty(body):
            return body
    return format_section(
        segment.type,
        segment.title,
        segment.content,
        skills_as_tags=options.skills_as_tags,
    )


def _section_view(segment: Segment, options: PreviewOptions) -> SectionView | None:
    if segment.status == SegmentStatus.LOADING and not segment.has_content:
        return SectionView(segment.id, segment.title, Markup(""), loading=True)
    if not segment.has_content:
        return None
    return SectionView(segment.id, segment.title, Markup(render_segment_body(segment, options)))


def render_preview(
    segments: list[Segment],
    header: HeaderInfo,
    options: PreviewOptions | None = None,
    *,
    sync_generation: int | None = None,
) -> str:
    """Render the document preview HTML.

    Only visible segments are rendered, by ``order``. Output depends only on
    the arguments; ``sync_generation`` appends a comment marker so a preview
    surface can tell renders apart.
    """
    options = options or PreviewOptions()
    visible = sorted((s for s in segments if s.visible), key=lambda s: s.order)
    sections = [view for view in (_section_view(s, options) for s in visible) if view]
    logger.debug("Rendering preview with %d sections", len(sections))

    years = ""
    if header.years_of_experience:
        years = f"{header.years_of_experience:g} years of experience"
    css = STYLESHEET.read_text(encoding="utf-8") if STYLESHEET.exists() else ""

    template = _env.get_template("preview.html")
    html = template.render(
        title=header.full_name or options.title,
        font=options.font,
        font_size=options.font_size,
        font_url=font_url(options.font),
        css=Markup(css),
        header=header,
        manager=header.manager if header.manager and not header.manager.is_empty else None,
        years=years,
        sections=sections,
        footer_text=options.footer_text,
    )
    if sync_generation is not None:
        html += f"\n<!-- sync:{sync_generation} -->"
    return html


def strip_sync_marker(html: str) -> str:
    """Remove the sync marker so two renders can be compared by content."""
    return SYNC_MARKER_RE.sub("", html)

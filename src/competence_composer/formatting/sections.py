"""Section-aware preview formatters.

Three policies exist beside the generic rule set: a technical/skills
formatter (category labels with flat item lists), an experience-block
formatter (company/role/dates header plus anchor-labelled buckets), and a
generic fallback. ``format_section`` picks one by segment type and title.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from markupsafe import escape

from competence_composer.formatting.blocks import BULLET_RE, LineKind, classify_line
from competence_composer.formatting.html import strip_markup
from competence_composer.formatting.inline import inline_to_html, strip_inline

logger = logging.getLogger(__name__)

EXPERIENCE_TYPE_RE = re.compile(r"^PROFESSIONAL EXPERIENCE \d+$", re.IGNORECASE)
TECHNICAL_TYPES = frozenset({"TECHNICAL SKILLS", "FUNCTIONAL SKILLS"})
TECHNICAL_TITLES = ("TECHNICAL EXPERTISE", "FUNCTIONAL SKILLS")
FLAT_LIST_TYPES = frozenset({"CERTIFICATIONS"})
FLAT_LIST_TITLES = ("PROFESSIONAL CERTIFICATIONS",)

EXPERIENCE_ANCHORS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Key Responsibilities", re.compile(r"key\s+responsibilities\s*:?", re.IGNORECASE)),
    ("Achievements & Impact", re.compile(r"achievements\s*(?:&|and)\s*impact\s*:?", re.IGNORECASE)),
    ("Technical Environment", re.compile(r"technical\s+environment\s*:?", re.IGNORECASE)),
)
DATE_RANGE_RE = re.compile(
    r"(\d{4}-\d{2})\s*(?:-|–|—|to)\s*(\d{4}-\d{2}|present|current|now)",
    re.IGNORECASE,
)


class SectionKind(str, Enum):
    EXPERIENCE = "experience"
    TECHNICAL = "technical"
    FLAT_LIST = "flat_list"
    GENERIC = "generic"


def classify_section(segment_type: str, title: str = "") -> SectionKind:
    """Choose the preview formatter for a segment."""
    seg_type = (segment_type or "").strip().upper()
    seg_title = (title or "").strip().upper()
    if EXPERIENCE_TYPE_RE.match(seg_type) or EXPERIENCE_TYPE_RE.match(seg_title):
        return SectionKind.EXPERIENCE
    if seg_type in TECHNICAL_TYPES or any(t in seg_title for t in TECHNICAL_TITLES):
        return SectionKind.TECHNICAL
    if seg_type in FLAT_LIST_TYPES or any(t in seg_title for t in FLAT_LIST_TITLES):
        return SectionKind.FLAT_LIST
    return SectionKind.GENERIC


def format_section(
    segment_type: str,
    title: str,
    content: str,
    *,
    skills_as_tags: bool = False,
) -> str:
    kind = classify_section(segment_type, title)
    if kind == SectionKind.EXPERIENCE:
        return format_experience_section(content)
    if kind == SectionKind.TECHNICAL:
        if skills_as_tags:
            return format_skill_tags(content)
        return format_technical_section(content)
    return format_generic_section(content, flat_bullets=kind == SectionKind.FLAT_LIST)


def _is_residue(text: str) -> bool:
    """True for empty or asterisk/punctuation-only leftovers."""
    return not re.sub(r"[*.\-–—\s<>/]", "", text)


# --- Technical / skills ----------------------------------------------------


@dataclass
class SkillGroup:
    label: str | None
    items: list[str] = field(default_factory=list)


def parse_skill_groups(content: str) -> list[SkillGroup]:
    """Group bullet lines under the heading-like line above them.

    Items lose any inherited emphasis; lines holding only asterisks or
    punctuation are dropped.
    """
    groups: list[SkillGroup] = []
    current: SkillGroup | None = None
    for raw in strip_markup(content or "").splitlines():
        line = raw.strip()
        if _is_residue(line):
            continue
        m = BULLET_RE.match(line)
        if m:
            item = strip_inline(m.group(2)).replace("*", "").strip()
            if _is_residue(item):
                continue
            if current is None:
                current = SkillGroup(label=None)
                groups.append(current)
            current.items.append(item)
            continue
        label = re.sub(r"^#{1,6}\s*", "", line)
        label = strip_inline(label).replace("*", "").strip().rstrip(":").strip()
        if not label:
            continue
        current = SkillGroup(label=label)
        groups.append(current)
    return groups


def format_technical_section(content: str) -> str:
    parts = []
    for group in parse_skill_groups(content):
        if group.label:
            parts.append(f'<h3 class="preview-h3">{escape(group.label)}</h3>')
        if group.items:
            items = "".join(f'<li class="preview-li">{escape(i)}</li>' for i in group.items)
            parts.append(f'<ul class="preview-ul">{items}</ul>')
    return "".join(parts)


def format_skill_tags(content: str) -> str:
    """Render skill groups as category headings with pill tags."""
    parts = ['<div class="skills-grid">']
    for group in parse_skill_groups(content):
        tags = [t.strip() for item in group.items for t in re.split(r"[,;]", item) if t.strip()]
        if not tags:
            continue
        parts.append('<div class="skill-category">')
        if group.label:
            parts.append(f'<h4 class="skill-category-title">{escape(group.label)}</h4>')
        parts.append("".join(f'<span class="tag">{escape(t)}</span>' for t in tags))
        parts.append("</div>")
    parts.append("</div>")
    return "".join(parts)


# --- Experience blocks -----------------------------------------------------


@dataclass
class ExperienceSection:
    label: str
    items: list[str] = field(default_factory=list)


@dataclass
class ExperienceBlock:
    company: str = ""
    role: str = ""
    dates: str = ""
    sections: list[ExperienceSection] = field(default_factory=list)
    remainder: str = ""  # unanchored text after the header


def _normalize_date_end(end: str) -> str:
    return end if end[:1].isdigit() else end.capitalize()


def parse_experience_header(header: str) -> tuple[str, str, str]:
    """Split a role header into (company, role, dates).

    The date range is extracted first, wherever it appears, and
    normalized to ``YYYY-MM - YYYY-MM``; the rest is split into company and
    role on a bold company name or a dash separator.
    """
    text = re.sub(r"\*{3,}", "", header).strip()
    dates = ""
    m = DATE_RANGE_RE.search(text)
    if m:
        dates = f"{m.group(1)} - {_normalize_date_end(m.group(2))}"
        text = f"{text[: m.start()]} {text[m.end() :]}".strip()
    text = text.strip(" ,|–—-")

    m = re.match(r"^\*\*(.+?)\*\*\s*[-–—|,]?\s*(.*)$", text)
    if not m:
        m = re.match(r"^(.+?)\s+[-–—|]\s+(.+)$", text) or re.match(r"^(.+?)\s*[-–—]\s*(.+)$", text)
    if m:
        company, role = m.group(1), m.group(2)
    else:
        company, role = text, ""

    def clean(value: str) -> str:
        return value.replace("*", "").strip(" ,|–—-")

    return clean(company), clean(role), dates


def _split_items(chunk: str, label: str) -> list[str]:
    if label == "Technical Environment" and "•" not in chunk:
        pieces = chunk.split(",")
    else:
        pieces = chunk.split("•")
    items = []
    for piece in pieces:
        item = re.sub(r"^[-•*]\s*", "", piece.strip())
        item = re.sub(r"\*{3,}", "", item).strip()
        if not _is_residue(item):
            items.append(item)
    return items


def parse_experience_block(content: str) -> ExperienceBlock | None:
    """Parse one role's text into header fields and anchor buckets.

    Returns None when neither an anchor label nor a dated header is found.
    """
    text = strip_markup(content or "")
    text = re.sub(r"^\s*[-*]\s+", "• ", text, flags=re.MULTILINE)
    text = re.sub(r"\*\s+•", "•", text)
    flat = re.sub(r"\s+", " ", text).strip()
    if not flat:
        return None

    anchors = []
    for label, pattern in EXPERIENCE_ANCHORS:
        m = pattern.search(flat)
        if m:
            anchors.append((m.start(), m.end(), label))
    if not anchors:
        return _parse_unanchored(text)
    anchors.sort()

    company, role, dates = parse_experience_header(flat[: anchors[0][0]])
    block = ExperienceBlock(company=company, role=role, dates=dates)
    for i, (_start, end, label) in enumerate(anchors):
        stop = anchors[i + 1][0] if i + 1 < len(anchors) else len(flat)
        items = _split_items(flat[end:stop].strip(), label)
        if items:
            block.sections.append(ExperienceSection(label=label, items=items))
    return block


def _parse_unanchored(text: str) -> ExperienceBlock | None:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    for idx, line in enumerate(lines[:3]):
        if DATE_RANGE_RE.search(line):
            company, role, dates = parse_experience_header(" ".join(lines[: idx + 1]))
            remainder = "\n".join(lines[idx + 1 :]).replace("• ", "- ")
            return ExperienceBlock(company=company, role=role, dates=dates, remainder=remainder)
    return None


def render_experience_block(block: ExperienceBlock) -> str:
    parts = []
    if block.company:
        parts.append(f'<h3 class="preview-h3">{escape(block.company)}</h3>')
    if block.role:
        parts.append(f'<p class="preview-p">{escape(block.role)}</p>')
    if block.dates:
        parts.append(f'<div class="preview-date-line">{escape(block.dates)}</div>')
    for section in block.sections:
        items = "".join(f'<li class="preview-li">{inline_to_html(i)}</li>' for i in section.items)
        parts.append(f'<h3 class="preview-h3">{escape(section.label)}</h3>')
        parts.append(f'<ul class="preview-ul">{items}</ul>')
    if block.remainder:
        parts.append(format_generic_section(block.remainder))
    return "".join(parts)


def format_experience_section(content: str) -> str:
    block = parse_experience_block(content)
    rendered = render_experience_block(block) if block else ""
    if not rendered:
        logger.debug("Experience block not recognized, using generic formatter")
        return format_generic_section(content)
    return rendered


# --- Generic fallback ------------------------------------------------------


def format_generic_section(content: str, *, flat_bullets: bool = False) -> str:
    """Classify each line as heading, date line, list item or paragraph.

    With ``flat_bullets`` every line that is not a heading or date line is
    rendered as a list item, for sections whose generated text is a flat
    list without markers.
    """
    parts: list[str] = []
    open_list: str | None = None

    def close_list() -> None:
        nonlocal open_list
        if open_list:
            parts.append(f"</{open_list}>")
            open_list = None

    def add_item(tag: str, text: str) -> None:
        nonlocal open_list
        if open_list != tag:
            close_list()
            parts.append(f'<{tag} class="preview-{tag}">')
            open_list = tag
        parts.append(f'<li class="preview-li">{inline_to_html(text)}</li>')

    for raw in (content or "").splitlines():
        line = classify_line(raw)
        if line.kind == LineKind.BLANK:
            continue
        if line.kind in (LineKind.BULLET, LineKind.NUMBERED):
            if _is_residue(line.text):
                continue
            add_item("ol" if line.kind == LineKind.NUMBERED else "ul", line.text)
            continue
        if flat_bullets and line.kind == LineKind.PARAGRAPH:
            if not _is_residue(line.text):
                add_item("ul", line.text)
            continue

        close_list()
        if line.kind == LineKind.HEADING:
            tag = "h2" if line.level <= 2 else "h3"
            parts.append(f'<{tag} class="preview-{tag}">{inline_to_html(line.text)}</{tag}>')
        elif line.kind == LineKind.BOLD_HEADING:
            parts.append(f'<h3 class="preview-h3">{escape(line.text)}</h3>')
        elif line.kind == LineKind.DATE:
            parts.append(f'<div class="preview-date-line">{escape(line.text)}</div>')
        elif line.kind == LineKind.QUOTE:
            parts.append(f'<blockquote class="preview-quote">{inline_to_html(line.text)}</blockquote>')
        else:
            parts.append(f'<p class="preview-p">{inline_to_html(line.text)}</p>')
    close_list()
    return "".join(parts)

"""Line-oriented parser from semi-structured plain text to block nodes.

Generated section text is free text from a completion model, so parsing is
heuristic: each line is classified on its own (heading, bold heading, list
item, quote, date line, paragraph) and a small state machine groups
contiguous list items into lists. Parsing never fails; anything that
matches no rule becomes a paragraph.
"""

from __future__ import annotations

import re
import warnings
from dataclasses import dataclass, field
from enum import Enum

from competence_composer.errors import FormatDegraded
from competence_composer.formatting.inline import (
    Span,
    parse_inline,
    spans_to_html,
    spans_to_markdown,
    spans_to_text,
)

BULLET_CHARS = "-•*●◦▪"

HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
# **Text** alone on its line; see classify_line for the extra guards.
BOLD_HEADING_RE = re.compile(r"^\*\*(.+?)\*\*\s*$")
BULLET_RE = re.compile(rf"^([{re.escape(BULLET_CHARS)}])\s+(.*)$")
NUMBERED_RE = re.compile(r"^(\d+\.)\s+(.*)$")
QUOTE_RE = re.compile(r"^>\s*(.*)$")
DATE_LINE_RE = re.compile(r"^\d{4}-\d{2}\s*-\s*\d{4}-\d{2}$")


class LineKind(str, Enum):
    BLANK = "blank"
    HEADING = "heading"
    BOLD_HEADING = "bold_heading"
    BULLET = "bullet"
    NUMBERED = "numbered"
    QUOTE = "quote"
    DATE = "date"
    PARAGRAPH = "paragraph"


@dataclass(frozen=True)
class Line:
    kind: LineKind
    text: str  # payload with the block marker removed
    marker: str = ""  # "#", "-", "3.", ... as written
    level: int = 0  # heading level


def classify_line(raw: str) -> Line:
    """Classify one line of plain text."""
    line = raw.strip()
    if not line:
        return Line(LineKind.BLANK, "")

    m = HEADING_RE.match(line)
    if m:
        return Line(LineKind.HEADING, m.group(2).strip(), m.group(1), len(m.group(1)))

    # Bold used as an ad hoc heading. Known heuristic: a legitimately bold
    # sentence on its own line is also read as a heading.
    m = BOLD_HEADING_RE.match(line)
    if m and m.group(1).strip() and "**" not in m.group(1) and "-" not in line and "•" not in line:
        return Line(LineKind.BOLD_HEADING, m.group(1).strip(), "**", 3)

    m = BULLET_RE.match(line)
    if m:
        return Line(LineKind.BULLET, m.group(2).strip(), m.group(1))

    m = NUMBERED_RE.match(line)
    if m:
        return Line(LineKind.NUMBERED, m.group(2).strip(), m.group(1))

    m = QUOTE_RE.match(line)
    if m:
        return Line(LineKind.QUOTE, m.group(1).strip(), ">")

    if DATE_LINE_RE.match(line):
        return Line(LineKind.DATE, line)

    return Line(LineKind.PARAGRAPH, line)


# --- Block nodes -----------------------------------------------------------


@dataclass(frozen=True)
class Heading:
    level: int
    spans: list[Span]


@dataclass(frozen=True)
class ListItem:
    spans: list[Span]
    marker: str = "-"


@dataclass(frozen=True)
class ListBlock:
    ordered: bool
    items: list[ListItem]


@dataclass(frozen=True)
class Quote:
    spans: list[Span]


@dataclass(frozen=True)
class Paragraph:
    spans: list[Span]


Block = Heading | ListBlock | Quote | Paragraph


@dataclass
class ParsedContent:
    """Result of parsing: the blocks plus whether the paragraph rule was used."""

    blocks: list[Block] = field(default_factory=list)
    degraded: bool = False


def parse_blocks(text: str, *, warn: bool = False) -> ParsedContent:
    """Parse semi-structured text into block nodes.

    Blank lines only separate; they never produce nodes and do not break a
    list run. A run of bullet items (or of numbered items) becomes one
    list; switching marker style starts a new list. Lines classified as
    date lines are ordinary paragraphs here.
    """
    result = ParsedContent()
    current: ListBlock | None = None

    for raw in (text or "").splitlines():
        line = classify_line(raw)
        if line.kind == LineKind.BLANK:
            continue

        if line.kind in (LineKind.BULLET, LineKind.NUMBERED):
            ordered = line.kind == LineKind.NUMBERED
            if current is None or current.ordered != ordered:
                current = ListBlock(ordered=ordered, items=[])
                result.blocks.append(current)
            current.items.append(ListItem(parse_inline(line.text), line.marker))
            continue

        current = None
        if line.kind == LineKind.HEADING:
            result.blocks.append(Heading(line.level, parse_inline(line.text)))
        elif line.kind == LineKind.BOLD_HEADING:
            result.blocks.append(Heading(3, [Span(line.text, bold=True)]))
        elif line.kind == LineKind.QUOTE:
            result.blocks.append(Quote(parse_inline(line.text)))
        else:
            result.blocks.append(Paragraph(parse_inline(line.text)))
            result.degraded = True

    if result.degraded and warn:
        warnings.warn(FormatDegraded("Some lines were parsed as plain paragraphs"), stacklevel=2)
    return result


# --- Renderers -------------------------------------------------------------


def blocks_to_plain(blocks: list[Block], *, keep_markers: bool = False) -> str:
    """Extract plain text from blocks.

    With ``keep_markers`` the inline emphasis and heading markers are
    re-emitted in normalized form, which yields editable markdown-like text.
    """
    render = spans_to_markdown if keep_markers else spans_to_text
    lines: list[str] = []
    for block in blocks:
        if isinstance(block, Heading):
            body = render(block.spans)
            lines.append(f"{'#' * block.level} {body}" if keep_markers else body)
        elif isinstance(block, ListBlock):
            for item in block.items:
                lines.append(f"{item.marker} {render(item.spans)}")
        elif isinstance(block, Quote):
            lines.append(f"> {render(block.spans)}")
        else:
            lines.append(render(block.spans))
    return "\n".join(lines)


def blocks_to_html(blocks: list[Block]) -> str:
    """Render blocks as the rich HTML an editor surface would hold."""
    parts: list[str] = []
    for block in blocks:
        if isinstance(block, Heading):
            parts.append(f"<h{block.level}>{spans_to_html(block.spans)}</h{block.level}>")
        elif isinstance(block, ListBlock):
            tag = "ol" if block.ordered else "ul"
            items = "".join(f"<li>{spans_to_html(item.spans)}</li>" for item in block.items)
            parts.append(f"<{tag}>{items}</{tag}>")
        elif isinstance(block, Quote):
            parts.append(f"<blockquote>{spans_to_html(block.spans)}</blockquote>")
        else:
            parts.append(f"<p>{spans_to_html(block.spans)}</p>")
    return "".join(parts)


def markdown_to_html(text: str) -> str:
    return blocks_to_html(parse_blocks(text).blocks)

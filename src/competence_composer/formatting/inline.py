"""Inline emphasis tokenizer for bold, italic, strikethrough and code spans."""

from __future__ import annotations

import re
from dataclasses import dataclass

from markupsafe import escape

# Alternation order matters: longer star runs win over shorter ones.
_MARKER_RE = re.compile(r"\*\*\*|\*\*|~~|\*|_|`")

_STYLE_BY_MARKER = {
    "***": {"bold": True, "italic": True},
    "**": {"bold": True},
    "*": {"italic": True},
    "_": {"italic": True},
    "~~": {"strikethrough": True},
    "`": {"code": True},
}


@dataclass(frozen=True)
class Span:
    """A run of text sharing one inline style."""

    text: str
    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    code: bool = False

    @property
    def is_plain(self) -> bool:
        return not (self.bold or self.italic or self.strikethrough or self.code)


def _is_word_char(ch: str) -> bool:
    return ch.isalnum()


def _marker_tokens(text: str) -> list[tuple[int, str]]:
    """Return (position, marker) pairs, skipping underscores inside words."""
    tokens = []
    for m in _MARKER_RE.finditer(text):
        marker = m.group()
        if marker == "_":
            pos = m.start()
            before = text[pos - 1] if pos > 0 else ""
            after = text[pos + 1] if pos + 1 < len(text) else ""
            # snake_case identifiers keep their underscores
            if before and after and _is_word_char(before) and _is_word_char(after):
                continue
        tokens.append((m.start(), marker))
    return tokens


def parse_inline(text: str) -> list[Span]:
    """Split ``text`` into styled spans.

    Scans left to right for the nearest marker and pairs it with the next
    marker of the same kind. Markers between an opener and its closer are
    kept as literal text (no nesting). An opener without a closer is
    literal text. Runs in a single pass over the marker positions.
    """
    if not text:
        return []

    tokens = _marker_tokens(text)
    if not tokens:
        return [Span(text)]

    # next_same[i] is the index of the next token with the same marker.
    next_same: list[int | None] = [None] * len(tokens)
    last_seen: dict[str, int] = {}
    for i in range(len(tokens) - 1, -1, -1):
        marker = tokens[i][1]
        next_same[i] = last_seen.get(marker)
        last_seen[marker] = i

    spans: list[Span] = []
    plain_start = 0
    i = 0
    while i < len(tokens):
        pos, marker = tokens[i]
        close = next_same[i]
        if pos < plain_start or close is None:
            i += 1
            continue
        close_pos = tokens[close][0]
        inner = text[pos + len(marker) : close_pos]
        if not inner.strip():
            # "****" or "` `": nothing to style, keep as literal
            i += 1
            continue
        if pos > plain_start:
            spans.append(Span(text[plain_start:pos]))
        spans.append(Span(inner, **_STYLE_BY_MARKER[marker]))
        plain_start = close_pos + len(marker)
        i = close + 1

    if plain_start < len(text):
        spans.append(Span(text[plain_start:]))
    return _merge_plain(spans)


def _merge_plain(spans: list[Span]) -> list[Span]:
    merged: list[Span] = []
    for span in spans:
        if merged and span.is_plain and merged[-1].is_plain:
            merged[-1] = Span(merged[-1].text + span.text)
        else:
            merged.append(span)
    return merged


def spans_to_text(spans: list[Span]) -> str:
    """Concatenate span text, dropping all formatting."""
    return "".join(s.text for s in spans)


def spans_to_markdown(spans: list[Span]) -> str:
    """Re-emit spans with normalized markers (``***``, ``**``, ``*``, ``~~``, backtick)."""
    parts = []
    for s in spans:
        if s.code:
            parts.append(f"`{s.text}`")
        elif s.bold and s.italic:
            parts.append(f"***{s.text}***")
        elif s.bold:
            parts.append(f"**{s.text}**")
        elif s.italic:
            parts.append(f"*{s.text}*")
        elif s.strikethrough:
            parts.append(f"~~{s.text}~~")
        else:
            parts.append(s.text)
    return "".join(parts)


def spans_to_html(spans: list[Span]) -> str:
    """Render spans as escaped HTML with strong/em/s/code tags."""
    parts = []
    for s in spans:
        chunk = str(escape(s.text))
        if s.code:
            chunk = f"<code>{chunk}</code>"
        if s.bold:
            chunk = f"<strong>{chunk}</strong>"
        if s.italic:
            chunk = f"<em>{chunk}</em>"
        if s.strikethrough:
            chunk = f"<s>{chunk}</s>"
        parts.append(chunk)
    return "".join(parts)


def inline_to_html(text: str) -> str:
    return spans_to_html(parse_inline(text))


def strip_inline(text: str) -> str:
    return spans_to_text(parse_inline(text))

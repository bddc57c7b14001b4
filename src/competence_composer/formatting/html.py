"""Reductions from rich HTML to plain text."""

from __future__ import annotations

import html
import re

_BR_RE = re.compile(r"<br\s*/?>\s*", re.IGNORECASE)
_LI_OPEN_RE = re.compile(r"<li(\s[^>]*)?>", re.IGNORECASE)
_LI_CLOSE_RE = re.compile(r"</li\s*>", re.IGNORECASE)
_HEADING_RE = re.compile(r"<h([1-6])(\s[^>]*)?>(.*?)</h\1\s*>", re.IGNORECASE | re.DOTALL)
_P_OPEN_RE = re.compile(r"<p(\s[^>]*)?>", re.IGNORECASE)
_P_CLOSE_RE = re.compile(r"</p\s*>", re.IGNORECASE)
_EMPHASIS_RE = re.compile(r"</?(strong|b|em|i|s|u|code)(\s[^>]*)?>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_CODE_FENCE_RE = re.compile(r"```.*?```", re.DOTALL)
_HTML_TAG_PRESENT_RE = re.compile(r"</?[a-z][\s\S]*>", re.IGNORECASE)


def convert_html_to_plain(markup: str) -> str:
    """Degrade editor HTML to markdown-like plain text.

    ``<br>`` becomes a newline, list items become ``- `` lines, headings
    become ``## `` lines, paragraphs are separated by a blank line, inline
    emphasis and all other tags are dropped, and runs of three or more
    newlines collapse to two.
    """
    if not markup:
        return ""
    text = _BR_RE.sub("\n", markup)
    text = _LI_OPEN_RE.sub("- ", text)
    text = _LI_CLOSE_RE.sub("\n", text)
    text = _HEADING_RE.sub(lambda m: f"\n\n## {m.group(3).strip()}\n\n", text)
    text = _P_OPEN_RE.sub("", text)
    text = _P_CLOSE_RE.sub("\n\n", text)
    text = _EMPHASIS_RE.sub("", text)
    text = _TAG_RE.sub("", text)
    text = html.unescape(text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def normalized_html_text(markup: str | None) -> str:
    """Visible text of ``markup`` with tags removed and whitespace collapsed."""
    if not markup:
        return ""
    text = _BR_RE.sub("\n", markup)
    text = _TAG_RE.sub("", text)
    text = html.unescape(text)
    return re.sub(r"\s+", " ", text).strip()


def is_html_empty(markup: str | None) -> bool:
    """True for markup that renders as nothing, e.g. ``<p><br></p>``."""
    return not normalized_html_text(markup)


def has_html_tags(text: str | None) -> bool:
    return bool(text and _HTML_TAG_PRESENT_RE.search(text))


def strip_preview_artifacts(markup: str) -> str:
    """Remove stray markdown emphasis and code-fence residue from HTML."""
    text = re.sub(r"\*{2,}", "", markup)
    text = _CODE_FENCE_RE.sub("", text)
    text = re.sub(r"`{1,3}", "", text)
    return text.strip()


def strip_markup(text: str) -> str:
    """Remove HTML tags, fenced code blocks and backticks before heuristic parsing."""
    text = _TAG_RE.sub(" ", text)
    text = _CODE_FENCE_RE.sub(" ", text)
    return re.sub(r"`{1,3}", "", text)

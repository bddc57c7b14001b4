"""Clean-up of pasted or exported text before it is seeded into segments."""

from __future__ import annotations

import re


def clean_text(text: str) -> str:
    """Clean copy/paste artifacts from document text.

    Handles: unicode artifacts, inconsistent bullet glyphs, runs of spaces,
    trailing whitespace and excessive blank lines.
    """
    # 1. Remove unicode artifacts (BOM, zero-width spaces, soft hyphens)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = text.lstrip("\ufeff")
    text = re.sub(r"[\u200b\u200c\u200d\u00ad\u2060\ufeff]", "", text)

    # 2. Normalize bullet points (●, ◦, ◆, ■, ▪, ★, ○ → -)
    text = re.sub(r"^(\s*)[●◦◆■▪★○]\s*", r"\1- ", text, flags=re.MULTILINE)
    # Asterisk bullets followed by excessive spaces
    text = re.sub(r"^(\s*)\*\s{2,}", r"\1- ", text, flags=re.MULTILINE)

    # 3. Collapse runs of spaces/tabs inside lines, drop trailing whitespace
    lines = []
    for line in text.split("\n"):
        stripped = line.lstrip()
        indent = line[: len(line) - len(stripped)].replace("\t", "    ")
        stripped = re.sub(r"[ \t]{2,}", " ", stripped).rstrip()
        lines.append(f"{indent}{stripped}" if stripped else "")
    text = "\n".join(lines)

    # 4. Remove excessive blank lines (3+ → 2)
    text = re.sub(r"\n{3,}", "\n\n", text)

    return text.strip()


def as_lines(value: str | list[str]) -> list[str]:
    """Split a free-text or list field into non-empty item strings."""
    if isinstance(value, list):
        items = value
    else:
        items = re.split(r"\n|•|;", value or "")
    cleaned = []
    for item in items:
        item = re.sub(r"^\s*[-*•]\s*", "", str(item)).strip()
        if item:
            cleaned.append(item)
    return cleaned

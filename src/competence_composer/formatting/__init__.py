"""Content formatter: plain text, block nodes and HTML."""

from competence_composer.formatting.blocks import (
    ParsedContent,
    blocks_to_html,
    blocks_to_plain,
    classify_line,
    markdown_to_html,
    parse_blocks,
)
from competence_composer.formatting.html import (
    convert_html_to_plain,
    is_html_empty,
    strip_preview_artifacts,
)
from competence_composer.formatting.inline import Span, parse_inline
from competence_composer.formatting.sections import (
    SectionKind,
    classify_section,
    format_experience_section,
    format_generic_section,
    format_section,
    format_skill_tags,
    format_technical_section,
)
from competence_composer.formatting.text import clean_text

__all__ = [
    "ParsedContent",
    "SectionKind",
    "Span",
    "blocks_to_html",
    "blocks_to_plain",
    "classify_line",
    "classify_section",
    "clean_text",
    "convert_html_to_plain",
    "format_experience_section",
    "format_generic_section",
    "format_section",
    "format_skill_tags",
    "format_technical_section",
    "is_html_empty",
    "markdown_to_html",
    "parse_blocks",
    "parse_inline",
    "strip_preview_artifacts",
]

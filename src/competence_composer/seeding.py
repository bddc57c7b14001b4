"""Initial segment layouts for competence files and knowledge files."""

from __future__ import annotations

import logging
import re

from competence_composer.formatting.text import as_lines, clean_text
from competence_composer.models.candidate import CandidateProfile, ExperienceEntry, SeedContext
from competence_composer.models.segment import Segment

logger = logging.getLogger(__name__)

# (id, English title, type)
COMPETENCE_SECTIONS = [
    ("header", "HEADER", "HEADER"),
    ("summary", "EXECUTIVE SUMMARY", "PROFESSIONAL SUMMARY"),
    ("core-competencies", "CORE COMPETENCIES", "AREAS OF EXPERTISE"),
    ("education", "ACADEMIC QUALIFICATIONS", "EDUCATION"),
    ("certifications", "PROFESSIONAL CERTIFICATIONS", "CERTIFICATIONS"),
    ("experiences-summary", "PROFESSIONAL EXPERIENCE SUMMARY", "PROFESSIONAL EXPERIENCES SUMMARY"),
    ("technical", "TECHNICAL EXPERTISE", "TECHNICAL SKILLS"),
    ("skills", "FUNCTIONAL SKILLS", "FUNCTIONAL SKILLS"),
    ("languages", "LANGUAGES & SKILLS", "LANGUAGES"),
]

TITLE_TRANSLATIONS: dict[str, dict[str, str]] = {
    "fr": {
        "HEADER": "EN-TÊTE",
        "EXECUTIVE SUMMARY": "RÉSUMÉ EXÉCUTIF",
        "CORE COMPETENCIES": "COMPÉTENCES CLÉS",
        "ACADEMIC QUALIFICATIONS": "QUALIFICATIONS ACADÉMIQUES",
        "PROFESSIONAL CERTIFICATIONS": "CERTIFICATIONS PROFESSIONNELLES",
        "PROFESSIONAL EXPERIENCE SUMMARY": "RÉSUMÉ DE L'EXPÉRIENCE PROFESSIONNELLE",
        "TECHNICAL EXPERTISE": "EXPERTISE TECHNIQUE",
        "FUNCTIONAL SKILLS": "COMPÉTENCES FONCTIONNELLES",
        "LANGUAGES & SKILLS": "LANGUES ET COMPÉTENCES",
        "PROFESSIONAL EXPERIENCE": "EXPÉRIENCE PROFESSIONNELLE",
    },
    "de": {
        "HEADER": "KOPFZEILE",
        "EXECUTIVE SUMMARY": "ZUSAMMENFASSUNG",
        "CORE COMPETENCIES": "KERNKOMPETENZEN",
        "ACADEMIC QUALIFICATIONS": "AKADEMISCHE QUALIFIKATIONEN",
        "PROFESSIONAL CERTIFICATIONS": "BERUFLICHE ZERTIFIZIERUNGEN",
        "PROFESSIONAL EXPERIENCE SUMMARY": "BERUFSERFAHRUNG ÜBERSICHT",
        "TECHNICAL EXPERTISE": "TECHNISCHE EXPERTISE",
        "FUNCTIONAL SKILLS": "FUNKTIONALE FÄHIGKEITEN",
        "LANGUAGES & SKILLS": "SPRACHEN UND FÄHIGKEITEN",
        "PROFESSIONAL EXPERIENCE": "BERUFSERFAHRUNG",
    },
    "nl": {
        "HEADER": "HEADER",
        "EXECUTIVE SUMMARY": "UITVOERENDE SAMENVATTING",
        "CORE COMPETENCIES": "KERNCOMPETENTIES",
        "ACADEMIC QUALIFICATIONS": "ACADEMISCHE KWALIFICATIES",
        "PROFESSIONAL CERTIFICATIONS": "PROFESSIONELE CERTIFICERINGEN",
        "PROFESSIONAL EXPERIENCE SUMMARY": "PROFESSIONELE ERVARING OVERZICHT",
        "TECHNICAL EXPERTISE": "TECHNISCHE EXPERTISE",
        "FUNCTIONAL SKILLS": "FUNCTIONELE VAARDIGHEDEN",
        "LANGUAGES & SKILLS": "TALEN EN VAARDIGHEDEN",
        "PROFESSIONAL EXPERIENCE": "PROFESSIONELE ERVARING",
    },
}

# Knowledge-file section catalogue: type -> (id, title)
KNOWLEDGE_SECTIONS = {
    "K_HEADER": ("k-header", "Header (ID Block)"),
    "K_CLIENT_CONTEXT": ("k-client-context", "Client Context"),
    "K_PROBLEM_TRIGGER": ("k-problem", "Problem / Trigger"),
    "K_SCOPE_OBJECTIVES": ("k-scope", "Scope & Objectives"),
    "K_APPROACH_METHODS": ("k-approach", "Approach & Methods"),
    "K_DELIVERABLES": ("k-deliverables", "Deliverables"),
    "K_RESULTS": ("k-results", "Results (hard numbers first)"),
    "K_RISKS_MITIGATIONS": ("k-risks", "Risks & Mitigations"),
    "K_TEAM_EFFORT": ("k-team", "Team & Effort"),
    "K_TIMELINE_BUDGET": ("k-timeline", "Timeline & Budget band"),
    "K_TESTIMONIAL": ("k-testimonial", "Client testimonial"),
    "K_CONFIDENTIALITY_PERMISSIONS": ("k-confidentiality", "Confidentiality & Permissions"),
}

KNOWLEDGE_TEMPLATES: dict[str, list[str]] = {
    "public-case": [
        "K_HEADER",
        "K_CLIENT_CONTEXT",
        "K_PROBLEM_TRIGGER",
        "K_APPROACH_METHODS",
        "K_DELIVERABLES",
        "K_RESULTS",
        "K_TESTIMONIAL",
        "K_CONFIDENTIALITY_PERMISSIONS",
    ],
    "rfp-annex": [
        "K_HEADER",
        "K_CLIENT_CONTEXT",
        "K_PROBLEM_TRIGGER",
        "K_SCOPE_OBJECTIVES",
        "K_APPROACH_METHODS",
        "K_RESULTS",
        "K_CONFIDENTIALITY_PERMISSIONS",
    ],
    "proposal-appendix": [
        "K_HEADER",
        "K_CLIENT_CONTEXT",
        "K_PROBLEM_TRIGGER",
        "K_SCOPE_OBJECTIVES",
        "K_APPROACH_METHODS",
        "K_DELIVERABLES",
        "K_RESULTS",
        "K_RISKS_MITIGATIONS",
        "K_TEAM_EFFORT",
        "K_CONFIDENTIALITY_PERMISSIONS",
    ],
    "internal-reference": list(KNOWLEDGE_SECTIONS),
}

# Source headings recognized in a knowledge document, longest match first.
KNOWLEDGE_HEADINGS = [
    "PROBLEM / OBJECTIVES",
    "APPROACH & METHODS",
    "RISKS & MITIGATIONS",
    "REFERENCE CONTACT",
    "CONFIDENTIALITY",
    "DELIVERABLES",
    "OBJECTIVES",
    "CONTEXT",
    "PROBLEM",
    "RESULTS",
    "CLIENT",
    "SCOPE",
    "TEAM",
]

# Section type -> source headings tried in order
KNOWLEDGE_SOURCES: dict[str, tuple[str, ...]] = {
    "K_CLIENT_CONTEXT": ("CONTEXT", "CLIENT"),
    "K_PROBLEM_TRIGGER": ("PROBLEM / OBJECTIVES", "PROBLEM"),
    "K_SCOPE_OBJECTIVES": ("SCOPE", "PROBLEM / OBJECTIVES"),
    "K_APPROACH_METHODS": ("APPROACH & METHODS",),
    "K_DELIVERABLES": ("DELIVERABLES",),
    "K_RESULTS": ("RESULTS",),
    "K_RISKS_MITIGATIONS": ("RISKS & MITIGATIONS",),
    "K_TEAM_EFFORT": ("TEAM",),
    "K_TIMELINE_BUDGET": ("SCOPE",),
    "K_TESTIMONIAL": ("REFERENCE CONTACT",),
    "K_CONFIDENTIALITY_PERMISSIONS": ("CONFIDENTIALITY",),
}


def localized_title(title: str, language: str | None) -> str:
    if not language or language == "en":
        return title
    return TITLE_TRANSLATIONS.get(language, {}).get(title, title)


def experience_title(index: int, language: str | None) -> str:
    return f"{localized_title('PROFESSIONAL EXPERIENCE', language)} {index + 1}"


# --- Dates -----------------------------------------------------------------


def normalize_date(value: str | None) -> str:
    """Normalize ``2020-1``, ``2020-01-15`` or ``01/2020`` to ``2020-01``."""
    value = (value or "").strip()
    if not value:
        return ""
    if value.lower() in ("present", "current", "now"):
        return "Present"
    m = re.match(r"^(\d{4})-(\d{1,2})\b", value)
    if m:
        return f"{m.group(1)}-{int(m.group(2)):02d}"
    m = re.match(r"^(\d{1,2})/(\d{4})$", value)
    if m:
        return f"{m.group(2)}-{int(m.group(1)):02d}"
    return value


def format_date_range(start: str | None, end: str | None) -> str:
    """``YYYY-MM - YYYY-MM``, with ``Present`` for an open end."""
    begin = normalize_date(start)
    if not begin:
        return ""
    return f"{begin} - {normalize_date(end) or 'Present'}"


# --- Content pre-fill ------------------------------------------------------


def _bullets(items: list[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def header_content(candidate: CandidateProfile) -> str:
    lines = [candidate.full_name, candidate.current_title]
    if candidate.years_of_experience:
        lines.append(f"{candidate.years_of_experience:g} years of experience")
    return "\n".join(line for line in lines if line)


def experience_content(entry: ExperienceEntry) -> str:
    """Plain text for one role, in the layout the experience formatter reads."""
    if entry.company and entry.title:
        head = f"**{entry.company}** - {entry.title}"
    else:
        head = f"**{entry.company}**" if entry.company else entry.title
    lines = [head] if head else []
    dates = format_date_range(entry.start_date, entry.end_date)
    if dates:
        lines.append(dates)
    lines.append("")
    lines.append("Key Responsibilities:")
    lines.extend(f"• {item}" for item in as_lines(entry.responsibilities))
    return "\n".join(lines).strip()


def experiences_summary_content(entries: list[ExperienceEntry]) -> str:
    lines = []
    for entry in entries:
        label = " - ".join(part for part in (entry.company, entry.title) if part)
        dates = format_date_range(entry.start_date, entry.end_date)
        if label and dates:
            lines.append(f"- {label} ({dates})")
        elif label:
            lines.append(f"- {label}")
    return "\n".join(lines)


def _prefill(segment_type: str, candidate: CandidateProfile) -> str:
    if segment_type == "HEADER":
        return header_content(candidate)
    if segment_type == "PROFESSIONAL SUMMARY":
        return clean_text(candidate.summary)
    if segment_type == "EDUCATION":
        return _bullets(candidate.education)
    if segment_type == "CERTIFICATIONS":
        return _bullets(candidate.certifications)
    if segment_type == "PROFESSIONAL EXPERIENCES SUMMARY":
        return experiences_summary_content(candidate.experience)
    if segment_type == "TECHNICAL SKILLS":
        return _bullets(candidate.skills)
    if segment_type == "LANGUAGES":
        return _bullets(candidate.languages)
    return ""


def build_competence_segments(context: SeedContext) -> list[Segment]:
    """Static sections followed by one section per prior role."""
    candidate = context.candidate or CandidateProfile()
    language = context.language
    segments = [
        Segment(
            id=seg_id,
            title=localized_title(title, language),
            type=seg_type,
            order=order,
            content=_prefill(seg_type, candidate),
        )
        for order, (seg_id, title, seg_type) in enumerate(COMPETENCE_SECTIONS)
    ]
    base = len(COMPETENCE_SECTIONS)
    for index, entry in enumerate(candidate.experience):
        segments.append(
            Segment(
                id=f"experience-{index}",
                title=experience_title(index, language),
                type=f"PROFESSIONAL EXPERIENCE {index + 1}",
                order=base + index,
                content=experience_content(entry),
                experience=entry,
            )
        )
    if not candidate.experience:
        logger.warning("No work history found, skipping experience sections")
    return segments


# --- Knowledge files -------------------------------------------------------


def _match_heading(line: str) -> str | None:
    upper = line.strip().upper()
    for heading in KNOWLEDGE_HEADINGS:
        if upper == heading or any(upper.startswith(heading + sep) for sep in (":", " (")):
            return heading
    return None


def split_knowledge_text(text: str) -> dict[str, str]:
    """Bucket a knowledge document's lines under its known source headings."""
    buckets: dict[str, list[str]] = {h: [] for h in KNOWLEDGE_HEADINGS}
    current = None
    for line in (text or "").replace("\r", "\n").split("\n"):
        heading = _match_heading(line)
        if heading:
            current = heading
            continue
        if current:
            buckets[current].append(line)
    return {h: "\n".join(lines).strip() for h, lines in buckets.items()}


def extract_knowledge_excerpt(text: str, segment_type: str) -> str:
    """Text of ``text`` that pre-fills a knowledge section, or ""."""
    if not text:
        return ""
    slices = split_knowledge_text(text)
    key = segment_type.upper()
    if key == "K_HEADER":
        return "\n\n".join(s for s in (slices["CLIENT"], slices["REFERENCE CONTACT"]) if s).strip()
    for heading in KNOWLEDGE_SOURCES.get(key, ()):
        if slices[heading]:
            return slices[heading]
    return ""


def build_knowledge_segments(context: SeedContext) -> list[Segment]:
    knowledge = context.knowledge
    template = knowledge.template if knowledge else "internal-reference"
    if template not in KNOWLEDGE_TEMPLATES:
        logger.warning("Unknown knowledge template %r, using internal-reference", template)
        template = "internal-reference"
    text = knowledge.text if knowledge else ""
    segments = []
    for order, seg_type in enumerate(KNOWLEDGE_TEMPLATES[template]):
        seg_id, title = KNOWLEDGE_SECTIONS[seg_type]
        segments.append(
            Segment(
                id=seg_id,
                title=title,
                type=seg_type,
                order=order,
                content=extract_knowledge_excerpt(text, seg_type),
            )
        )
    return segments


def build_segments(context: SeedContext) -> list[Segment]:
    """Initial segments for ``context``, all ``idle``."""
    if context.knowledge is not None and context.candidate is None:
        return build_knowledge_segments(context)
    return build_competence_segments(context)

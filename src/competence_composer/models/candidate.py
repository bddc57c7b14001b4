"""Pydantic models for the structured input a document is seeded from."""

from __future__ import annotations

from pydantic import field_validator

from competence_composer.formatting.sections import parse_experience_header
from competence_composer.models.base import WireModel


class ExperienceEntry(WireModel):
    company: str = ""
    title: str = ""
    start_date: str = ""
    end_date: str = ""
    responsibilities: str | list[str] = ""

    @classmethod
    def from_text(cls, text: str) -> ExperienceEntry:
        """Parse a one-line entry such as ``Acme Corp - Engineer, 2020-01 to 2022-06``."""
        company, role, dates = parse_experience_header(text)
        start, _, end = dates.partition(" - ")
        return cls(company=company, title=role, start_date=start, end_date=end)


class CandidateProfile(WireModel):
    id: str = ""
    full_name: str = ""
    current_title: str = ""
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    years_of_experience: int | float | None = None
    summary: str = ""
    skills: list[str] = []
    certifications: list[str] = []
    experience: list[ExperienceEntry] = []
    education: list[str] = []
    languages: list[str] = []

    @field_validator("experience", mode="before")
    @classmethod
    def _parse_text_entries(cls, value):
        if isinstance(value, list):
            return [ExperienceEntry.from_text(v) if isinstance(v, str) else v for v in value]
        return value


class JobDescription(WireModel):
    text: str = ""
    requirements: list[str] = []
    skills: list[str] = []
    responsibilities: str = ""
    title: str | None = None
    company: str | None = None
    manager_name: str | None = None
    manager_email: str | None = None
    manager_phone: str | None = None


class KnowledgeContext(WireModel):
    text: str = ""
    template: str = "internal-reference"


class SeedContext(WireModel):
    """Everything needed to seed a document's initial segments."""

    candidate: CandidateProfile | None = None
    job: JobDescription | None = None
    knowledge: KnowledgeContext | None = None
    language: str = "en"


class ManagerContact(WireModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.name or self.email or self.phone)


class HeaderInfo(WireModel):
    """Metadata shown in the preview header block."""

    full_name: str = ""
    current_title: str = ""
    years_of_experience: int | float | None = None
    manager: ManagerContact | None = None

    @classmethod
    def from_context(cls, context: SeedContext) -> HeaderInfo:
        candidate = context.candidate or CandidateProfile()
        manager = None
        if context.job is not None:
            manager = ManagerContact(
                name=context.job.manager_name,
                email=context.job.manager_email,
                phone=context.job.manager_phone,
            )
            if manager.is_empty:
                manager = None
        return cls(
            full_name=candidate.full_name,
            current_title=candidate.current_title,
            years_of_experience=candidate.years_of_experience,
            manager=manager,
        )

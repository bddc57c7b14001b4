"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from competence_composer.clients.queue_client import QueueClient
from competence_composer.history.store import GenerationHistory
from competence_composer.models.candidate import (
    CandidateProfile,
    ExperienceEntry,
    JobDescription,
    KnowledgeContext,
    SeedContext,
)
from competence_composer.models.queue import GenerationResult, JobStatus
from competence_composer.models.segment import Segment
from competence_composer.store import SegmentStore


@pytest.fixture
def sample_candidate() -> CandidateProfile:
    return CandidateProfile(
        id="cand-42",
        full_name="Jane Doe",
        current_title="Senior Backend Engineer",
        email="jane@example.com",
        years_of_experience=9,
        summary="Backend engineer focused on distributed systems.",
        skills=["Go", "PostgreSQL", "Kubernetes"],
        certifications=["CKA - Certified Kubernetes Administrator"],
        education=["MSc Computer Science, ETH Zurich"],
        languages=["English (native)", "French (C1)"],
        experience=[
            ExperienceEntry(
                company="Acme Corp",
                title="Engineer",
                start_date="2020-01",
                end_date="2022-06",
                responsibilities=["Built the billing API", "Led the Postgres migration"],
            ),
            ExperienceEntry(
                company="Globex",
                title="Tech Lead",
                start_date="2022-07",
                end_date="",
                responsibilities="Owns the platform team\nRuns incident reviews",
            ),
        ],
    )


@pytest.fixture
def sample_job() -> JobDescription:
    return JobDescription(
        text="We are hiring a platform engineer.",
        title="Platform Engineer",
        company="Initech",
        skills=["Go", "Kubernetes"],
        manager_name="Bill Lumbergh",
        manager_email="bill@initech.example",
    )


@pytest.fixture
def sample_context(sample_candidate, sample_job) -> SeedContext:
    return SeedContext(candidate=sample_candidate, job=sample_job, language="en")


@pytest.fixture
def knowledge_context() -> SeedContext:
    text = """CLIENT
Initech, a payments company.

CONTEXT
Legacy batch settlement was failing audits.

PROBLEM / OBJECTIVES
Cut settlement time below one hour.

RESULTS
Settlement time went from 9h to 40min.

CONFIDENTIALITY
Client name may be disclosed.
"""
    return SeedContext(knowledge=KnowledgeContext(text=text, template="public-case"))


@pytest.fixture
def store() -> SegmentStore:
    return SegmentStore(
        [
            Segment(id="a", type="HEADER", title="HEADER", order=0, content="Jane Doe"),
            Segment(id="b", type="PROFESSIONAL SUMMARY", title="SUMMARY", order=1, content="Summary text"),
            Segment(id="c", type="LANGUAGES", title="LANGUAGES", order=2, content="- English"),
            Segment(id="d", type="CERTIFICATIONS", title="CERTS", order=3, visible=False),
        ]
    )


@pytest.fixture
def seeded_store(sample_context) -> SegmentStore:
    store = SegmentStore()
    store.seed(sample_context)
    return store


@pytest.fixture
def history(tmp_path: Path) -> GenerationHistory:
    return GenerationHistory(db_path=tmp_path / "history.db")


@pytest.fixture
def mock_queue() -> QueueClient:
    """Queue client whose jobs complete on the first poll."""
    queue = AsyncMock(spec=QueueClient)
    queue.enqueue = AsyncMock(return_value="job-1")
    queue.get_status = AsyncMock(
        return_value=JobStatus(status="completed", result=GenerationResult(content="Generated text"))
    )
    return queue

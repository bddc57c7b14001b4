"""Data models for the competence-file composer."""

from competence_composer.models.candidate import (
    CandidateProfile,
    ExperienceEntry,
    HeaderInfo,
    JobDescription,
    KnowledgeContext,
    ManagerContact,
    SeedContext,
)
from competence_composer.models.queue import (
    EnhancementAction,
    EnqueuePayload,
    EnqueueRequest,
    GenerationResult,
    JobStatus,
)
from competence_composer.models.segment import Segment, SegmentStatus

__all__ = [
    "CandidateProfile",
    "EnhancementAction",
    "EnqueuePayload",
    "EnqueueRequest",
    "ExperienceEntry",
    "GenerationResult",
    "HeaderInfo",
    "JobDescription",
    "JobStatus",
    "KnowledgeContext",
    "ManagerContact",
    "SeedContext",
    "Segment",
    "SegmentStatus",
]

"""Tests for the pydantic models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from competence_composer.models.candidate import (
    CandidateProfile,
    ExperienceEntry,
    HeaderInfo,
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
from competence_composer.models.segment import Segment, SegmentStatus, can_transition


class TestSegment:
    def test_defaults(self):
        seg = Segment(id="s1", type="HEADER", title="HEADER", order=0)
        assert seg.visible is True
        assert seg.status == SegmentStatus.IDLE
        assert seg.content == ""
        assert seg.rich_content is None
        assert seg.editable is True

    def test_camel_case_aliases(self):
        seg = Segment.model_validate(
            {"id": "s1", "type": "HEADER", "title": "H", "order": 0, "richContent": "<p>x</p>"}
        )
        assert seg.rich_content == "<p>x</p>"
        dumped = seg.model_dump(by_alias=True)
        assert dumped["richContent"] == "<p>x</p>"
        assert "editorState" in dumped

    def test_status_from_string(self):
        seg = Segment(id="s1", type="HEADER", title="H", order=0, status="loading")
        assert seg.status == SegmentStatus.LOADING

    def test_invalid_status_rejected(self):
        with pytest.raises(ValidationError):
            Segment(id="s1", type="HEADER", title="H", order=0, status="paused")

    def test_is_knowledge(self):
        assert Segment(id="k", type="K_RESULTS", title="R", order=0).is_knowledge
        assert not Segment(id="h", type="HEADER", title="H", order=0).is_knowledge

    def test_has_content(self):
        seg = Segment(id="s1", type="HEADER", title="H", order=0, content="   ")
        assert not seg.has_content
        assert seg.model_copy(update={"rich_content": "<p>x</p>"}).has_content


class TestStatusTransitions:
    @pytest.mark.parametrize(
        "current,new",
        [
            (SegmentStatus.IDLE, SegmentStatus.LOADING),
            (SegmentStatus.LOADING, SegmentStatus.DONE),
            (SegmentStatus.LOADING, SegmentStatus.ERROR),
            (SegmentStatus.DONE, SegmentStatus.LOADING),
            (SegmentStatus.ERROR, SegmentStatus.LOADING),
        ],
    )
    def test_legal(self, current, new):
        assert can_transition(current, new)

    @pytest.mark.parametrize(
        "current,new",
        [
            (SegmentStatus.IDLE, SegmentStatus.DONE),
            (SegmentStatus.IDLE, SegmentStatus.ERROR),
            (SegmentStatus.DONE, SegmentStatus.ERROR),
            (SegmentStatus.ERROR, SegmentStatus.DONE),
            (SegmentStatus.LOADING, SegmentStatus.IDLE),
        ],
    )
    def test_illegal(self, current, new):
        assert not can_transition(current, new)


class TestCandidateModels:
    def test_experience_from_text(self):
        entry = ExperienceEntry.from_text("Acme Corp — Engineer, 2020-01 to 2022-06")
        assert entry.company == "Acme Corp"
        assert entry.title == "Engineer"
        assert entry.start_date == "2020-01"
        assert entry.end_date == "2022-06"

    def test_profile_accepts_text_entries(self):
        profile = CandidateProfile.model_validate(
            {"fullName": "Jane", "experience": ["Acme Corp — Engineer, 2020-01 to 2022-06"]}
        )
        assert profile.full_name == "Jane"
        assert profile.experience[0].company == "Acme Corp"

    def test_header_from_context_with_manager(self, sample_context):
        header = HeaderInfo.from_context(sample_context)
        assert header.full_name == "Jane Doe"
        assert header.years_of_experience == 9
        assert header.manager.name == "Bill Lumbergh"

    def test_header_without_manager(self, sample_candidate):
        header = HeaderInfo.from_context(SeedContext(candidate=sample_candidate))
        assert header.manager is None

    def test_manager_is_empty(self):
        assert ManagerContact().is_empty
        assert not ManagerContact(phone="123").is_empty


class TestQueueModels:
    def test_optimize_request_wire_format(self):
        request = EnqueueRequest(
            type="ai_optimize",
            payload=EnqueuePayload(segment_type="HEADER", candidate_id="c1", language="en", order=0),
        )
        assert request.to_wire() == {
            "type": "ai_optimize",
            "payload": {"segmentType": "HEADER", "candidateId": "c1", "language": "en", "order": 0},
        }

    def test_enhance_request_wire_format(self):
        request = EnqueueRequest(
            type="ai_enhance",
            payload=EnqueuePayload(
                segment_type="LANGUAGES",
                enhancement_action=EnhancementAction.EXPAND,
                existing_content="- English",
                existing_html="<ul><li>English</li></ul>",
            ),
        )
        payload = request.to_wire()["payload"]
        assert payload["enhancementAction"] == "expand"
        assert payload["existingContent"] == "- English"
        assert payload["existingHtml"] == "<ul><li>English</li></ul>"

    def test_invalid_request_type(self):
        with pytest.raises(ValidationError):
            EnqueueRequest(type="ai_magic", payload=EnqueuePayload(segment_type="HEADER"))

    def test_result_text_falls_back_to_data(self):
        assert GenerationResult(content="a").text == "a"
        assert GenerationResult(data={"content": "b"}).text == "b"
        assert GenerationResult(htmlContent="<p>c</p>").text == ""

    def test_job_status_parsing(self):
        status = JobStatus.model_validate(
            {"status": "completed", "result": {"content": "x", "htmlContent": "<p>x</p>"}}
        )
        assert status.is_completed
        assert status.result.html_content == "<p>x</p>"
        assert JobStatus(status="failed", error="boom").is_failed

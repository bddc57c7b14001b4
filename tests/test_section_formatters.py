"""Tests for the section-aware preview formatters."""

import pytest

from competence_composer.formatting.sections import (
    SectionKind,
    classify_section,
    format_experience_section,
    format_generic_section,
    format_section,
    format_skill_tags,
    format_technical_section,
    parse_experience_block,
    parse_experience_header,
    parse_skill_groups,
)
from competence_composer.models.candidate import CandidateProfile, SeedContext
from competence_composer.store import SegmentStore


class TestClassifySection:
    @pytest.mark.parametrize(
        "segment_type,title,expected",
        [
            ("PROFESSIONAL EXPERIENCE 2", "", SectionKind.EXPERIENCE),
            ("custom", "Professional Experience 1", SectionKind.EXPERIENCE),
            ("TECHNICAL SKILLS", "", SectionKind.TECHNICAL),
            ("custom", "TECHNICAL EXPERTISE", SectionKind.TECHNICAL),
            ("FUNCTIONAL SKILLS", "", SectionKind.TECHNICAL),
            ("CERTIFICATIONS", "", SectionKind.FLAT_LIST),
            ("PROFESSIONAL SUMMARY", "EXECUTIVE SUMMARY", SectionKind.GENERIC),
            ("PROFESSIONAL EXPERIENCES SUMMARY", "", SectionKind.GENERIC),
        ],
    )
    def test_routing(self, segment_type, title, expected):
        assert classify_section(segment_type, title) == expected


class TestTechnicalFormatter:
    def test_bold_category_with_flat_items(self):
        groups = parse_skill_groups("**Backend**\n- Go\n- Postgres")
        assert len(groups) == 1
        assert groups[0].label == "Backend"
        assert groups[0].items == ["Go", "Postgres"]

        html = format_technical_section("**Backend**\n- Go\n- Postgres")
        assert html == (
            '<h3 class="preview-h3">Backend</h3>'
            '<ul class="preview-ul"><li class="preview-li">Go</li><li class="preview-li">Postgres</li></ul>'
        )
        assert "<strong>" not in html

    def test_items_lose_inherited_bold(self):
        groups = parse_skill_groups("### Cloud:\n- **AWS**\n- ***\n* GCP")
        assert groups[0].label == "Cloud"
        assert groups[0].items == ["AWS", "GCP"]

    def test_items_without_label(self):
        groups = parse_skill_groups("- Go\n- Rust")
        assert groups[0].label is None
        assert "<h3" not in format_technical_section("- Go\n- Rust")

    def test_skill_tags(self):
        html = format_skill_tags("**Cloud**\n- AWS, GCP; Azure")
        assert html.count('<span class="tag">') == 3
        assert '<h4 class="skill-category-title">Cloud</h4>' in html

    def test_format_section_uses_tags_when_enabled(self):
        html = format_section("TECHNICAL SKILLS", "", "- Go", skills_as_tags=True)
        assert "skills-grid" in html


class TestExperienceFormatter:
    def test_seeded_experience_block(self):
        candidate = CandidateProfile(experience=["Acme Corp — Engineer, 2020-01 to 2022-06"])
        store = SegmentStore()
        store.seed(SeedContext(candidate=candidate))
        segment = store.get_by_type("PROFESSIONAL EXPERIENCE 1")
        assert segment is not None

        html = format_experience_section(segment.content)
        assert '<h3 class="preview-h3">Acme Corp</h3>' in html
        assert '<p class="preview-p">Engineer</p>' in html
        assert '<div class="preview-date-line">2020-01 - 2022-06</div>' in html

    def test_anchor_buckets(self):
        content = (
            "Globex | Tech Lead | 2022-07 to present\n"
            "Key Responsibilities:\n"
            "- Owns the platform team\n"
            "- Runs incident reviews\n"
            "Achievements & Impact:\n"
            "- Cut paging by **40%**\n"
            "Technical Environment: Go, Kubernetes"
        )
        block = parse_experience_block(content)
        assert (block.company, block.role, block.dates) == ("Globex", "Tech Lead", "2022-07 - Present")
        assert [s.label for s in block.sections] == [
            "Key Responsibilities",
            "Achievements & Impact",
            "Technical Environment",
        ]
        assert block.sections[0].items == ["Owns the platform team", "Runs incident reviews"]
        assert block.sections[2].items == ["Go", "Kubernetes"]

        html = format_experience_section(content)
        assert "<strong>40%</strong>" in html

    def test_anchor_labels_case_insensitive(self):
        block = parse_experience_block("Acme - Engineer\nKEY RESPONSIBILITIES\n• Build things")
        assert block.sections[0].label == "Key Responsibilities"

    def test_dated_header_without_anchors(self):
        block = parse_experience_block("Initech - Consultant\n2019-03 - 2020-01\n- Did things")
        assert block.company == "Initech"
        assert block.dates == "2019-03 - 2020-01"
        html = format_experience_section("Initech - Consultant\n2019-03 - 2020-01\n- Did things")
        assert '<li class="preview-li">Did things</li>' in html

    def test_unrecognized_falls_back_to_generic(self):
        assert format_experience_section("Just a paragraph") == '<p class="preview-p">Just a paragraph</p>'

    @pytest.mark.parametrize(
        "header,expected",
        [
            ("**Acme Corp** - Engineer 2020-01 - 2022-06", ("Acme Corp", "Engineer", "2020-01 - 2022-06")),
            ("Acme Corp — Engineer, 2020-01 to 2022-06", ("Acme Corp", "Engineer", "2020-01 - 2022-06")),
            ("Acme Corp", ("Acme Corp", "", "")),
            ("Acme | Lead | 2021-02 – current", ("Acme", "Lead", "2021-02 - Current")),
        ],
    )
    def test_parse_header(self, header, expected):
        assert parse_experience_header(header) == expected


class TestGenericFormatter:
    def test_line_rules(self):
        html = format_generic_section(
            "## Title\n**Group**\n2020-01 - 2021-01\n- a\n\n- b\n1. c\n> q\ntext\n- ***"
        )
        assert html == (
            '<h2 class="preview-h2">Title</h2>'
            '<h3 class="preview-h3">Group</h3>'
            '<div class="preview-date-line">2020-01 - 2021-01</div>'
            '<ul class="preview-ul"><li class="preview-li">a</li><li class="preview-li">b</li></ul>'
            '<ol class="preview-ol"><li class="preview-li">c</li></ol>'
            '<blockquote class="preview-quote">q</blockquote>'
            '<p class="preview-p">text</p>'
        )

    def test_deep_heading_is_h3(self):
        assert format_generic_section("#### Deep") == '<h3 class="preview-h3">Deep</h3>'

    def test_escapes_html(self):
        assert "&lt;script&gt;" in format_generic_section("<script>")

    def test_flat_list_section(self):
        html = format_section("CERTIFICATIONS", "", "CKA\nAWS Solutions Architect")
        assert html.count('<li class="preview-li">') == 2
        assert "<p" not in html

    def test_empty_content(self):
        assert format_generic_section("") == ""

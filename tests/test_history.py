"""Tests for the generation history store."""

from datetime import datetime, timedelta

from competence_composer.history.models import GenerationRecord


def _record(**kwargs) -> GenerationRecord:
    defaults = {"segment_id": "summary", "segment_type": "PROFESSIONAL SUMMARY", "outcome": "done"}
    defaults.update(kwargs)
    return GenerationRecord(**defaults)


class TestGenerationHistory:
    def test_save_and_load(self, history):
        record = _record(job_id="job-1", elapsed_seconds=1.5)
        history.save_record(record)
        loaded = history.get_records()
        assert len(loaded) == 1
        assert loaded[0].id == record.id
        assert loaded[0].job_id == "job-1"
        assert loaded[0].success

    def test_newest_first_and_limit(self, history):
        now = datetime.now()
        for i in range(3):
            history.save_record(_record(job_id=f"job-{i}", timestamp=now + timedelta(seconds=i)))
        loaded = history.get_records(limit=2)
        assert [r.job_id for r in loaded] == ["job-2", "job-1"]

    def test_filter_by_segment(self, history):
        history.save_record(_record(segment_id="a"))
        history.save_record(_record(segment_id="b"))
        assert [r.segment_id for r in history.get_records(segment_id="b")] == ["b"]

    def test_stats(self, history):
        history.save_record(_record(elapsed_seconds=2.0))
        history.save_record(_record(elapsed_seconds=4.0))
        history.save_record(_record(outcome="error", error_kind="timed_out", elapsed_seconds=120))
        history.save_record(_record(outcome="discarded"))
        stats = history.stats()
        assert stats["total"] == 4
        assert stats["success_count"] == 2
        assert stats["failure_count"] == 1
        assert stats["timeout_count"] == 1
        assert stats["success_rate"] == 50.0
        assert stats["avg_elapsed_seconds"] == 3.0

    def test_empty_stats(self, history):
        stats = history.stats()
        assert stats["total"] == 0
        assert stats["success_rate"] == 0.0
        assert stats["avg_elapsed_seconds"] is None

"""Tests for the segment store."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from competence_composer.models.segment import Segment, SegmentStatus
from competence_composer.store import SegmentStore


def _orders(store: SegmentStore) -> dict[str, int]:
    return {s.id: s.order for s in store.ordered()}


class TestSeed:
    def test_seed_is_idempotent(self, sample_context):
        store = SegmentStore()
        first = store.seed(sample_context)
        second = store.seed(sample_context)
        assert len(first) == len(second) == len(store)
        assert [s.id for s in first] == [s.id for s in second]

    def test_seeded_segments_are_idle(self, seeded_store):
        assert all(s.status == SegmentStatus.IDLE for s in seeded_store)

    def test_set_segments_replaces(self, store):
        store.set_segments([Segment(id="x", type="HEADER", title="H", order=0)])
        assert [s.id for s in store] == ["x"]


class TestQueries:
    def test_ordered_breaks_ties_by_insertion(self):
        store = SegmentStore(
            [
                Segment(id="second", type="A", title="A", order=1),
                Segment(id="first", type="B", title="B", order=1),
                Segment(id="zero", type="C", title="C", order=0),
            ]
        )
        assert [s.id for s in store.ordered()] == ["zero", "second", "first"]

    def test_get_visible(self, store):
        assert [s.id for s in store.get_visible()] == ["a", "b", "c"]

    def test_get_by_type_and_status(self, store):
        assert store.get_by_type("LANGUAGES").id == "c"
        assert store.get_by_type("NOPE") is None
        assert len(store.get_by_status(SegmentStatus.IDLE)) == 4


class TestUpdate:
    def test_merges_fields(self, store):
        assert store.update("a", {"content": "New", "title": "Top"})
        seg = store.get("a")
        assert (seg.content, seg.title) == ("New", "Top")

    def test_missing_segment_is_noop(self, store):
        assert store.update("missing", {"content": "x"}) is False
        assert "missing" not in store

    def test_id_is_not_writable(self, store):
        assert store.update("a", {"id": "z"}) is False
        assert store.get("a") is not None

    def test_illegal_transition_dropped(self, store):
        assert store.update("a", {"status": "done"}) is False
        assert store.get("a").status == SegmentStatus.IDLE

    def test_unknown_status_rejected(self, store):
        assert store.update("a", {"status": "paused"}) is False

    def test_invalid_value_rejected(self, store):
        assert store.update("a", {"order": "first"}) is False
        assert store.get("a").order == 0

    def test_loading_segment_guarded(self, store):
        assert store.begin_generation("a", "gen-1")
        assert store.update("a", {"content": "typed", "title": "Renamed"})
        seg = store.get("a")
        assert seg.content == "Jane Doe"
        assert seg.title == "Renamed"

    def test_owner_may_write_loading_segment(self, store):
        store.begin_generation("a", "gen-1")
        assert store.finish_generation("a", "gen-1", {"status": SegmentStatus.DONE, "content": "Gen"})
        seg = store.get("a")
        assert seg.status == SegmentStatus.DONE
        assert seg.content == "Gen"
        assert seg.generation_id is None


class TestReorder:
    def test_move_down(self, store):
        store.reorder(0, 2)
        assert [s.id for s in store] == ["b", "c", "a", "d"]
        assert _orders(store) == {"b": 0, "c": 1, "a": 2, "d": 3}

    def test_move_up(self, store):
        store.reorder(3, 0)
        assert [s.id for s in store] == ["d", "a", "b", "c"]

    def test_same_index_is_noop(self, store):
        before = _orders(store)
        store.reorder(1, 1)
        assert _orders(store) == before

    def test_orders_stay_a_permutation(self, store):
        for move in [(0, 3), (2, 1), (3, 0), (1, 2)]:
            store.reorder(*move)
            assert sorted(_orders(store).values()) == list(range(len(store)))

    def test_out_of_range(self, store):
        with pytest.raises(IndexError):
            store.reorder(0, 4)
        with pytest.raises(IndexError):
            store.reorder(-1, 0)

    @given(st.permutations(list(range(5))))
    def test_reaches_any_order(self, target):
        store = SegmentStore(
            [Segment(id=f"s{i}", type="X", title="X", order=i, visible=i != 3) for i in range(5)]
        )
        wanted = [f"s{i}" for i in target]
        for position, segment_id in enumerate(wanted):
            current = [s.id for s in store.ordered()].index(segment_id)
            store.reorder(current, position)

        assert [s.id for s in store.ordered()] == wanted
        assert [s.id for s in store.get_visible()] == [i for i in wanted if i != "s3"]
        assert sorted(s.id for s in store) == [f"s{i}" for i in range(5)]
        assert _orders(store) == {segment_id: i for i, segment_id in enumerate(wanted)}


class TestRemove:
    def test_remove_keeps_other_orders(self, store):
        removed = store.remove("b")
        assert removed.id == "b"
        assert _orders(store) == {"a": 0, "c": 2, "d": 3}

    def test_remove_missing(self, store):
        assert store.remove("nope") is None

    def test_removed_id_is_not_reused(self, store):
        store.remove("b")
        assert not store.id_available("b")
        with pytest.raises(ValueError):
            store.add(Segment(id="b", type="X", title="X", order=9))

    def test_next_order(self, store):
        assert store.next_order() == 4
        assert SegmentStore().next_order() == 0


class TestGeneration:
    def test_begin_twice_refused(self, store):
        assert store.begin_generation("a", "g1")
        assert not store.begin_generation("a", "g2")
        assert store.get("a").generation_id == "g1"

    def test_begin_clears_error(self, store):
        store.begin_generation("a", "g1")
        store.finish_generation("a", "g1", {"status": SegmentStatus.ERROR, "error": "x", "error_kind": "timed_out"})
        assert store.begin_generation("a", "g2")
        seg = store.get("a")
        assert seg.error is None
        assert seg.error_kind is None

    def test_stale_generation_discarded(self, store):
        store.begin_generation("a", "g1")
        assert not store.finish_generation("a", "other", {"status": SegmentStatus.DONE})
        assert store.get("a").status == SegmentStatus.LOADING

    def test_finish_after_remove(self, store):
        store.begin_generation("a", "g1")
        store.remove("a")
        assert not store.finish_generation("a", "g1", {"status": SegmentStatus.DONE})


class TestLoadExisting:
    def test_sections_config(self):
        store = SegmentStore()
        store.load_existing(
            {
                "sectionsConfig": [
                    {"id": "s2", "title": "Skills", "type": "TECHNICAL SKILLS", "order": 1, "content": "- Go"},
                    {
                        "id": "s1",
                        "title": "Header",
                        "type": "HEADER",
                        "order": 0,
                        "htmlContent": "<p>Jane</p>",
                        "visible": False,
                    },
                ]
            }
        )
        assert [s.id for s in store] == ["s1", "s2"]
        assert store.get("s1").rich_content == "<p>Jane</p>"
        assert store.get("s1").visible is False
        assert all(s.status == SegmentStatus.DONE for s in store)

    def test_metadata_sections(self):
        store = SegmentStore()
        store.load_existing({"metadata": {"sections": {"summary": "Text", "technical skills": ["Go"]}}})
        segs = store.ordered()
        assert [s.title for s in segs] == ["SUMMARY", "TECHNICAL SKILLS"]
        assert segs[1].type == "technical_skills"
        assert segs[1].content == '["Go"]'

    def test_load_replaces_existing(self, store):
        store.load_existing({"sectionsConfig": []})
        assert len(store) == 0

    def test_null_order_uses_position(self):
        store = SegmentStore()
        store.load_existing(
            {
                "sectionsConfig": [
                    {"id": "s1", "title": "Header", "order": None},
                    {"id": "s2", "title": "Skills"},
                ]
            }
        )
        assert _orders(store) == {"s1": 0, "s2": 1}

    def test_duplicate_ids_renamed(self):
        store = SegmentStore()
        store.load_existing(
            {
                "sectionsConfig": [
                    {"id": "dup", "title": "One", "order": 0},
                    {"id": "dup", "title": "Two", "order": 1},
                    {"id": "dup", "title": "Three", "order": 2},
                ]
            }
        )
        assert [s.id for s in store] == ["dup", "dup-2", "dup-3"]
        assert [s.title for s in store] == ["One", "Two", "Three"]

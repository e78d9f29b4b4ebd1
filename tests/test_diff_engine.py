"""Tests for the change detection between cycles."""

from datetime import datetime, timezone

from stockpulse.api.schemas import CategorySnapshot, CategoryState
from stockpulse.pipeline.diff_engine import diff


def make_state(count, items):
    return CategoryState(total_count=count, items=items, observed_at=datetime(2024, 1, 1, tzinfo=timezone.utc))


def make_snapshot(count, items):
    return CategorySnapshot(total_count=count, items=items)


class TestCounts:
    def test_first_observation(self):
        result = diff(None, make_snapshot(3, ["a", "b", "c"]))
        assert result.added == 3
        assert result.removed == 0
        assert result.new_items == ["a", "b", "c"]

    def test_growth(self):
        result = diff(make_state(10, []), make_snapshot(14, []))
        assert result.added == 4
        assert result.removed == 0

    def test_shrink(self):
        result = diff(make_state(10, []), make_snapshot(7, []))
        assert result.added == 0
        assert result.removed == 3

    def test_net_delta_matches_counts(self):
        pairs = [(0, 0), (5, 5), (3, 9), (9, 3), (0, 12), (12, 0)]
        for before, after in pairs:
            result = diff(make_state(before, []), make_snapshot(after, []))
            assert result.added >= 0 and result.removed >= 0
            assert result.added - result.removed == after - before


class TestNewItems:
    def test_only_unseen_ids(self):
        result = diff(make_state(3, ["a", "b", "c"]), make_snapshot(3, ["b", "c", "d"]))
        assert result.new_items == ["d"]

    def test_preserves_current_order(self):
        result = diff(make_state(1, ["x"]), make_snapshot(4, ["q", "x", "m", "a"]))
        assert result.new_items == ["q", "m", "a"]

    def test_prior_order_is_irrelevant(self):
        current = make_snapshot(3, ["c", "d", "a"])
        assert diff(make_state(2, ["a", "b"]), current) == diff(make_state(2, ["b", "a"]), current)

    def test_reordering_is_not_new(self):
        result = diff(make_state(3, ["a", "b", "c"]), make_snapshot(3, ["c", "a", "b"]))
        assert result.new_items == []

    def test_subset_of_current_and_disjoint_from_prior(self):
        prior = make_state(4, ["1", "2", "3", "4"])
        current = make_snapshot(5, ["3", "5", "1", "6", "7"])
        result = diff(prior, current)
        assert set(result.new_items) <= set(current.items)
        assert not set(result.new_items) & set(prior.items)

    def test_duplicate_ids_reported_once(self):
        result = diff(None, make_snapshot(3, ["a", "a", "b"]))
        assert result.new_items == ["a", "b"]

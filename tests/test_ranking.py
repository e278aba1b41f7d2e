"""Tests for result ordering."""
from __future__ import annotations

import pytest

from trial_matching.models import Enrollment, SortKey
from trial_matching.ranking import parse_sort_key, sort_results

from conftest import make_result


def ids(results):
    return [r.nct_id for r in results]


class TestSortResults:

    def test_relevance_highest_first(self):
        results = [make_result("A", score=40), make_result("B", score=90), make_result("C", score=65)]
        assert ids(sort_results(results, SortKey.RELEVANCE)) == ["B", "C", "A"]

    def test_relevance_ties_keep_input_order(self):
        results = [
            make_result("A", score=70),
            make_result("B", score=90),
            make_result("C", score=70),
            make_result("D", score=70),
        ]
        assert ids(sort_results(results, "relevance")) == ["B", "A", "C", "D"]

    def test_distance_unknown_last(self):
        results = [make_result("A", distance=5.0), make_result("B", distance=None), make_result("C", distance=2.0)]
        ordered = sort_results(results, SortKey.DISTANCE)
        assert [r.distance for r in ordered] == [2.0, 5.0, None]

    def test_distance_ties_and_unknowns_keep_input_order(self):
        results = [
            make_result("A", distance=None),
            make_result("B", distance=3.0),
            make_result("C", distance=None),
            make_result("D", distance=3.0),
        ]
        assert ids(sort_results(results, SortKey.DISTANCE)) == ["B", "D", "A", "C"]

    def test_enrollment_highest_first(self):
        results = [
            make_result("A", enrollment=Enrollment(100, 5)),
            make_result("B", enrollment=Enrollment(100, 50)),
            make_result("C", enrollment=Enrollment(100, 20)),
        ]
        assert ids(sort_results(results, SortKey.ENROLLMENT)) == ["B", "C", "A"]

    def test_phase_highest_first_unknown_last(self):
        results = [
            make_result("A", phase="Phase 1"),
            make_result("B", phase="Not specified"),
            make_result("C", phase="Phase 4"),
            make_result("D", phase="Phase 2"),
        ]
        assert ids(sort_results(results, SortKey.PHASE)) == ["C", "D", "A", "B"]

    def test_all_zero_scores_fall_back_to_distance(self):
        results = [
            make_result("A", score=0, distance=30.0),
            make_result("B", score=0, distance=None),
            make_result("C", score=0, distance=4.0),
        ]
        assert ids(sort_results(results, SortKey.RELEVANCE)) == ["C", "A", "B"]

    def test_all_zero_scores_without_distances_fall_back_to_enrollment(self):
        results = [
            make_result("A", score=0, enrollment=Enrollment(100, 1)),
            make_result("B", score=0, enrollment=Enrollment(100, 9)),
        ]
        assert ids(sort_results(results, SortKey.RELEVANCE)) == ["B", "A"]

    def test_input_not_mutated(self):
        results = [make_result("A", score=1), make_result("B", score=2)]
        sort_results(results, SortKey.RELEVANCE)
        assert ids(results) == ["A", "B"]

    def test_empty_input(self):
        assert sort_results([], SortKey.RELEVANCE) == []


class TestParseSortKey:

    @pytest.mark.parametrize("value", ["relevance", "distance", "enrollment", "phase"])
    def test_known_keys(self, value):
        assert parse_sort_key(value).value == value

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown sort key"):
            parse_sort_key("popularity")

    def test_sort_results_rejects_unknown_key(self):
        with pytest.raises(ValueError):
            sort_results([make_result()], "alphabetical")

"""Tests for result filtering."""
from __future__ import annotations

import pytest

from trial_matching.filters import FilterCriteria, filter_results
from trial_matching.models import Enrollment

from conftest import make_result


@pytest.fixture
def results():
    return [
        make_result("NCT001", score=70, distance=5.0, status="Recruiting", phase="Phase 2"),
        make_result("NCT002", score=60, distance=45.0, status="Completed", phase="Phase 3",
                    condition="Lung Cancer", biomarkers=("EGFR",)),
        make_result("NCT003", score=50, distance=None, status="Recruiting", phase="Phase 3"),
        make_result("NCT004", score=40, distance=8.0, status="Active, not recruiting", phase="Phase 1",
                    title="Immunotherapy for melanoma", condition="Melanoma", biomarkers=("PD-L1",)),
    ]


def ids(results):
    return [r.nct_id for r in results]


class TestFilterResults:

    def test_no_criteria_keeps_everything(self, results):
        assert ids(filter_results(results)) == ["NCT001", "NCT002", "NCT003", "NCT004"]
        assert ids(filter_results(results, FilterCriteria())) == ["NCT001", "NCT002", "NCT003", "NCT004"]

    def test_status_filter_is_exact(self, results):
        assert ids(filter_results(results, FilterCriteria(status="Recruiting"))) == ["NCT001", "NCT003"]

    def test_recruiting_only(self, results):
        assert ids(filter_results(results, FilterCriteria(recruiting_only=True))) == ["NCT001", "NCT003"]

    def test_max_distance_keeps_unknown_distances(self, results):
        filtered = filter_results(results, FilterCriteria(max_distance_km=10))
        assert ids(filtered) == ["NCT001", "NCT003", "NCT004"]
        assert "NCT002" not in ids(filtered)

    def test_max_distance_is_inclusive(self):
        result = make_result(distance=10.0)
        assert filter_results([result], FilterCriteria(max_distance_km=10)) == [result]

    def test_filters_combine_with_and(self, results):
        criteria = FilterCriteria(status="Recruiting", max_distance_km=10, phase="Phase 3")
        assert ids(filter_results(results, criteria)) == ["NCT003"]

    @pytest.mark.parametrize("phase", ["Phase 3", "PHASE3", "phase III", "3"])
    def test_phase_filter_accepts_any_spelling(self, results, phase):
        assert ids(filter_results(results, FilterCriteria(phase=phase))) == ["NCT002", "NCT003"]

    def test_free_text_query_matches_title_or_condition(self, results):
        assert ids(filter_results(results, FilterCriteria(query="immunotherapy"))) == ["NCT004"]
        assert ids(filter_results(results, FilterCriteria(query="LUNG"))) == ["NCT002"]

    def test_condition_filter(self, results):
        assert ids(filter_results(results, FilterCriteria(condition="breast"))) == ["NCT001", "NCT003"]

    def test_biomarker_filter(self, results):
        assert ids(filter_results(results, FilterCriteria(biomarker="pd-l1"))) == ["NCT004"]
        assert ids(filter_results(results, FilterCriteria(biomarker="her2"))) == ["NCT001", "NCT003"]

    def test_min_enrollment(self):
        small = make_result("NCT010", enrollment=Enrollment(target=50, current=3))
        large = make_result("NCT011")
        assert ids(filter_results([small, large], FilterCriteria(min_enrollment=5))) == ["NCT011"]

    def test_input_list_not_mutated(self, results):
        before = list(results)
        filter_results(results, FilterCriteria(status="Completed"))
        assert results == before

    def test_blank_strings_are_inactive(self):
        assert FilterCriteria(query="  ", status="").is_empty()
        assert not FilterCriteria(max_distance_km=0).is_empty()

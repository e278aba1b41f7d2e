"""Tests for search-strategy construction and concurrent result merging.

All offline: the catalog is a FakeCatalog, async code runs via asyncio.run.
"""
from __future__ import annotations

import asyncio

import config
from trial_matching.merger import ResultMerger, build_search_criteria, deduplicate
from trial_matching.models import GenomicProfile, Medication, PatientProfile

from conftest import FakeCatalog, make_trial


# ══════════════════════════════════════════════════════════════════════
# build_search_criteria
# ══════════════════════════════════════════════════════════════════════

class TestBuildSearchCriteria:

    def test_all_three_strategies_in_order(self):
        patient = PatientProfile(
            cancer_type="lung cancer",
            medications=(Medication("osimertinib"),),
            genomic_profile=GenomicProfile(mutations=("EGFR L858R",)),
        )
        criteria = build_search_criteria(patient)
        assert [c.strategy for c in criteria] == ["condition", "medication", "genomic"]
        assert criteria[0].condition == "lung cancer"
        assert criteria[1].drug_name == "osimertinib"
        assert criteria[1].condition == "lung cancer"
        assert criteria[2].genomic_profile.mutations == ("EGFR L858R",)

    def test_first_active_medication_is_used(self):
        patient = PatientProfile(medications=(
            Medication("tamoxifen", active=False),
            Medication("letrozole"),
            Medication("palbociclib"),
        ))
        criteria = build_search_criteria(patient)
        assert [c.strategy for c in criteria] == ["medication"]
        assert criteria[0].drug_name == "letrozole"

    def test_diagnosis_list_used_when_no_cancer_type(self):
        patient = PatientProfile(diagnoses=("", "colorectal cancer"))
        criteria = build_search_criteria(patient)
        assert criteria[0].condition == "colorectal cancer"

    def test_empty_genomic_profile_is_ignored(self):
        patient = PatientProfile(cancer_type="melanoma", genomic_profile=GenomicProfile())
        assert [c.strategy for c in build_search_criteria(patient)] == ["condition"]

    def test_genomic_strategy_uses_tumor_type_without_diagnosis(self):
        patient = PatientProfile(genomic_profile=GenomicProfile(biomarkers=("BRCA1",), tumor_type="ovarian"))
        criteria = build_search_criteria(patient)
        assert criteria[0].strategy == "genomic"
        assert criteria[0].condition == "ovarian"

    def test_empty_profile_falls_back_to_broad_query(self):
        criteria = build_search_criteria(PatientProfile())
        assert len(criteria) == 1
        assert criteria[0].strategy == "fallback"
        assert criteria[0].condition == config.FALLBACK_CONDITION
        assert criteria[0].statuses == ("RECRUITING",)


# ══════════════════════════════════════════════════════════════════════
# ResultMerger
# ══════════════════════════════════════════════════════════════════════

PATIENT = PatientProfile(
    cancer_type="breast cancer",
    medications=(Medication("trastuzumab"),),
    genomic_profile=GenomicProfile(biomarkers=("HER2",)),
)


class TestResultMerger:

    def test_duplicate_across_strategies_kept_once(self):
        catalog = FakeCatalog({
            "condition": [make_trial("NCT001"), make_trial("NCT002")],
            "medication": [make_trial("NCT001", title="Duplicate copy")],
        })
        outcome = asyncio.run(ResultMerger(catalog).merge(PATIENT))
        ids = [t.nct_id for t in outcome.trials]
        assert ids.count("NCT001") == 1
        assert sorted(ids) == ["NCT001", "NCT002"]

    def test_first_strategy_wins_without_field_merging(self):
        catalog = FakeCatalog({
            "condition": [make_trial("NCT001", title="From condition")],
            "medication": [make_trial("NCT001", title="From medication", sponsor="Other")],
        })
        outcome = asyncio.run(ResultMerger(catalog).merge(PATIENT))
        assert len(outcome.trials) == 1
        assert outcome.trials[0].title == "From condition"
        assert outcome.trials[0].sponsor == "Sponsor Inc."

    def test_first_strategy_wins_even_when_it_finishes_last(self):
        catalog = FakeCatalog(
            {
                "condition": [make_trial("NCT001", title="From condition")],
                "medication": [make_trial("NCT001", title="From medication")],
            },
            delays={"condition": 0.05},
        )
        outcome = asyncio.run(ResultMerger(catalog).merge(PATIENT))
        assert outcome.trials[0].title == "From condition"

    def test_failed_strategy_does_not_abort_others(self):
        catalog = FakeCatalog({
            "condition": [make_trial("NCT001")],
            "medication": ConnectionError("catalog unreachable"),
            "genomic": [make_trial("NCT003")],
        })
        outcome = asyncio.run(ResultMerger(catalog).merge(PATIENT))
        assert sorted(t.nct_id for t in outcome.trials) == ["NCT001", "NCT003"]
        assert outcome.succeeded == ["condition", "genomic"]
        assert "medication" in outcome.failed
        assert outcome.partial

    def test_all_strategies_failing_yields_empty_result(self):
        catalog = FakeCatalog({
            "condition": RuntimeError("boom"),
            "medication": RuntimeError("boom"),
            "genomic": RuntimeError("boom"),
        })
        outcome = asyncio.run(ResultMerger(catalog).merge(PATIENT))
        assert outcome.trials == []
        assert set(outcome.failed) == {"condition", "medication", "genomic"}
        assert not outcome.partial

    def test_slow_strategy_times_out(self):
        catalog = FakeCatalog(
            {"condition": [make_trial("NCT001")], "medication": [make_trial("NCT002")]},
            delays={"medication": 1.0},
        )
        merger = ResultMerger(catalog, query_timeout=0.05)
        outcome = asyncio.run(merger.merge(PATIENT))
        assert [t.nct_id for t in outcome.trials] == ["NCT001"]
        assert outcome.failed["medication"] == "timed out"

    def test_queries_run_concurrently(self):
        catalog = FakeCatalog(
            {"condition": [], "medication": [], "genomic": []},
            delays={"condition": 0.2, "medication": 0.2, "genomic": 0.2},
        )

        async def timed():
            loop = asyncio.get_running_loop()
            start = loop.time()
            await ResultMerger(catalog).merge(PATIENT)
            return loop.time() - start

        assert asyncio.run(timed()) < 0.5

    def test_empty_profile_uses_fallback_query(self):
        catalog = FakeCatalog({"fallback": [make_trial("NCT009")]})
        outcome = asyncio.run(ResultMerger(catalog).merge(PatientProfile()))
        assert [c.strategy for c in catalog.calls] == ["fallback"]
        assert [t.nct_id for t in outcome.trials] == ["NCT009"]


def test_deduplicate_preserves_first_seen_order():
    merged = deduplicate([
        [make_trial("NCT002"), make_trial("NCT001")],
        [make_trial("NCT003"), make_trial("NCT002")],
    ])
    assert [t.nct_id for t in merged] == ["NCT002", "NCT001", "NCT003"]

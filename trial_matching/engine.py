#!/usr/bin/env python3
"""
Patient-trial matching engine.

Runs the full pipeline for one patient: concurrent catalog search and merge,
distance annotation, scoring, filtering and ranking.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

import config
from .api import ClinicalTrialsCatalog, TrialCatalogAdapter
from .distance import annotate_trial_distances
from .filters import FilterCriteria, filter_results
from .merger import ResultMerger
from .models import MatchResult, PatientProfile, SortKey, Trial
from .ranking import parse_sort_key, sort_results
from .scoring import eligibility_score, score_trial

logger = logging.getLogger(__name__)


@dataclass
class SearchResults:
    """Ranked results of one search invocation.

    ``sequence`` identifies the invocation; pass it to
    ``MatchingEngine.is_stale`` and drop the results when a newer search has
    started since.
    """
    sequence: int
    results: List[MatchResult] = field(default_factory=list)
    total_found: int = 0
    strategies_succeeded: List[str] = field(default_factory=list)
    strategies_failed: Dict[str, str] = field(default_factory=dict)


def match_trial(trial: Trial, patient: PatientProfile) -> MatchResult:
    """Annotate one trial with distance, relevance score and eligibility."""
    trial = annotate_trial_distances(trial, patient.location)
    breakdown = score_trial(trial, patient)
    eligibility = eligibility_score(trial, patient)
    return MatchResult(
        trial=trial,
        score=breakdown.score,
        match_reasons=breakdown.reasons,
        distance=trial.distance,
        eligibility_score=eligibility.score,
        eligibility_flags=eligibility.flags,
    )


def rank_trials(trials: Iterable[Trial],
                patient: PatientProfile,
                filters: Optional[FilterCriteria] = None,
                sort_key: Union[str, SortKey] = SortKey.RELEVANCE) -> List[MatchResult]:
    """
    Score, filter and order already-fetched trials. Pure and synchronous.

    Without a patient location no distances exist, so distance ordering falls
    back to relevance.
    """
    sort_key = parse_sort_key(sort_key)
    if patient.location is None and sort_key is SortKey.DISTANCE:
        logger.info("Patient location unknown, distance sorting disabled; ordering by relevance")
        sort_key = SortKey.RELEVANCE

    scored = [match_trial(trial, patient) for trial in trials]
    filtered = filter_results(scored, filters)
    logger.debug(f"{len(filtered)}/{len(scored)} trials passed filters")
    return sort_results(filtered, sort_key)


class MatchingEngine:
    """Single entry point for patient-trial matching."""

    def __init__(self,
                 adapter: Optional[TrialCatalogAdapter] = None,
                 query_timeout: Optional[float] = config.CATALOG_QUERY_TIMEOUT,
                 max_concurrent: int = config.MAX_CONCURRENT_QUERIES):
        self.merger = ResultMerger(
            adapter or ClinicalTrialsCatalog(),
            query_timeout=query_timeout,
            max_concurrent=max_concurrent,
        )
        self._sequence = itertools.count(1)
        self.latest_sequence = 0

    def is_stale(self, sequence: int) -> bool:
        """True when a newer search has started since ``sequence``."""
        return sequence < self.latest_sequence

    async def search(self,
                     patient: PatientProfile,
                     filters: Optional[FilterCriteria] = None,
                     sort_key: Union[str, SortKey] = SortKey.RELEVANCE) -> SearchResults:
        """
        Search, score, filter and rank trials for a patient.

        Every call is stamped with a new sequence number. When searches
        overlap, callers check ``is_stale(results.sequence)`` before using the
        results and discard superseded ones.
        """
        sequence = next(self._sequence)
        self.latest_sequence = sequence
        logger.info(f"Search #{sequence} for patient {patient.patient_id or '<anonymous>'}")

        outcome = await self.merger.merge(patient)
        results = rank_trials(outcome.trials, patient, filters, sort_key)

        if self.is_stale(sequence):
            logger.debug(f"Search #{sequence} superseded by #{self.latest_sequence}")

        return SearchResults(
            sequence=sequence,
            results=results,
            total_found=len(outcome.trials),
            strategies_succeeded=outcome.succeeded,
            strategies_failed=outcome.failed,
        )

    async def compute_matches(self,
                              patient: PatientProfile,
                              filters: Optional[FilterCriteria] = None,
                              sort_key: Union[str, SortKey] = SortKey.RELEVANCE) -> List[MatchResult]:
        search = await self.search(patient, filters, sort_key)
        return search.results

    def compute_matches_sync(self,
                             patient: PatientProfile,
                             filters: Optional[FilterCriteria] = None,
                             sort_key: Union[str, SortKey] = SortKey.RELEVANCE) -> List[MatchResult]:
        """Blocking variant for callers without a running event loop."""
        return asyncio.run(self.compute_matches(patient, filters, sort_key))

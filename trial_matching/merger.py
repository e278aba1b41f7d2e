#!/usr/bin/env python3
"""
Multi-strategy trial search with partial-failure tolerance.

A patient profile yields up to three independent catalog queries (diagnosis,
current medication, genomic profile). They run concurrently, every query is
awaited until it settles, and a failing query only costs its own results.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import config
from .api import TrialCatalogAdapter
from .models import PatientProfile, SearchCriteria, Trial

logger = logging.getLogger(__name__)


def build_search_criteria(patient: PatientProfile,
                          max_results: int = config.MAX_RESULTS_PER_STRATEGY) -> List[SearchCriteria]:
    """
    Build the search strategies for a patient, in merge-priority order.

    Args:
        patient: Patient profile
        max_results: Result cap per strategy

    Returns:
        Criteria for the condition, medication and genomic strategies that
        apply, or a single broad fallback query when none does.
    """
    diagnosis = patient.primary_diagnosis
    criteria = []

    if diagnosis:
        criteria.append(SearchCriteria(
            strategy="condition",
            condition=diagnosis,
            age=patient.age,
            gender=patient.gender,
            statuses=tuple(config.DEFAULT_STATUSES),
            max_results=max_results,
        ))

    medication = patient.first_active_medication
    if medication:
        criteria.append(SearchCriteria(
            strategy="medication",
            drug_name=medication,
            condition=diagnosis,
            age=patient.age,
            gender=patient.gender,
            statuses=tuple(config.EXPANDED_STATUSES),
            max_results=max_results,
        ))

    if patient.has_genomic_data:
        criteria.append(SearchCriteria(
            strategy="genomic",
            genomic_profile=patient.genomic_profile,
            condition=diagnosis or patient.genomic_profile.tumor_type,
            age=patient.age,
            gender=patient.gender,
            statuses=tuple(config.EXPANDED_STATUSES),
            max_results=max_results,
        ))

    if not criteria:
        criteria.append(SearchCriteria(
            strategy="fallback",
            condition=config.FALLBACK_CONDITION,
            statuses=("RECRUITING",),
            max_results=config.FALLBACK_MAX_RESULTS,
        ))

    return criteria


@dataclass
class MergeOutcome:
    """Deduplicated trials plus a record of which strategies contributed."""
    trials: List[Trial] = field(default_factory=list)
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return bool(self.failed) and bool(self.succeeded)


def deduplicate(batches: List[List[Trial]]) -> List[Trial]:
    """Merge result batches keyed by NCT id; the first batch to produce an id wins."""
    merged: Dict[str, Trial] = {}
    for batch in batches:
        for trial in batch:
            if trial.nct_id not in merged:
                merged[trial.nct_id] = trial
    return list(merged.values())


class ResultMerger:
    """Runs catalog queries concurrently and merges whatever comes back."""

    def __init__(self,
                 adapter: TrialCatalogAdapter,
                 query_timeout: Optional[float] = config.CATALOG_QUERY_TIMEOUT,
                 max_concurrent: int = config.MAX_CONCURRENT_QUERIES):
        self.adapter = adapter
        self.query_timeout = query_timeout
        self.max_concurrent = max_concurrent

    async def _run_strategy(self, semaphore: asyncio.Semaphore, criteria: SearchCriteria) -> List[Trial]:
        async with semaphore:
            logger.debug(f"[{criteria.strategy}] Query started")
            if self.query_timeout:
                trials = await asyncio.wait_for(self.adapter.search(criteria), timeout=self.query_timeout)
            else:
                trials = await self.adapter.search(criteria)
            logger.debug(f"[{criteria.strategy}] Query returned {len(trials)} trials")
            return trials

    async def search_all(self, criteria: List[SearchCriteria]) -> MergeOutcome:
        """Dispatch every criteria, wait for all of them to settle, then merge."""
        semaphore = asyncio.Semaphore(self.max_concurrent)
        logger.info(f"Running {len(criteria)} search strategies: {[c.strategy for c in criteria]}")

        settled = await asyncio.gather(
            *(self._run_strategy(semaphore, c) for c in criteria),
            return_exceptions=True,
        )

        outcome = MergeOutcome()
        batches = []
        for c, result in zip(criteria, settled):
            if isinstance(result, BaseException):
                reason = "timed out" if isinstance(result, asyncio.TimeoutError) else f"{type(result).__name__}: {result}"
                logger.warning(f"[{c.strategy}] Search strategy failed, continuing without it ({reason})")
                outcome.failed[c.strategy] = reason
                continue
            outcome.succeeded.append(c.strategy)
            batches.append(result)

        outcome.trials = deduplicate(batches)
        logger.info(
            f"Merged {sum(len(b) for b in batches)} results into {len(outcome.trials)} unique trials "
            f"({len(outcome.succeeded)} strategies succeeded, {len(outcome.failed)} failed)"
        )
        return outcome

    async def merge(self, patient: PatientProfile) -> MergeOutcome:
        return await self.search_all(build_search_criteria(patient))

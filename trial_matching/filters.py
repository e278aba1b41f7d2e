#!/usr/bin/env python3
"""
Filtering of scored match results.

All active criteria combine with AND semantics. Predicates are pure, so the
order they run in never changes the result; the cheap equality checks simply
go first.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from .models import MatchResult, RECRUITING, canonical_phase


@dataclass(frozen=True)
class FilterCriteria:
    """Immutable set of filters; empty/None fields are inactive."""
    query: str = ""
    condition: str = ""
    phase: str = ""
    status: str = ""
    biomarker: str = ""
    recruiting_only: bool = False
    max_distance_km: Optional[float] = None
    min_enrollment: int = 0

    def is_empty(self) -> bool:
        return not any([
            self.query.strip(),
            self.condition.strip(),
            self.phase.strip(),
            self.status.strip(),
            self.biomarker.strip(),
            self.recruiting_only,
            self.max_distance_km is not None,
            self.min_enrollment > 0,
        ])


Predicate = Callable[[MatchResult], bool]


def _ci_in(needle: str, haystack: str) -> bool:
    return needle.lower() in (haystack or "").lower()


def build_predicates(criteria: FilterCriteria) -> List[Predicate]:
    """Predicates for the active criteria, cheapest first."""
    predicates: List[Predicate] = []

    if criteria.recruiting_only:
        predicates.append(lambda r: r.trial.status == RECRUITING)

    status = criteria.status.strip()
    if status:
        predicates.append(lambda r: r.trial.status == status)

    phase = criteria.phase.strip()
    if phase:
        wanted = canonical_phase(phase) or phase
        predicates.append(lambda r: r.trial.phase == wanted)

    if criteria.max_distance_km is not None:
        limit = criteria.max_distance_km
        # unknown distance is not evidence of ineligibility
        predicates.append(lambda r: r.distance is None or r.distance <= limit)

    if criteria.min_enrollment > 0:
        minimum = criteria.min_enrollment
        predicates.append(lambda r: r.trial.enrollment.current >= minimum)

    condition = criteria.condition.strip()
    if condition:
        predicates.append(lambda r: _ci_in(condition, r.trial.condition))

    query = criteria.query.strip()
    if query:
        predicates.append(lambda r: _ci_in(query, r.trial.title) or _ci_in(query, r.trial.condition))

    biomarker = criteria.biomarker.strip()
    if biomarker:
        predicates.append(lambda r: any(_ci_in(biomarker, b) for b in r.trial.biomarkers))

    return predicates


def filter_results(results: Iterable[MatchResult], criteria: Optional[FilterCriteria] = None) -> List[MatchResult]:
    """
    Keep the results that satisfy every active filter.

    Args:
        results: Scored match results
        criteria: Filter criteria; None or empty keeps everything

    Returns:
        New list with the surviving results in input order
    """
    results = list(results)
    if criteria is None or criteria.is_empty():
        return results

    predicates = build_predicates(criteria)
    return [r for r in results if all(p(r) for p in predicates)]

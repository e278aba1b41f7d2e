#!/usr/bin/env python3
"""
Ordering of match results.

Every ordering goes through ``sorted``, which is stable: results with equal
keys keep their relative input order, so the same input always renders the
same list.
"""

import logging
from typing import Iterable, List, Union

from .models import MatchResult, SortKey

logger = logging.getLogger(__name__)


def _distance_key(result: MatchResult):
    # unknown distances go after every known one
    return (result.distance is None, result.distance if result.distance is not None else 0.0)


def _relevance_key(result: MatchResult):
    return -result.score


def _enrollment_key(result: MatchResult):
    return -result.trial.enrollment.current


def _phase_key(result: MatchResult):
    return -result.trial.phase_ordinal


_SORT_KEYS = {
    SortKey.RELEVANCE: _relevance_key,
    SortKey.DISTANCE: _distance_key,
    SortKey.ENROLLMENT: _enrollment_key,
    SortKey.PHASE: _phase_key,
}


def parse_sort_key(key: Union[str, SortKey]) -> SortKey:
    try:
        return SortKey(key)
    except ValueError:
        raise ValueError(f"Unknown sort key {key!r}; expected one of {[k.value for k in SortKey]}") from None


def sort_results(results: Iterable[MatchResult], key: Union[str, SortKey] = SortKey.RELEVANCE) -> List[MatchResult]:
    """
    Order results by the selected key.

    relevance: score, highest first. When every score is 0 there is nothing to
        rank on, so distance ordering is used if any distance is known and
        enrollment ordering otherwise.
    distance: nearest first, unknown distances last.
    enrollment: current enrollment, highest first.
    phase: Phase 4 first down to Phase 1, unrecognized phases last.
    """
    key = parse_sort_key(key)
    results = list(results)

    if key is SortKey.RELEVANCE and results and all(r.score == 0 for r in results):
        key = SortKey.DISTANCE if any(r.distance is not None for r in results) else SortKey.ENROLLMENT
        logger.debug(f"All relevance scores are 0, ordering by {key.value} instead")

    return sorted(results, key=_SORT_KEYS[key])

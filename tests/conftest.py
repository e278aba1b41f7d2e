from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

import pytest

from trial_matching.models import (
    AgeRange,
    Coordinate,
    Enrollment,
    MatchResult,
    PatientProfile,
    SearchCriteria,
    Trial,
    TrialLocation,
)

BERN = Coordinate(46.9479, 7.4474)
ZURICH = Coordinate(47.3769, 8.5417)


def make_location(facility: str = "University Hospital", coordinate: Optional[Coordinate] = BERN, **kwargs) -> TrialLocation:
    return TrialLocation(facility=facility, coordinate=coordinate, **kwargs)


def make_trial(nct_id: str = "NCT001", **overrides) -> Trial:
    fields = dict(
        nct_id=nct_id,
        title=f"Study {nct_id}",
        condition="Metastatic Breast Cancer",
        phase="Phase 2",
        status="Recruiting",
        sponsor="Sponsor Inc.",
        locations=(make_location(),),
        biomarkers=("HER2+", "HR+"),
        age_range=AgeRange(18, 99),
        enrollment=Enrollment(target=100, current=10),
    )
    fields.update(overrides)
    return Trial(**fields)


def make_result(nct_id: str = "NCT001", score: int = 0, distance: Optional[float] = None, **trial_overrides) -> MatchResult:
    return MatchResult(trial=make_trial(nct_id, **trial_overrides), score=score, distance=distance)


class FakeCatalog:
    """Catalog adapter returning canned trials per strategy.

    A strategy mapped to an exception instance raises it; ``delays`` lets a
    strategy sleep before answering.
    """

    def __init__(self, responses: Dict[str, object], delays: Optional[Dict[str, float]] = None):
        self.responses = responses
        self.delays = delays or {}
        self.calls: List[SearchCriteria] = []

    async def search(self, criteria: SearchCriteria) -> List[Trial]:
        self.calls.append(criteria)
        delay = self.delays.get(criteria.strategy)
        if delay:
            await asyncio.sleep(delay)
        response = self.responses.get(criteria.strategy, [])
        if isinstance(response, BaseException):
            raise response
        return list(response)


@pytest.fixture
def breast_cancer_patient() -> PatientProfile:
    return PatientProfile(patient_id="P1", cancer_type="breast cancer", biomarkers=("HER2+",), age=55)


@pytest.fixture
def example_trial() -> Trial:
    return make_trial(
        "NCT001",
        condition="Metastatic Breast Cancer",
        biomarkers=("HER2+", "HR+"),
        age_range=AgeRange(18, 99),
        status="Recruiting",
        phase="Phase 2",
    )

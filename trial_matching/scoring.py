#!/usr/bin/env python3
"""
Rule-based trial scoring.

Two numbers are produced per trial and kept apart:

* ``score`` (0-100): additive relevance used for ranking. Every point is
  attributable to a named reason in ``match_reasons``.
* ``eligibility_score`` (0-100): hard inclusion/exclusion check used to warn
  about trials the patient is unlikely to qualify for. Any violated hard
  criterion forces it to 0.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

from .models import PatientProfile, RECRUITING, Trial, phase_ordinal

# Relevance weights
CONDITION_MATCH_POINTS = 30
BIOMARKER_MATCH_POINTS = 15
AGE_ELIGIBLE_POINTS = 20
RECRUITING_POINTS = 15
PHASE_POINTS = {1: 5, 2: 10, 3: 15, 4: 8}
MAX_SCORE = 100

# Eligibility weights
ELIGIBILITY_BASE = 50
ELIGIBILITY_CONDITION_POINTS = 30
ELIGIBILITY_AGE_POINTS = 20
ELIGIBILITY_SEX_POINTS = 10
ELIGIBILITY_INTERVENTION_POINTS = 20
ELIGIBILITY_RECRUITING_POINTS = 10


@dataclass(frozen=True)
class ScoreBreakdown:
    score: int
    reasons: Tuple[str, ...] = ()
    contributions: Tuple[Tuple[str, int], ...] = ()

    @property
    def raw_total(self) -> int:
        return sum(points for _, points in self.contributions)


@dataclass(frozen=True)
class EligibilityAssessment:
    score: int
    flags: Tuple[str, ...] = field(default=())


def _contains(a: str, b: str) -> bool:
    """Case-insensitive substring match in either direction."""
    a, b = a.strip().lower(), b.strip().lower()
    if not a or not b:
        return False
    return a in b or b in a


def condition_matches(trial: Trial, patient: PatientProfile) -> bool:
    return _contains(patient.primary_diagnosis, trial.condition)


def matching_biomarkers(trial: Trial, patient: PatientProfile) -> List[str]:
    """Patient biomarkers that appear within any of the trial's biomarkers."""
    trial_markers = [m.lower() for m in trial.biomarkers if m]
    return [
        marker for marker in patient.biomarkers
        if any(marker.lower() in tm for tm in trial_markers)
    ]


def score_trial(trial: Trial, patient: PatientProfile) -> ScoreBreakdown:
    """
    Compute the relevance score of a trial for a patient.

    Args:
        trial: Normalized trial
        patient: Patient profile

    Returns:
        ScoreBreakdown with the clamped score and the reasons behind it
    """
    if not patient.has_clinical_attributes():
        return ScoreBreakdown(score=0)

    contributions: List[Tuple[str, int]] = []

    if condition_matches(trial, patient):
        contributions.append((f"Condition match: {patient.primary_diagnosis}", CONDITION_MATCH_POINTS))

    for marker in matching_biomarkers(trial, patient):
        contributions.append((f"Biomarker match: {marker}", BIOMARKER_MATCH_POINTS))

    if patient.age is not None and trial.age_range.contains(patient.age):
        contributions.append(("Age eligible", AGE_ELIGIBLE_POINTS))

    if trial.status == RECRUITING:
        contributions.append(("Currently recruiting", RECRUITING_POINTS))

    phase_points = PHASE_POINTS.get(phase_ordinal(trial.phase), 0)
    if phase_points:
        contributions.append((f"Phase bonus: {trial.phase}", phase_points))

    raw = sum(points for _, points in contributions)
    return ScoreBreakdown(
        score=min(raw, MAX_SCORE),
        reasons=tuple(reason for reason, _ in contributions),
        contributions=tuple(contributions),
    )


def hard_criteria_violations(trial: Trial, patient: PatientProfile) -> List[str]:
    """Hard inclusion/exclusion criteria the patient fails."""
    flags = []

    if patient.age is not None and not trial.age_range.contains(patient.age):
        flags.append(
            f"Age {patient.age:g} outside trial range "
            f"{trial.age_range.min_age:g}-{trial.age_range.max_age:g}"
        )

    gender = patient.gender.strip().upper()
    if gender in ("MALE", "FEMALE") and trial.sex in ("MALE", "FEMALE") and gender != trial.sex:
        flags.append(f"Trial enrolls {trial.sex.lower()} patients only")

    if (patient.performance_status is not None and trial.max_ecog is not None
            and patient.performance_status > trial.max_ecog):
        flags.append(f"ECOG {patient.performance_status} exceeds trial maximum of {trial.max_ecog}")

    for comorbidity in patient.comorbidities:
        needle = comorbidity.strip().lower()
        if needle and any(needle in criterion.lower() for criterion in trial.exclusion_criteria):
            flags.append(f"Exclusion criterion: {comorbidity}")

    return flags


def eligibility_score(trial: Trial, patient: PatientProfile) -> EligibilityAssessment:
    """Hard-criteria eligibility, 0 whenever a hard criterion is violated."""
    flags = hard_criteria_violations(trial, patient)
    if flags:
        return EligibilityAssessment(score=0, flags=tuple(flags))

    score = ELIGIBILITY_BASE
    if condition_matches(trial, patient):
        score += ELIGIBILITY_CONDITION_POINTS
    if patient.age is not None:
        score += ELIGIBILITY_AGE_POINTS
    if patient.gender and (trial.sex == "ALL" or trial.sex == patient.gender.strip().upper()):
        score += ELIGIBILITY_SEX_POINTS
    treatments = [m.name for m in patient.medications if m.name] + list(patient.prior_treatments)
    if any(_contains(t, i) for t in treatments for i in trial.interventions):
        score += ELIGIBILITY_INTERVENTION_POINTS
    if trial.status == RECRUITING:
        score += ELIGIBILITY_RECRUITING_POINTS

    return EligibilityAssessment(score=min(score, MAX_SCORE))

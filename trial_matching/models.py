#!/usr/bin/env python3
"""
Data models for the trial matching engine.

Trials, sites and match results are frozen dataclasses: every pipeline stage
returns an annotated copy (``dataclasses.replace``) instead of mutating its
input, so concurrent searches never share mutable state.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class TrialValidationError(ValueError):
    """Raised when an upstream trial record is missing required fields."""


# Canonical recruitment statuses as shown to users
RECRUITING = "Recruiting"

STATUS_LABELS = {
    "RECRUITING": RECRUITING,
    "NOT_YET_RECRUITING": "Not yet recruiting",
    "ACTIVE_NOT_RECRUITING": "Active, not recruiting",
    "ENROLLING_BY_INVITATION": "Enrolling by invitation",
    "COMPLETED": "Completed",
    "SUSPENDED": "Suspended",
    "TERMINATED": "Terminated",
    "WITHDRAWN": "Withdrawn",
    "UNKNOWN": "Unknown",
}

PHASE_ORDINALS = {"Phase 1": 1, "Phase 2": 2, "Phase 3": 3, "Phase 4": 4}

_ROMAN = {"i": 1, "ii": 2, "iii": 3, "iv": 4}
_PHASE_RE = re.compile(r"^(?:phase)?[\s_]*(iv|i{1,3}|[1-4])$", re.IGNORECASE)


def canonical_phase(phase: Optional[str]) -> Optional[str]:
    """Map "PHASE2", "Phase II", "phase 2" or "2" to "Phase 2".

    Returns None for anything that is not one of the four numbered phases
    (e.g. "EARLY_PHASE1", "NA", "Phase 1/Phase 2").
    """
    if not phase:
        return None
    match = _PHASE_RE.match(str(phase).strip())
    if not match:
        return None
    token = match.group(1).lower()
    number = _ROMAN.get(token) or int(token)
    return f"Phase {number}"


def phase_ordinal(phase: Optional[str]) -> int:
    """Ordinal 1-4 for a trial phase, 0 when unrecognized."""
    canonical = canonical_phase(phase)
    return PHASE_ORDINALS.get(canonical, 0) if canonical else 0


def canonical_status(status: Optional[str]) -> str:
    """Map an API status enum ("ACTIVE_NOT_RECRUITING") to its display label."""
    if not status:
        return STATUS_LABELS["UNKNOWN"]
    status = str(status).strip()
    key = status.upper().replace(",", "").replace(" ", "_").replace("-", "_")
    return STATUS_LABELS.get(key, status)


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float

    def __post_init__(self):
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lon <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lon}")


@dataclass(frozen=True)
class SiteContact:
    name: str = ""
    phone: str = ""
    email: str = ""


@dataclass(frozen=True)
class TrialLocation:
    """A single recruiting site of a trial."""
    facility: str
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""
    coordinate: Optional[Coordinate] = None
    status: str = ""
    contact: Optional[SiteContact] = None
    distance: Optional[float] = None  # km from the patient, None when unknown

    def display_name(self) -> str:
        parts = [self.facility, self.city, self.state, self.country]
        return ", ".join(p for p in parts if p)


@dataclass(frozen=True)
class AgeRange:
    min_age: float = 0
    max_age: float = 120

    def contains(self, age: float) -> bool:
        return self.min_age <= age <= self.max_age


@dataclass(frozen=True)
class Enrollment:
    target: int = 0
    current: int = 0


@dataclass(frozen=True)
class Trial:
    """A clinical trial normalized from a catalog record."""
    nct_id: str
    title: str
    condition: str
    phase: str
    status: str
    sponsor: str
    locations: Tuple[TrialLocation, ...]
    biomarkers: Tuple[str, ...] = ()
    age_range: AgeRange = field(default_factory=AgeRange)
    enrollment: Enrollment = field(default_factory=Enrollment)
    interventions: Tuple[str, ...] = ()
    sex: str = "ALL"
    inclusion_criteria: Tuple[str, ...] = ()
    exclusion_criteria: Tuple[str, ...] = ()
    max_ecog: Optional[int] = None
    brief_summary: str = ""
    url: str = ""
    distance: Optional[float] = None  # nearest site, km

    @property
    def phase_ordinal(self) -> int:
        return phase_ordinal(self.phase)


@dataclass(frozen=True)
class Medication:
    name: str
    active: bool = True


@dataclass(frozen=True)
class GenomicProfile:
    mutations: Tuple[str, ...] = ()
    biomarkers: Tuple[str, ...] = ()
    tumor_type: str = ""

    def is_empty(self) -> bool:
        return not (self.mutations or self.biomarkers or self.tumor_type)

    def search_terms(self) -> List[str]:
        terms = list(self.mutations) + list(self.biomarkers)
        if self.tumor_type:
            terms.append(self.tumor_type)
        return [t for t in terms if t]


@dataclass(frozen=True)
class PatientProfile:
    """Clinical attributes used to search for and score trials.

    Every attribute is optional; a profile with no clinical attributes is the
    anonymous browsing case and is handled by the fallback search.
    """
    patient_id: str = ""
    age: Optional[float] = None
    gender: str = ""
    cancer_type: str = ""
    diagnoses: Tuple[str, ...] = ()
    stage: str = ""
    biomarkers: Tuple[str, ...] = ()
    prior_treatments: Tuple[str, ...] = ()
    performance_status: Optional[int] = None  # ECOG 0-4
    comorbidities: Tuple[str, ...] = ()
    medications: Tuple[Medication, ...] = ()
    genomic_profile: Optional[GenomicProfile] = None
    location: Optional[Coordinate] = None
    address: str = ""

    def __post_init__(self):
        if self.performance_status is not None and not 0 <= self.performance_status <= 4:
            raise ValueError(f"ECOG performance status must be 0-4, got {self.performance_status}")
        if self.age is not None and self.age < 0:
            raise ValueError(f"Age cannot be negative: {self.age}")
        # biomarkers behave as a set; first spelling wins
        seen = set()
        unique = []
        for marker in self.biomarkers:
            key = marker.strip().lower()
            if key and key not in seen:
                seen.add(key)
                unique.append(marker.strip())
        object.__setattr__(self, "biomarkers", tuple(unique))

    @property
    def primary_diagnosis(self) -> str:
        if self.cancer_type:
            return self.cancer_type
        return next((d for d in self.diagnoses if d), "")

    @property
    def first_active_medication(self) -> str:
        return next((m.name for m in self.medications if m.active and m.name), "")

    @property
    def has_genomic_data(self) -> bool:
        return self.genomic_profile is not None and not self.genomic_profile.is_empty()

    def has_clinical_attributes(self) -> bool:
        """True when at least one attribute usable for scoring is present.

        Location is the user's position rather than a clinical attribute and
        does not count.
        """
        return any([
            self.age is not None,
            self.gender,
            self.cancer_type,
            any(self.diagnoses),
            self.stage,
            self.biomarkers,
            self.prior_treatments,
            self.performance_status is not None,
            self.comorbidities,
            self.medications,
            self.has_genomic_data,
        ])


@dataclass(frozen=True)
class SearchCriteria:
    """One catalog query issued by a search strategy."""
    strategy: str
    condition: str = ""
    drug_name: str = ""
    genomic_profile: Optional[GenomicProfile] = None
    age: Optional[float] = None
    gender: str = ""
    statuses: Tuple[str, ...] = ()
    max_results: int = 100


@dataclass(frozen=True)
class MatchResult:
    """A trial annotated with relevance score, eligibility and distance."""
    trial: Trial
    score: int = 0
    match_reasons: Tuple[str, ...] = ()
    distance: Optional[float] = None
    eligibility_score: Optional[int] = None
    eligibility_flags: Tuple[str, ...] = ()

    @property
    def nct_id(self) -> str:
        return self.trial.nct_id

    @property
    def is_eligible(self) -> bool:
        return self.eligibility_score is not None and self.eligibility_score >= 70

    @property
    def confidence_level(self) -> str:
        if self.eligibility_score is None:
            return "unknown"
        if self.eligibility_score >= 90:
            return "high"
        if self.eligibility_score >= 70:
            return "medium"
        return "low"

    def to_dict(self) -> Dict:
        trial = self.trial
        return {
            "nct_id": trial.nct_id,
            "title": trial.title,
            "condition": trial.condition,
            "phase": trial.phase,
            "status": trial.status,
            "sponsor": trial.sponsor,
            "biomarkers": list(trial.biomarkers),
            "enrollment": {"target": trial.enrollment.target, "current": trial.enrollment.current},
            "score": self.score,
            "match_reasons": list(self.match_reasons),
            "eligibility_score": self.eligibility_score,
            "eligibility_flags": list(self.eligibility_flags),
            "confidence_level": self.confidence_level,
            "distance_km": round(self.distance, 1) if self.distance is not None else None,
            "url": trial.url,
        }


class SortKey(str, Enum):
    RELEVANCE = "relevance"
    DISTANCE = "distance"
    ENROLLMENT = "enrollment"
    PHASE = "phase"

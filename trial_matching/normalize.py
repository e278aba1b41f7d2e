#!/usr/bin/env python3
"""
Normalization of raw catalog records into Trial objects.

Two record shapes are accepted: ClinicalTrials.gov API v2 studies
(``{"protocolSection": {...}}``) and flat trial dictionaries as served by
internal catalogs. Records missing required fields are rejected with
TrialValidationError so that scoring only ever sees well-formed trials.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from .models import (
    AgeRange,
    Coordinate,
    Enrollment,
    SiteContact,
    Trial,
    TrialLocation,
    TrialValidationError,
    canonical_phase,
    canonical_status,
)

TRIAL_URL = "https://clinicaltrials.gov/study/{nct_id}"

_AGE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(year|month|week|day)s?\s*$", re.IGNORECASE)
_AGE_DIVISORS = {"year": 1, "month": 12, "week": 52, "day": 365}

# "ECOG performance status 0-1", "ECOG PS <= 2", "ECOG of 0, 1 or 2"
_ECOG_RANGE_RE = re.compile(r"ECOG[^.\n]{0,40}?\b([0-4])\s*(?:-|–|to)\s*([0-4])\b", re.IGNORECASE)
_ECOG_MAX_RE = re.compile(r"ECOG[^.\n]{0,40}?(?:<=|≤|<|of|\bat most\b)\s*([0-4])\b", re.IGNORECASE)
_ECOG_LIST_RE = re.compile(r"ECOG[^.\n]{0,40}?\b([0-4])(?:\s*,\s*[0-4])*\s*,?\s*or\s*([0-4])\b", re.IGNORECASE)


def parse_age(value: Any) -> Optional[float]:
    """Parse "18 Years" / "6 Months" / 18 into years; None when unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _AGE_RE.match(str(value))
    if not match:
        return None
    return float(match.group(1)) / _AGE_DIVISORS[match.group(2).lower()]


def parse_max_ecog(criteria_text: str) -> Optional[int]:
    """Highest ECOG performance status a trial admits, if stated."""
    if not criteria_text:
        return None
    for pattern in (_ECOG_RANGE_RE, _ECOG_LIST_RE):
        match = pattern.search(criteria_text)
        if match:
            return int(match.group(2))
    match = _ECOG_MAX_RE.search(criteria_text)
    if match:
        return int(match.group(1))
    return None


def split_eligibility_criteria(text: str) -> Tuple[List[str], List[str]]:
    """Split the free-text eligibility block into inclusion and exclusion bullets."""
    inclusion, exclusion = [], []
    current = inclusion
    for line in (text or "").splitlines():
        line = line.strip().strip("-•*").strip()
        if not line:
            continue
        lower = line.lower()
        if lower.startswith("inclusion criteria"):
            current = inclusion
            continue
        if lower.startswith("exclusion criteria"):
            current = exclusion
            continue
        current.append(line)
    return inclusion, exclusion



def _text(value: Any) -> str:
    """Upstream text field as a stripped string; None becomes ""."""
    if value is None:
        return ""
    return str(value).strip()


def _texts(values: Any) -> Tuple[str, ...]:
    if not isinstance(values, (list, tuple)):
        return ()
    return tuple(t for t in (_text(v) for v in values) if t)


def _mapping(value: Any) -> Dict:
    return value if isinstance(value, dict) else {}


def _mappings(values: Any) -> List[Dict]:
    if not isinstance(values, (list, tuple)):
        return []
    return [v for v in values if isinstance(v, dict)]


def _safe_int(x) -> int:
    try:
        return int(x) if x is not None else 0
    except (TypeError, ValueError, OverflowError):
        return 0


def _coordinate(lat, lon) -> Optional[Coordinate]:
    if lat is None or lon is None:
        return None
    try:
        return Coordinate(float(lat), float(lon))
    except (TypeError, ValueError):
        return None


def _contact(value: Any) -> Optional[SiteContact]:
    if not isinstance(value, dict):
        return None
    return SiteContact(
        name=_text(value.get("name")),
        phone=_text(value.get("phone")),
        email=_text(value.get("email")),
    )


def _site_status(value: Any) -> str:
    status = _text(value)
    return canonical_status(status) if status else ""


def _age_range(min_value: Any, max_value: Any) -> AgeRange:
    min_age, max_age = parse_age(min_value), parse_age(max_value)
    return AgeRange(
        min_age=min_age if min_age is not None else 0,
        max_age=max_age if max_age is not None else 120,
    )


def _location_from_v2(loc: Dict) -> TrialLocation:
    geo = _mapping(loc.get("geoPoint"))
    contacts = _mappings(loc.get("contacts"))
    return TrialLocation(
        facility=_text(loc.get("facility")) or "Unknown facility",
        city=_text(loc.get("city")),
        state=_text(loc.get("state")),
        zip_code=_text(loc.get("zip")),
        country=_text(loc.get("country")),
        coordinate=_coordinate(geo.get("lat"), geo.get("lon")),
        status=_site_status(loc.get("status")),
        contact=_contact(contacts[0]) if contacts else None,
    )


def _location_from_flat(loc: Dict) -> TrialLocation:
    return TrialLocation(
        facility=_text(loc.get("name")) or _text(loc.get("facility")) or "Unknown facility",
        address=_text(loc.get("address")),
        city=_text(loc.get("city")),
        state=_text(loc.get("state")),
        zip_code=_text(loc.get("zip")),
        country=_text(loc.get("country")),
        coordinate=_coordinate(loc.get("lat"), loc.get("lon")),
        status=_site_status(loc.get("status")),
        contact=_contact(loc.get("contact")),
    )


def _require(nct_id: str, title: str, locations: List[TrialLocation]):
    if not nct_id:
        raise TrialValidationError("Trial record has no NCT id")
    if not title:
        raise TrialValidationError(f"Trial {nct_id} has no title")
    if not locations:
        raise TrialValidationError(f"Trial {nct_id} has no locations")


def _phase(value: Any) -> str:
    raw = _text(value) or "Not specified"
    return canonical_phase(raw) or raw


def _from_v2(study: Dict) -> Trial:
    protocol = _mapping(study.get("protocolSection"))
    identification = _mapping(protocol.get("identificationModule"))
    status_module = _mapping(protocol.get("statusModule"))
    design_module = _mapping(protocol.get("designModule"))
    conditions_module = _mapping(protocol.get("conditionsModule"))
    interventions_module = _mapping(protocol.get("armsInterventionsModule"))
    eligibility_module = _mapping(protocol.get("eligibilityModule"))
    sponsor_module = _mapping(protocol.get("sponsorCollaboratorsModule"))
    contacts_module = _mapping(protocol.get("contactsLocationsModule"))
    description_module = _mapping(protocol.get("descriptionModule"))

    nct_id = _text(identification.get("nctId"))
    title = _text(identification.get("briefTitle")) or _text(identification.get("officialTitle"))
    locations = [_location_from_v2(loc) for loc in _mappings(contacts_module.get("locations"))]
    _require(nct_id, title, locations)

    phases = _texts(design_module.get("phases"))

    enrollment_info = _mapping(design_module.get("enrollmentInfo"))
    count = _safe_int(enrollment_info.get("count"))
    # the registry only reports actual enrollment once recruitment has closed
    current = count if _text(enrollment_info.get("type")).upper() == "ACTUAL" else 0

    criteria_text = _text(eligibility_module.get("eligibilityCriteria"))
    inclusion, exclusion = split_eligibility_criteria(criteria_text)

    return Trial(
        nct_id=nct_id,
        title=title,
        condition="; ".join(_texts(conditions_module.get("conditions"))),
        phase=_phase(phases[0] if phases else None),
        status=canonical_status(_text(status_module.get("overallStatus"))),
        sponsor=_text(_mapping(sponsor_module.get("leadSponsor")).get("name")),
        locations=tuple(locations),
        biomarkers=_texts(conditions_module.get("keywords")),
        age_range=_age_range(eligibility_module.get("minimumAge"), eligibility_module.get("maximumAge")),
        enrollment=Enrollment(target=count, current=current),
        interventions=tuple(
            name for name in (_text(i.get("name")) for i in _mappings(interventions_module.get("interventions")))
            if name
        ),
        sex=_text(eligibility_module.get("sex")).upper() or "ALL",
        inclusion_criteria=tuple(inclusion),
        exclusion_criteria=tuple(exclusion),
        max_ecog=parse_max_ecog(criteria_text),
        brief_summary=_text(description_module.get("briefSummary")),
        url=TRIAL_URL.format(nct_id=nct_id),
    )


def _from_flat(record: Dict) -> Trial:
    nct_id = _text(record.get("nct_id")) or _text(record.get("nctId"))
    title = _text(record.get("title"))
    locations = [_location_from_flat(loc) for loc in _mappings(record.get("locations"))]
    _require(nct_id, title, locations)

    age_range = _mapping(record.get("age_range")) or _mapping(record.get("ageRange"))
    enrollment = _mapping(record.get("enrollment"))
    target = _safe_int(record.get("enrollment_target", enrollment.get("target")))
    current = _safe_int(record.get("enrollment_current", enrollment.get("current")))

    inclusion = _texts(record.get("inclusion_criteria"))
    exclusion = _texts(record.get("exclusion_criteria"))

    return Trial(
        nct_id=nct_id,
        title=title,
        condition=_text(record.get("condition")),
        phase=_phase(record.get("phase")),
        status=canonical_status(_text(record.get("status"))),
        sponsor=_text(record.get("sponsor")),
        locations=tuple(locations),
        biomarkers=_texts(record.get("biomarkers")),
        age_range=_age_range(age_range.get("min"), age_range.get("max")),
        enrollment=Enrollment(target=target, current=current),
        interventions=_texts(record.get("interventions")),
        sex=_text(record.get("sex")).upper() or "ALL",
        inclusion_criteria=inclusion,
        exclusion_criteria=exclusion,
        max_ecog=parse_max_ecog(_text(record.get("eligibility_criteria")) or "\n".join(inclusion)),
        brief_summary=_text(record.get("brief_summary")),
        url=_text(record.get("url")) or TRIAL_URL.format(nct_id=nct_id),
    )


def normalize_trial(record: Dict) -> Trial:
    """Convert one raw catalog record into a Trial.

    Text fields are coerced to strings and missing or wrongly typed optional
    fields fall back to their defaults.

    Raises:
        TrialValidationError: if the record lacks an NCT id, a title or
            at least one location, or cannot be read at all.
    """
    if not isinstance(record, dict):
        raise TrialValidationError(f"Trial record must be a mapping, got {type(record).__name__}")
    try:
        if "protocolSection" in record:
            return _from_v2(record)
        return _from_flat(record)
    except TrialValidationError:
        raise
    except (TypeError, AttributeError, ValueError) as e:
        raise TrialValidationError(f"Unreadable trial record: {type(e).__name__}: {e}") from e

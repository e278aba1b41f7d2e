#!/usr/bin/env python3
"""
Report generation for clinical trials matching.

This module handles the generation of formatted reports and summaries.
"""

from datetime import datetime
from typing import Dict, List, Optional

import config
from .filters import FilterCriteria
from .models import MatchResult, PatientProfile, RECRUITING


def summarize_results(results: List[MatchResult], max_distance_km: Optional[float] = None) -> Dict:
    """Headline counts for a ranked result list."""
    def sites(predicate):
        return sum(len(r.trial.locations) for r in results if predicate(r.trial.status))

    summary = {
        "total": len(results),
        "high_confidence": len([r for r in results if r.score > config.HIGH_CONFIDENCE_SCORE]),
        "eligible": len([r for r in results if r.is_eligible]),
        "with_distance": len([r for r in results if r.distance is not None]),
        "recruiting_sites": sites(lambda s: s == RECRUITING),
        "active_sites": sites(lambda s: s == "Active, not recruiting"),
        "other_sites": sites(lambda s: s not in (RECRUITING, "Active, not recruiting")),
    }
    if max_distance_km is not None:
        summary["within_max_distance"] = len(
            [r for r in results if r.distance is not None and r.distance <= max_distance_km]
        )
    return summary


def generate_match_report(patient: PatientProfile,
                          results: List[MatchResult],
                          filters: Optional[FilterCriteria] = None,
                          failed_strategies: Optional[Dict[str, str]] = None) -> str:
    """Generate a formatted report of ranked trials for a patient."""

    report = []
    report.append("="*80)
    report.append("CLINICAL TRIALS MATCHING REPORT")
    report.append("="*80)

    # Patient information
    report.append(f"\nPatient ID: {patient.patient_id or 'Unknown'}")
    report.append(f"Diagnosis: {patient.primary_diagnosis or 'Not specified'}")
    if patient.biomarkers:
        report.append(f"Biomarkers: {', '.join(patient.biomarkers)}")
    if patient.age is not None:
        report.append(f"Age: {patient.age:g}")
    report.append(f"Report generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    if failed_strategies:
        report.append("\nWarning: some searches failed and results may be incomplete:")
        for strategy, reason in failed_strategies.items():
            report.append(f"  - {strategy}: {reason}")

    max_distance = filters.max_distance_km if filters else None
    summary = summarize_results(results, max_distance)
    report.append(f"\nFound {summary['total']} clinical trials "
                  f"({summary['high_confidence']} high-confidence matches, {summary['eligible']} likely eligible)")
    if max_distance is not None:
        report.append(f"{summary['within_max_distance']} within {max_distance:g} km")
    report.append(f"Trials with a known distance: {summary['with_distance']}")

    report.append("\nSite status distribution:")
    report.append(f"  Recruiting: {summary['recruiting_sites']}")
    report.append(f"  Active, not recruiting: {summary['active_sites']}")
    report.append(f"  Other: {summary['other_sites']}")
    report.append("-"*80)

    for i, result in enumerate(results, 1):
        trial = result.trial
        report.append(f"\n{i}. {trial.title}")
        report.append(f"   NCT ID: {trial.nct_id}")
        report.append(f"   Status: {trial.status}")
        report.append(f"   Phase: {trial.phase}")
        report.append(f"   Match Score: {result.score}/100")
        if result.match_reasons:
            report.append(f"   Match Reasons: {'; '.join(result.match_reasons)}")
        report.append(f"   Eligibility Score: {result.eligibility_score} ({result.confidence_level})")
        for flag in result.eligibility_flags:
            report.append(f"     ! {flag}")
        report.append(f"   Condition: {trial.condition}")
        report.append(f"   Sponsor: {trial.sponsor}")
        report.append(f"   Enrollment: {trial.enrollment.current}/{trial.enrollment.target}")
        if result.distance is not None:
            report.append(f"   Nearest Site: {result.distance:.1f} km")

        shown = config.MAX_LOCATIONS_TO_DISPLAY_PER_STUDY
        locations = sorted(
            trial.locations,
            key=lambda loc: (loc.distance is None, loc.distance or 0.0),
        )
        names = [
            f"{loc.display_name()} ({loc.distance:.0f} km)" if loc.distance is not None else loc.display_name()
            for loc in locations[:shown]
        ]
        report.append(f"   Locations: {'; '.join(names)}")
        if len(locations) > shown:
            report.append(f"              ... and {len(locations) - shown} more locations")
        report.append(f"   URL: {trial.url}")

        # Add brief summary if available
        if trial.brief_summary:
            summary_text = trial.brief_summary[:300] + "..." if len(trial.brief_summary) > 300 else trial.brief_summary
            report.append(f"   Summary: {summary_text}")

        report.append("-"*40)

    return "\n".join(report)


def generate_summary_report(all_results: List[Dict], output_dir, summary_file) -> str:
    """Generate an overall summary report."""
    total_matches = sum(result["matches_found"] for result in all_results)
    avg_matches = total_matches / len(all_results) if all_results else 0

    all_scores = [match["score"] for result in all_results for match in result["matches"]]
    avg_score = sum(all_scores) / len(all_scores) if all_scores else 0
    high_relevance_count = len([s for s in all_scores if s > config.HIGH_CONFIDENCE_SCORE])
    degraded = [result["patient_id"] for result in all_results if result.get("failed_strategies")]

    summary_report = [
        "="*80,
        "CLINICAL TRIALS MATCHING SUMMARY",
        "="*80,
        f"Total patients processed: {len(all_results)}",
        f"Total trials matched: {total_matches}",
        f"Average trials per patient: {avg_matches:.1f}",
        f"Average match score: {avg_score:.1f}",
        f"High-confidence matches (>{config.HIGH_CONFIDENCE_SCORE}): {high_relevance_count}",
        f"Patients with incomplete searches: {len(degraded)}",
        f"Results saved to: {output_dir}",
        f"Summary data: {summary_file}",
        "="*80,
    ]

    return "\n".join(summary_report)

#!/usr/bin/env python3
"""
Main script for the Clinical Trials Matching System

This script matches every patient in a spreadsheet against ClinicalTrials.gov
using the trial_matching package and writes one report per patient plus a
JSON summary.
"""

import argparse
import asyncio
import json
import logging
from dataclasses import replace
from pathlib import Path

import config
from data_loader import load_patient_profiles
from logging_setup import setup_logging
from trial_matching import (
    FilterCriteria,
    MatchingEngine,
    PatientLocator,
    SortKey,
    check_api_connection,
    generate_match_report,
    generate_summary_report,
)

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Match patients with clinical trials")
    parser.add_argument("patients", help="Excel or CSV file with one patient per row")
    parser.add_argument("--output-dir", default=config.REPORT_DIR, help="Directory for reports")
    parser.add_argument("--sort", choices=[k.value for k in SortKey], default=SortKey.RELEVANCE.value)
    parser.add_argument("--query", default="", help="Free-text filter on title/condition")
    parser.add_argument("--phase", default="", help='Phase filter, e.g. "Phase 2"')
    parser.add_argument("--status", default="", help='Status filter, e.g. "Recruiting"')
    parser.add_argument("--biomarker", default="", help="Biomarker filter")
    parser.add_argument("--recruiting-only", action="store_true")
    parser.add_argument("--max-distance", type=float, default=None, help="Maximum distance in km")
    parser.add_argument("--min-enrollment", type=int, default=0)
    parser.add_argument("--geocode", action="store_true", help="Geocode patient addresses without coordinates")
    parser.add_argument("--skip-api-check", action="store_true")
    parser.add_argument("--log-level", default=None)
    return parser.parse_args(argv)


async def run(args) -> int:
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    patients = load_patient_profiles(args.patients)
    if not patients:
        logger.error("No patient data loaded")
        return 1

    filters = FilterCriteria(
        query=args.query,
        phase=args.phase,
        status=args.status,
        biomarker=args.biomarker,
        recruiting_only=args.recruiting_only,
        max_distance_km=args.max_distance,
        min_enrollment=args.min_enrollment,
    )
    engine = MatchingEngine()
    locator = PatientLocator() if args.geocode else None

    logger.info(f"Processing {len(patients)} patients")
    all_results = []
    for i, patient in enumerate(patients, 1):
        logger.info(f"Processing patient {i}/{len(patients)} (ID: {patient.patient_id})")

        if locator and patient.location is None and patient.address:
            location = await locator.locate_async(patient.address)
            if location:
                patient = replace(patient, location=location)

        search = await engine.search(patient, filters, args.sort)

        report = generate_match_report(patient, search.results, filters, search.strategies_failed)
        patient_report_file = output_dir / f"patient_{patient.patient_id or i}_clinical_trials.txt"
        with open(patient_report_file, 'w', encoding='utf-8') as f:
            f.write(report)

        logger.info(f"Found {len(search.results)} trials for patient {patient.patient_id}")
        all_results.append({
            "patient_id": patient.patient_id or str(i),
            "matches_found": len(search.results),
            "total_found": search.total_found,
            "failed_strategies": search.strategies_failed,
            "matches": [result.to_dict() for result in search.results],
            "report_file": str(patient_report_file),
        })

    summary_file = output_dir / "clinical_trials_summary.json"
    with open(summary_file, 'w', encoding='utf-8') as f:
        json.dump(all_results, f, indent=2, ensure_ascii=False)

    print(generate_summary_report(all_results, output_dir, summary_file))
    logger.info("Clinical trials matching completed")
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    if not args.skip_api_check and not check_api_connection():
        print("Exiting due to API connection failure.")
        return 1

    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())

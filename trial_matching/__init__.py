#!/usr/bin/env python3
"""
Clinical Trials Matching Engine

This package matches patients with clinical trials: concurrent multi-strategy
catalog search, nearest-site distances, rule-based scoring, filtering and
stable ranking.
"""

from .api import ClinicalTrialsAPI, ClinicalTrialsCatalog, TrialCatalogAdapter, check_api_connection
from .distance import annotate_trial_distances, haversine_distance
from .engine import MatchingEngine, SearchResults, rank_trials
from .filters import FilterCriteria, filter_results
from .geolocation import PatientLocator
from .merger import ResultMerger, build_search_criteria
from .models import (
    Coordinate,
    GenomicProfile,
    MatchResult,
    Medication,
    PatientProfile,
    SearchCriteria,
    SortKey,
    Trial,
    TrialLocation,
    TrialValidationError,
)
from .normalize import normalize_trial
from .ranking import sort_results
from .reports import generate_match_report, generate_summary_report
from .scoring import eligibility_score, score_trial

__version__ = "0.1.0"

__all__ = [
    'ClinicalTrialsAPI',
    'ClinicalTrialsCatalog',
    'Coordinate',
    'FilterCriteria',
    'GenomicProfile',
    'MatchResult',
    'MatchingEngine',
    'Medication',
    'PatientLocator',
    'PatientProfile',
    'ResultMerger',
    'SearchCriteria',
    'SearchResults',
    'SortKey',
    'Trial',
    'TrialCatalogAdapter',
    'TrialLocation',
    'TrialValidationError',
    'annotate_trial_distances',
    'build_search_criteria',
    'check_api_connection',
    'eligibility_score',
    'filter_results',
    'generate_match_report',
    'generate_summary_report',
    'haversine_distance',
    'normalize_trial',
    'rank_trials',
    'score_trial',
    'sort_results',
]

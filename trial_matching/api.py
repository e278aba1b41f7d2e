#!/usr/bin/env python3
"""
ClinicalTrials.gov API Interface

This module provides a clean interface to the ClinicalTrials.gov API v2 and
the asynchronous catalog adapter used by the result merger.
"""

import asyncio
import json
import logging
import threading
import time
from typing import Dict, List, Optional, Protocol

import requests

import config
from .models import SearchCriteria, Trial, TrialValidationError
from .normalize import normalize_trial

logger = logging.getLogger(__name__)


class TrialCatalogAdapter(Protocol):
    """Anything that can answer a SearchCriteria with normalized trials.

    Implementations raise on failure; the merger decides how to degrade.
    """

    async def search(self, criteria: SearchCriteria) -> List[Trial]:
        ...


class ClinicalTrialsAPI:
    """Interface to ClinicalTrials.gov API v2."""

    def __init__(self,
                 base_url: str = config.CLINICAL_TRIALS_API_URL,
                 rate_limit_delay: float = config.RATE_LIMIT_DELAY,
                 cache_ttl: float = config.SEARCH_CACHE_TTL,
                 timeout: float = config.REQUESTS_TIMEOUT,
                 session: Optional[requests.Session] = None):
        """Initialize with rate limiting and a response cache."""
        self.base_url = base_url.rstrip("/")
        self.rate_limit_delay = rate_limit_delay
        self.cache_ttl = cache_ttl
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": config.USER_AGENT})
        self.last_request_time = 0.0
        self._cache: Dict[str, tuple] = {}
        # searches run in worker threads
        self._rate_lock = threading.Lock()
        self._cache_lock = threading.Lock()

    def _rate_limit(self):
        """Implement rate limiting."""
        with self._rate_lock:
            current_time = time.time()
            time_since_last = current_time - self.last_request_time
            if time_since_last < self.rate_limit_delay:
                time.sleep(self.rate_limit_delay - time_since_last)
            self.last_request_time = time.time()

    def _cache_get(self, key: str) -> Optional[List[Dict]]:
        with self._cache_lock:
            cached = self._cache.get(key)
            if cached and time.time() - cached[0] < self.cache_ttl:
                return cached[1]
            return None

    def _cache_set(self, key: str, studies: List[Dict]):
        with self._cache_lock:
            self._cache[key] = (time.time(), studies)

    def clear_cache(self):
        with self._cache_lock:
            self._cache.clear()

    def search_studies(self,
                       condition: Optional[str] = None,
                       intervention: Optional[str] = None,
                       statuses: Optional[List[str]] = None,
                       phase: Optional[str] = None,
                       max_results: int = 100) -> List[Dict]:
        """
        Search for clinical trials based on condition and other criteria.

        Args:
            condition: Medical condition (e.g., "breast cancer")
            intervention: Intervention/treatment (e.g., "trastuzumab")
            statuses: Study statuses (e.g., ["RECRUITING", "ACTIVE_NOT_RECRUITING"])
            phase: Study phase filter (e.g., "PHASE2")
            max_results: Maximum number of results to return

        Returns:
            List of raw study dictionaries

        Raises:
            requests.exceptions.RequestException: on transport or HTTP errors
        """
        params = {
            "format": "json",
            "pageSize": min(max_results, config.CLINICAL_TRIALS_PAGE_SIZE),
            "query.cond": condition,
            "query.intr": intervention,
            "filter.overallStatus": ",".join(statuses) if statuses else None,
            "filter.phase": phase,
        }
        params = {k: v for k, v in params.items() if v not in (None, "")}

        cache_key = json.dumps({**params, "max_results": max_results}, sort_keys=True)
        cached = self._cache_get(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit for query: {params}")
            return cached

        studies: List[Dict] = []
        page_token = None
        while len(studies) < max_results:
            page_params = dict(params)
            if page_token:
                page_params["pageToken"] = page_token

            self._rate_limit()
            logger.info(f"Searching studies with params: {page_params}")
            response = self.session.get(f"{self.base_url}/studies", params=page_params, timeout=self.timeout)
            logger.debug(f"Request URL: {response.url}")
            response.raise_for_status()

            data = response.json()
            studies.extend(data.get("studies", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                break

        studies = studies[:max_results]
        logger.info(f"Found {len(studies)} studies (condition={condition!r}, intervention={intervention!r})")
        self._cache_set(cache_key, studies)
        return studies

    def get_study_details(self, nct_id: str) -> Optional[Dict]:
        """Get detailed information for a specific study."""
        self._rate_limit()

        try:
            response = self.session.get(f"{self.base_url}/studies/{nct_id}",
                                        params={"format": "json"},
                                        timeout=self.timeout)
            response.raise_for_status()

            data = response.json()
            study = data.get("protocolSection", {})

            return {"protocolSection": study}

        except requests.exceptions.RequestException as e:
            logger.error(f"Error getting study details for {nct_id}: {e}")
            return None


class ClinicalTrialsCatalog:
    """Asynchronous catalog adapter backed by ClinicalTrialsAPI.

    Each search strategy maps onto one API query; the blocking HTTP call runs
    in a worker thread so strategies can be awaited concurrently.
    """

    def __init__(self, api: Optional[ClinicalTrialsAPI] = None):
        self.api = api or ClinicalTrialsAPI()

    async def search(self, criteria: SearchCriteria) -> List[Trial]:
        return await asyncio.to_thread(self.search_blocking, criteria)

    def search_blocking(self, criteria: SearchCriteria) -> List[Trial]:
        condition, intervention = self.query_terms(criteria)
        studies = self.api.search_studies(
            condition=condition,
            intervention=intervention,
            statuses=list(criteria.statuses) or None,
            max_results=criteria.max_results,
        )
        return self.normalize_studies(studies, criteria.strategy)

    @staticmethod
    def query_terms(criteria: SearchCriteria) -> tuple:
        """(condition, intervention) query terms for a strategy."""
        intervention = None
        if criteria.drug_name:
            intervention = criteria.drug_name
        elif criteria.genomic_profile is not None:
            terms = criteria.genomic_profile.search_terms() + config.GENOMIC_SEARCH_TERMS
            intervention = " OR ".join(terms)
        return criteria.condition or None, intervention

    @staticmethod
    def normalize_studies(studies: List[Dict], strategy: str = "") -> List[Trial]:
        """Normalize raw studies, skipping records that fail validation."""
        trials = []
        for study in studies:
            try:
                trials.append(normalize_trial(study))
            except TrialValidationError as e:
                logger.warning(f"[{strategy}] Rejected malformed trial record: {e}")
        if len(trials) < len(studies):
            logger.info(f"[{strategy}] Kept {len(trials)}/{len(studies)} trial records after validation")
        return trials


def check_api_connection(api: Optional[ClinicalTrialsAPI] = None) -> bool:
    """Test if the ClinicalTrials.gov API is reachable."""
    api = api or ClinicalTrialsAPI()

    logger.info("Testing ClinicalTrials.gov API connection...")

    try:
        test_studies = api.search_studies(condition="cancer", max_results=1)
    except requests.exceptions.RequestException as e:
        logger.error(f"API connection failed: {e}")
        return False

    logger.info(f"API connection successful, sample query returned {len(test_studies)} studies")
    return True

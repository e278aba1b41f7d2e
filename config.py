# config.py
import os

from dotenv import load_dotenv

load_dotenv()

# --- Clinical Trials API ---
CLINICAL_TRIALS_API_URL = os.getenv("CLINICAL_TRIALS_API_URL", "https://clinicaltrials.gov/api/v2")
CLINICAL_TRIALS_PAGE_SIZE = 100  # ClinicalTrials.gov caps pageSize at 100 for these queries
MAX_RESULTS_PER_STRATEGY = int(os.getenv("MAX_RESULTS_PER_STRATEGY", "100"))
REQUESTS_TIMEOUT = 15
RATE_LIMIT_DELAY = 0.5
SEARCH_CACHE_TTL = 60 * 30  # seconds
USER_AGENT = "trial-matching/0.1 Clinical Decision Support"

# Statuses requested per search strategy
DEFAULT_STATUSES = ["RECRUITING", "NOT_YET_RECRUITING", "ACTIVE_NOT_RECRUITING"]
EXPANDED_STATUSES = DEFAULT_STATUSES + ["ENROLLING_BY_INVITATION"]

# --- Search aggregation ---
CATALOG_QUERY_TIMEOUT = float(os.getenv("CATALOG_QUERY_TIMEOUT", "20"))
MAX_CONCURRENT_QUERIES = 3
FALLBACK_CONDITION = "cancer"
FALLBACK_MAX_RESULTS = 20
GENOMIC_SEARCH_TERMS = ["precision medicine", "biomarker", "genomic"]

# --- Reporting thresholds ---
HIGH_CONFIDENCE_SCORE = 50

# --- Geocoding ---
GEOCODER_USER_AGENT = "trial_matching_app"
GEOCODE_TIMEOUT = 10

# --- Reports ---
REPORT_DIR = "generated_report"
MAX_LOCATIONS_TO_DISPLAY_PER_STUDY = 3

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(threadName)s] - %(name)s - %(module)s.%(funcName)s - %(message)s"

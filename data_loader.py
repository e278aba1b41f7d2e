# data_loader.py
import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd

from trial_matching.models import Coordinate, GenomicProfile, Medication, PatientProfile

logger = logging.getLogger(__name__)

LIST_SEPARATOR = ";"


def load_patient_data(file_path: str) -> pd.DataFrame | None:
    """Loads patient data from the specified Excel or CSV file."""
    logger.info(f"Attempting to load patient data from: {file_path}")
    try:
        if Path(file_path).suffix.lower() == ".csv":
            df = pd.read_csv(file_path)
        else:
            df = pd.read_excel(file_path)
        if df.empty:
            logger.warning(f"Patient file loaded but is empty: {file_path}")
            return None
        logger.info(f"Successfully loaded {len(df)} patient records from {file_path}")
        return df
    except FileNotFoundError:
        logger.error(f"Patient file not found: {file_path}")
        return None
    except (ValueError, OSError) as e:
        logger.error(f"Error loading patient file: {e}", exc_info=True)
        return None


def _text(row: pd.Series, column: str) -> str:
    val = row.get(column)
    if val is None or not pd.notna(val):
        return ""
    return str(val).strip()


def _number(row: pd.Series, column: str) -> Optional[float]:
    val = row.get(column)
    if val is None or not pd.notna(val) or str(val).strip() == "":
        return None
    return float(val)


def _items(row: pd.Series, column: str) -> tuple:
    return tuple(part.strip() for part in _text(row, column).split(LIST_SEPARATOR) if part.strip())


def row_to_profile(row: pd.Series) -> PatientProfile:
    """Build a PatientProfile from one spreadsheet row.

    List-valued columns hold ``;``-separated items. Latitude/longitude are
    optional; an ``address`` column can be geocoded later instead.
    """
    lat, lon = _number(row, "lat"), _number(row, "lon")
    ecog = _number(row, "ecog")

    genomic = GenomicProfile(
        mutations=_items(row, "mutations"),
        biomarkers=_items(row, "genomic_biomarkers"),
        tumor_type=_text(row, "tumor_type"),
    )

    return PatientProfile(
        patient_id=_text(row, "ID"),
        age=_number(row, "age"),
        gender=_text(row, "gender"),
        cancer_type=_text(row, "cancer_type"),
        diagnoses=_items(row, "diagnoses"),
        stage=_text(row, "stage"),
        biomarkers=_items(row, "biomarkers"),
        prior_treatments=_items(row, "prior_treatments"),
        performance_status=int(ecog) if ecog is not None else None,
        comorbidities=_items(row, "comorbidities"),
        medications=tuple(Medication(name=name) for name in _items(row, "medications")),
        genomic_profile=None if genomic.is_empty() else genomic,
        location=Coordinate(lat, lon) if lat is not None and lon is not None else None,
        address=_text(row, "address"),
    )


def load_patient_profiles(file_path: str) -> List[PatientProfile]:
    """Load every valid patient row; invalid rows are logged and skipped."""
    df = load_patient_data(file_path)
    if df is None:
        return []

    profiles = []
    for index, row in df.iterrows():
        try:
            profiles.append(row_to_profile(row))
        except ValueError as e:
            logger.error(f"Skipping patient row {index}: {e}")
            continue
    return profiles

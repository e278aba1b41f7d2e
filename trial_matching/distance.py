#!/usr/bin/env python3
"""
Great-circle distances between patients and trial sites.
"""

import math
from dataclasses import replace
from typing import Optional

from .models import Coordinate, Trial

EARTH_RADIUS_KM = 6371.0


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """Distance in kilometers between two coordinates (haversine, R = 6371 km)."""
    d_lat = math.radians(b.lat - a.lat)
    d_lon = math.radians(b.lon - a.lon)
    h = (
        math.sin(d_lat / 2) * math.sin(d_lat / 2)
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat))
        * math.sin(d_lon / 2) * math.sin(d_lon / 2)
    )
    # rounding can push h a hair past 1 for antipodal points
    h = min(max(h, 0.0), 1.0)
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def annotate_trial_distances(trial: Trial, origin: Optional[Coordinate]) -> Trial:
    """
    Return a copy of the trial with per-site and nearest-site distances.

    Sites without coordinates keep ``distance=None``. With no origin nothing is
    computed and the trial is returned unchanged.
    """
    if origin is None:
        return trial

    locations = []
    for location in trial.locations:
        distance = None
        if location.coordinate is not None:
            distance = haversine_distance(origin, location.coordinate)
        locations.append(replace(location, distance=distance))

    known = [loc.distance for loc in locations if loc.distance is not None]
    return replace(
        trial,
        locations=tuple(locations),
        distance=min(known) if known else None,
    )

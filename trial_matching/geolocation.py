#!/usr/bin/env python3
"""
Patient geolocation.

Resolves a free-text patient address into a Coordinate with geopy's
Nominatim geocoder. The wait is always bounded: the geocoder gets its own
timeout, and the async entry point adds an outer deadline because the
underlying call can otherwise hang on a stalled connection.
"""

import asyncio
import logging
from typing import Dict, Optional

from geopy.exc import GeocoderServiceError, GeocoderTimedOut
from geopy.geocoders import Nominatim

import config
from .models import Coordinate

logger = logging.getLogger(__name__)


class PatientLocator:
    """Geocodes patient addresses with caching."""

    def __init__(self, geocoder=None, timeout: float = config.GEOCODE_TIMEOUT):
        self.geocoder = geocoder or Nominatim(user_agent=config.GEOCODER_USER_AGENT)
        self.timeout = timeout
        self.location_cache: Dict[str, Optional[Coordinate]] = {}

    def locate(self, address: str) -> Optional[Coordinate]:
        """Get coordinates for an address; None when it cannot be resolved."""
        if not address or not address.strip():
            return None

        key = address.strip().lower()
        if key in self.location_cache:
            return self.location_cache[key]

        coordinate = None
        try:
            location = self.geocoder.geocode(address.strip(), timeout=self.timeout)
            if location:
                coordinate = Coordinate(location.latitude, location.longitude)
            else:
                logger.info(f"No geocoding result for address: {address}")
        except GeocoderTimedOut:
            logger.warning(f"Geocoding timed out after {self.timeout}s for: {address}")
            return None
        except GeocoderServiceError as e:
            logger.warning(f"Geocoding failed for {address}: {e}")
            return None

        self.location_cache[key] = coordinate
        return coordinate

    async def locate_async(self, address: str, deadline: Optional[float] = None) -> Optional[Coordinate]:
        """Geocode without blocking the event loop, giving up after ``deadline`` seconds."""
        deadline = deadline if deadline is not None else self.timeout + 1
        try:
            return await asyncio.wait_for(asyncio.to_thread(self.locate, address), timeout=deadline)
        except asyncio.TimeoutError:
            logger.warning(f"Gave up locating patient after {deadline}s: {address}")
            return None

"""Tests for patient address geocoding with a stand-in geocoder."""
from __future__ import annotations

import asyncio
import time
from types import SimpleNamespace

from geopy.exc import GeocoderServiceError, GeocoderTimedOut

from trial_matching.geolocation import PatientLocator
from trial_matching.models import Coordinate


class StubGeocoder:
    def __init__(self, result=None, error=None, delay=0.0):
        self.result = result
        self.error = error
        self.delay = delay
        self.queries = []

    def geocode(self, query, timeout=None):
        self.queries.append((query, timeout))
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


BERN_PLACE = SimpleNamespace(latitude=46.9479, longitude=7.4474, address="Bern, Switzerland")


def test_locate_returns_coordinate():
    geocoder = StubGeocoder(result=BERN_PLACE)
    locator = PatientLocator(geocoder=geocoder, timeout=3)
    assert locator.locate("Bern, Switzerland") == Coordinate(46.9479, 7.4474)
    assert geocoder.queries == [("Bern, Switzerland", 3)]


def test_results_are_cached_case_insensitively():
    geocoder = StubGeocoder(result=BERN_PLACE)
    locator = PatientLocator(geocoder=geocoder)
    locator.locate("Bern, Switzerland")
    locator.locate("  bern, switzerland ")
    assert len(geocoder.queries) == 1


def test_unknown_address_returns_none():
    locator = PatientLocator(geocoder=StubGeocoder(result=None))
    assert locator.locate("Nowhere 123") is None


def test_blank_address_skips_geocoder():
    geocoder = StubGeocoder(result=BERN_PLACE)
    assert PatientLocator(geocoder=geocoder).locate("   ") is None
    assert geocoder.queries == []


def test_timeout_returns_none_and_is_not_cached():
    geocoder = StubGeocoder(error=GeocoderTimedOut("slow"))
    locator = PatientLocator(geocoder=geocoder)
    assert locator.locate("Bern") is None
    assert locator.locate("Bern") is None
    assert len(geocoder.queries) == 2


def test_service_error_returns_none():
    locator = PatientLocator(geocoder=StubGeocoder(error=GeocoderServiceError("quota exceeded")))
    assert locator.locate("Bern") is None


def test_locate_async():
    locator = PatientLocator(geocoder=StubGeocoder(result=BERN_PLACE))
    assert asyncio.run(locator.locate_async("Bern")) == Coordinate(46.9479, 7.4474)


def test_locate_async_deadline():
    locator = PatientLocator(geocoder=StubGeocoder(result=BERN_PLACE, delay=0.5))
    assert asyncio.run(locator.locate_async("Bern", deadline=0.05)) is None

"""Pytest configuration and shared fixtures."""
import asyncio
from datetime import datetime, timezone

import pytest

from acrelink.registry.geolocation import (
    GeoPosition,
    GeolocationProvider,
    PositionError,
)
from acrelink.registry.mock_fleet import DEMO_SITES, MockFleetGenerator
from acrelink.registry.models import Depth, SensorRecord
from acrelink.registry.storage import MemoryStorage
from acrelink.registry.store import SensorStore

FIXED_NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def fixed_clock():
    return FIXED_NOW


class DelayedGeolocation(GeolocationProvider):
    """Resolves to a given position after a delay."""

    def __init__(self, latitude, longitude, accuracy_m, delay=0.0):
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy_m = accuracy_m
        self.delay = delay
        self.calls = 0

    async def get_current_position(self, options):
        self.calls += 1
        await asyncio.sleep(self.delay)
        return GeoPosition(self.latitude, self.longitude, self.accuracy_m, 0.0)


class DeniedGeolocation(GeolocationProvider):
    """Refuses every request, like a browser with location permission blocked."""

    async def get_current_position(self, options):
        raise PositionError("User denied Geolocation")


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def generator():
    """Seeded generator with the demo sites (10 / 12 / 8 sensors)."""
    return MockFleetGenerator(seed=7, clock=fixed_clock)


@pytest.fixture
def empty_generator():
    """Demo sites without any seeded sensors."""
    sites = [dict(site, seed_count=0) for site in DEMO_SITES]
    return MockFleetGenerator(sites=sites, seed=7, clock=fixed_clock)


@pytest.fixture
def store(storage, generator):
    store = SensorStore(storage, generator)
    store.load()
    return store


@pytest.fixture
def empty_store(storage, empty_generator):
    store = SensorStore(storage, empty_generator)
    store.load()
    return store


@pytest.fixture
def make_record():
    """Factory for sensor records with sensible defaults."""
    def _make(sensor_id="ACR-0500", site_id="demo-a", depth=Depth.SHALLOW, **kwargs):
        return SensorRecord(id=sensor_id, site_id=site_id, depth=depth, **kwargs)
    return _make

"""
Shared fixtures for the cotravel test suite.

Provides:
- settings tuned for fast tests (short provider timeout)
- in-process fakes for the routing, geocoding and POI providers
- an in-memory geo cache and intent store
- the engine components wired together
"""

import pytest

from cotravel.config import Settings
from cotravel.services.distance import DistanceEngine
from cotravel.services.geo import LatLng
from cotravel.services.geo_cache import MemoryGeoCache
from cotravel.services.intent_store import InMemoryIntentStore
from cotravel.services.matcher import MatchingOrchestrator
from cotravel.services.meeting_point import MeetingPointOptimizer
from tests.helpers import FakeGeocoder, FakePois, FakeRouting


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    return Settings(
        GEO_CACHE_BACKEND="memory",
        PROVIDER_TIMEOUT_SECONDS=0.2,
        MATCH_INCLUDE_ROUTE_OVERLAP=True,
    )


@pytest.fixture
def cache() -> MemoryGeoCache:
    return MemoryGeoCache(default_ttl=300)


@pytest.fixture
def routing() -> FakeRouting:
    return FakeRouting()


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder(
        places={
            "Connaught Place": LatLng(28.6315, 77.2167),
            "India Gate": LatLng(28.6129, 77.2295),
        }
    )


@pytest.fixture
def pois() -> FakePois:
    return FakePois()


@pytest.fixture
def store() -> InMemoryIntentStore:
    return InMemoryIntentStore()


@pytest.fixture
def distance(routing, cache, settings) -> DistanceEngine:
    return DistanceEngine(routing, cache, settings)


@pytest.fixture
def optimizer(distance, pois, geocoder, cache, settings) -> MeetingPointOptimizer:
    return MeetingPointOptimizer(distance, pois, geocoder, cache, settings)


@pytest.fixture
def orchestrator(store, distance, optimizer, settings) -> MatchingOrchestrator:
    return MatchingOrchestrator(store, distance, optimizer, settings)

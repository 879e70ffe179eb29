"""In-process fakes for the external providers, and record factories."""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from cotravel.errors import NotFoundError, ProviderError, ValidationError
from cotravel.schemas.intent import Place, TravelIntent, TravelMode
from cotravel.services.distance import great_circle_distance
from cotravel.services.geo import LatLng, PointOfInterest, Route, SafetyFeatures

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Provider fakes
# ---------------------------------------------------------------------------

class FakeRouting:
    """Straight-line routes. leg_distances maps a (lat, lng) endpoint to the distance of any leg touching it."""

    def __init__(self, leg_distances: dict[tuple[float, float], float] | None = None,
                 fail: bool = False, delay: float = 0.0, no_route: bool = False) -> None:
        self.leg_distances = leg_distances or {}
        self.fail = fail
        self.delay = delay
        self.no_route = no_route
        self.calls: list[tuple[LatLng, LatLng, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def route(self, origin: LatLng, destination: LatLng, profile: str = "driving") -> Route | None:
        self.calls.append((origin, destination, profile))
        if self.delay:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                await asyncio.sleep(self.delay)
            finally:
                self.in_flight -= 1
        if self.fail:
            raise ProviderError("fake-routing", "boom")
        if self.no_route:
            return None
        distance = None
        for end in (destination, origin):
            if (end.lat, end.lng) in self.leg_distances:
                distance = self.leg_distances[(end.lat, end.lng)]
                break
        if distance is None:
            distance = great_circle_distance(origin, destination) * 1.3
        return Route(
            distance_m=distance,
            duration_s=distance / 10,
            geometry=[[origin.lng, origin.lat], [destination.lng, destination.lat]],
        )

    async def directions(self, origin: LatLng, destination: LatLng, profile: str = "driving"):
        if self.fail:
            raise ProviderError("fake-routing", "boom")
        return {
            "distance_m": 420.0,
            "duration_s": 300.0,
            "steps": [
                {"instruction": "Depart onto Janpath", "distance_m": 400.0, "duration_s": 290.0},
                {"instruction": "Arrive at destination", "distance_m": 20.0, "duration_s": 10.0},
            ],
        }


class FakeGeocoder:
    def __init__(self, places: dict[str, LatLng] | None = None, fail: bool = False) -> None:
        self.places = places or {}
        self.fail = fail
        self.forward_calls = 0

    async def forward(self, address: str) -> LatLng:
        self.forward_calls += 1
        if self.fail:
            raise ProviderError("fake-geocoder", "down")
        if not address:
            raise ValidationError("Address is required", fields=["address"])
        if address not in self.places:
            raise NotFoundError("Coordinates not found")
        return self.places[address]

    async def reverse(self, point: LatLng) -> str:
        return f"Near {point.lat:.4f},{point.lng:.4f}, New Delhi"

    async def autocomplete(self, prefix: str) -> list[str]:
        if len(prefix.strip()) < 3:
            raise ValidationError("Input must be at least 3 characters", fields=["input"])
        return [name for name in self.places if name.lower().startswith(prefix.lower())]


class FakePois:
    def __init__(self, places: list[PointOfInterest] | None = None,
                 features: SafetyFeatures | None = None,
                 fail: bool = False, fail_safety: bool = False) -> None:
        self.places = places or []
        self.features = features or SafetyFeatures()
        self.fail = fail
        self.fail_safety = fail_safety
        self.nearby_calls = 0

    async def nearby(self, center: LatLng, radius_m: int, categories: dict[str, list[str]]) -> list[PointOfInterest]:
        self.nearby_calls += 1
        if self.fail:
            raise ProviderError("fake-pois", "overpass unavailable")
        return list(self.places)

    async def safety_features(self, center: LatLng) -> SafetyFeatures:
        if self.fail_safety:
            raise ProviderError("fake-pois", "overpass unavailable")
        return self.features


def make_poi(lat: float, lng: float, name: str = "Rajiv Chowk Metro", **overrides: Any) -> PointOfInterest:
    base = {
        "lat": lat,
        "lng": lng,
        "name": name,
        "category": "transport",
        "address": "",
        "importance": 0.3,
        "amenities": [],
        "kinds": ["public_transport"],
    }
    base.update(overrides)
    return PointOfInterest(**base)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def make_intent(
    requester_id: str = "user-b",
    source: tuple[float, float] | None = (77.2095, 28.6140),
    destination: tuple[float, float] | None = (77.2300, 28.6300),
    travel_mode: TravelMode = TravelMode.METRO,
    travel_time: datetime = T0,
    **overrides: Any,
) -> TravelIntent:
    base = {
        "id": uuid.uuid4().hex,
        "requester_id": requester_id,
        "source": Place(address="Source", coordinates=source),
        "destination": Place(address="Destination", coordinates=destination),
        "travel_mode": travel_mode,
        "travel_time": travel_time,
        "is_active": True,
        "created_at": travel_time - timedelta(hours=1),
        "updated_at": travel_time - timedelta(hours=1),
    }
    base.update(overrides)
    return TravelIntent(**base)

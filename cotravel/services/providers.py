"""Contracts for external collaborators. Any conforming implementation (HTTP client or local fixture) can be injected."""
from __future__ import annotations

from typing import Any, Protocol

from cotravel.services.geo import LatLng, PointOfInterest, Route, SafetyFeatures

# Category filters understood by POI providers: OSM key -> alternatives
MEETING_POINT_CATEGORIES: dict[str, list[str]] = {
    "amenity": ["cafe", "restaurant", "fast_food", "bank", "library", "community_centre", "post_office"],
    "shop": ["mall", "department_store", "supermarket"],
    "public_transport": ["station", "stop_position"],
    "tourism": ["information", "museum"],
}


class GeocodingProvider(Protocol):
    async def forward(self, address: str) -> LatLng:
        """Resolve text to coordinates. Raises NotFoundError / ValidationError / ProviderError."""
        ...

    async def reverse(self, point: LatLng) -> str:
        """Never raises; returns a placeholder when the address cannot be resolved."""
        ...

    async def autocomplete(self, prefix: str) -> list[str]:
        ...


class RoutingProvider(Protocol):
    async def route(self, origin: LatLng, destination: LatLng, profile: str = "driving") -> Route | None:
        """Return the best route, None when the provider has no route. Raises ProviderError on failure."""
        ...

    async def directions(self, origin: LatLng, destination: LatLng, profile: str = "driving") -> dict[str, Any] | None:
        ...


class PoiProvider(Protocol):
    async def nearby(
        self,
        center: LatLng,
        radius_m: int,
        categories: dict[str, list[str]],
    ) -> list[PointOfInterest]:
        ...

    async def safety_features(self, center: LatLng) -> SafetyFeatures:
        ...

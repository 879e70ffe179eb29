"""Lightweight geo value types shared by providers and the engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float

    @classmethod
    def from_lng_lat(cls, coords: tuple[float, float] | list[float]) -> LatLng:
        """Build from a GeoJSON-style [lng, lat] pair (the order stored on intents)."""
        return cls(lat=float(coords[1]), lng=float(coords[0]))

    def to_lng_lat(self) -> tuple[float, float]:
        return (self.lng, self.lat)


@dataclass
class Route:
    distance_m: float
    duration_s: float
    # GeoJSON LineString coordinates, [lng, lat] pairs
    geometry: list[list[float]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"distance_m": self.distance_m, "duration_s": self.duration_s, "geometry": self.geometry}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Route:
        return cls(
            distance_m=float(data["distance_m"]),
            duration_s=float(data["duration_s"]),
            geometry=[list(p) for p in data.get("geometry") or []],
        )


@dataclass
class PointOfInterest:
    """Place returned by the POI provider, in provider response order."""
    lat: float
    lng: float
    name: str
    category: str
    address: str = ""
    importance: float = 0.0
    amenities: list[str] = field(default_factory=list)
    # raw tag kinds, e.g. "public_transport", "amenity"
    kinds: list[str] = field(default_factory=list)

    @property
    def location(self) -> LatLng:
        return LatLng(self.lat, self.lng)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "name": self.name,
            "category": self.category,
            "address": self.address,
            "importance": self.importance,
            "amenities": list(self.amenities),
            "kinds": list(self.kinds),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PointOfInterest:
        return cls(**data)


@dataclass
class SafetyFeatures:
    """Counts of safety-relevant features around a point."""
    police: int = 0
    hospital: int = 0
    street_lamps: int = 0
    shops: int = 0
    commercial: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "police": self.police,
            "hospital": self.hospital,
            "street_lamps": self.street_lamps,
            "shops": self.shops,
            "commercial": self.commercial,
        }

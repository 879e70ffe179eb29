"""Schemas for geocoding, distance and directions responses."""

from pydantic import BaseModel


class DistanceTimeResponse(BaseModel):
    distance_km: float
    # None when the route was unavailable and distance is great-circle
    duration_min: int | None = None
    degraded: bool = False


class RouteStep(BaseModel):
    instruction: str
    distance_m: float
    duration_s: float


class DirectionsResponse(BaseModel):
    profile: str
    distance_m: float
    duration_s: float
    steps: list[RouteStep]

"""Schemas for meeting-point suggestions."""
from pydantic import BaseModel, Field

from cotravel.schemas.intent import LngLat


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class MeetingPointCandidate(BaseModel):
    coordinates: Coordinates
    name: str
    address: str = ""
    category: str
    importance: float = 0.0
    amenities: list[str] = []
    distance_from_midpoint_m: float
    rank: int | None = None


class MeetingPointResult(BaseModel):
    coordinates: Coordinates
    name: str
    address: str
    category: str
    importance: float = 0.0
    amenities: list[str] = []
    distance_from_midpoint_m: float
    safety_score: float = Field(..., ge=0, le=1)
    safety_factors: list[str]
    user_distance_m: float
    companion_distance_m: float
    user_walk_minutes: int
    companion_walk_minutes: int
    fairness_score: float = Field(..., ge=0, le=1)
    midpoint: Coordinates
    is_exact_midpoint: bool
    # "openstreetmap" (verified POI), "calculated" (midpoint) or "fallback" (optimizer failed)
    source: str
    degraded: bool = False
    degraded_reasons: list[str] = []


class SuggestMeetingPointRequest(BaseModel):
    """Request body for POST /maps/suggest-meeting-point. Overrides are [lng, lat]."""
    requester_id: str | None = None
    companion_id: str | None = None
    user_source: LngLat | None = None
    companion_source: LngLat | None = None


class RefreshMeetingPointRequest(BaseModel):
    """Request body for POST /maps/refresh-meeting-point. Locations are [lng, lat]."""
    user_location: LngLat | None = None
    companion_location: LngLat | None = None
    top_n: int | None = Field(default=None, ge=1, le=10)


class RefreshResult(BaseModel):
    alternatives: list[MeetingPointCandidate]
    original_midpoint: Coordinates
    degraded: bool = False

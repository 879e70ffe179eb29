"""Pydantic schemas for travel intents and candidate matches."""
import enum
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from cotravel.services.distance import MatchLevel


class TravelMode(str, enum.Enum):
    BUS = "bus"
    METRO = "metro"
    CAB = "cab"


def _check_lng_lat(v: tuple[float, float]) -> tuple[float, float]:
    lng, lat = v
    if not -180 <= lng <= 180:
        raise ValueError("longitude must be within [-180, 180]")
    if not -90 <= lat <= 90:
        raise ValueError("latitude must be within [-90, 90]")
    return v


# GeoJSON order: [longitude, latitude]
LngLat = Annotated[tuple[float, float], AfterValidator(_check_lng_lat)]


class Place(BaseModel):
    """Address text and/or coordinates."""
    model_config = ConfigDict(frozen=True)

    address: str | None = None
    coordinates: LngLat | None = None


class TravelIntentCreate(BaseModel):
    """Request body for POST /maps/create-travel."""
    requester_id: str = Field(..., min_length=1, max_length=128)
    source: Place
    destination: Place
    travel_mode: TravelMode
    travel_time: datetime
    is_active: bool = True


class TravelIntent(BaseModel):
    """Read model of a stored intent. Immutable for the engine."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    requester_id: str
    source: Place
    destination: Place
    travel_mode: TravelMode
    travel_time: datetime
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MatchMetrics(BaseModel):
    distance_from_requester_m: float
    distance_km: float
    destination_distance_m: float
    match_score: float
    match_level: MatchLevel
    route_overlap: float | None = None
    route_overlap_degraded: bool = False


class CandidateMatch(BaseModel):
    """A candidate co-traveller: their intent plus metrics computed for this request only."""
    intent: TravelIntent
    metrics: MatchMetrics


class FindCandidatesRequest(BaseModel):
    """Request body for POST /maps/find-companions. Presence of every field is checked by the matcher."""
    requester_id: str | None = None
    source: Place | None = None
    destination: Place | None = None
    travel_mode: TravelMode | None = None
    travel_time: datetime | None = None


class MatchingCriteria(BaseModel):
    travel_mode: TravelMode
    time_window_minutes: int
    ranking: str = "distance-based"


class FindCandidatesResponse(BaseModel):
    companions: list[CandidateMatch]
    count: int
    matching_criteria: MatchingCriteria

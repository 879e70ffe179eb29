"""Map routes: geocoding, distance/time, directions, and travel intents."""
import math

from fastapi import APIRouter, Depends, HTTPException, Query, status

from cotravel.config import Settings
from cotravel.deps import get_distance_engine, get_geocoding, get_orchestrator, get_routing, get_settings
from cotravel.schemas.intent import (
    FindCandidatesRequest,
    FindCandidatesResponse,
    MatchingCriteria,
    TravelIntent,
    TravelIntentCreate,
)
from cotravel.schemas.maps import DirectionsResponse, DistanceTimeResponse, RouteStep
from cotravel.schemas.meeting import (
    Coordinates,
    MeetingPointResult,
    RefreshMeetingPointRequest,
    RefreshResult,
    SuggestMeetingPointRequest,
)
from cotravel.services.distance import DistanceEngine, great_circle_distance
from cotravel.services.geo import LatLng
from cotravel.services.geocoding import GeocodingService
from cotravel.services.matcher import MatchingOrchestrator
from cotravel.services.outcome import bounded
from cotravel.services.providers import RoutingProvider

router = APIRouter(prefix="/maps", tags=["maps"])

PROFILES = ("driving", "walking", "cycling")


@router.get("/get-coordinates", response_model=Coordinates)
async def get_coordinates(
    address: str = Query(..., min_length=1),
    geocoding: GeocodingService = Depends(get_geocoding),
):
    point = await geocoding.coordinates(address)
    return Coordinates(lat=point.lat, lng=point.lng)


@router.get("/get-distance-time", response_model=DistanceTimeResponse)
async def get_distance_time(
    origin: str = Query(..., min_length=1),
    destination: str = Query(..., min_length=1),
    geocoding: GeocodingService = Depends(get_geocoding),
    distance: DistanceEngine = Depends(get_distance_engine),
):
    """Driving distance and time between two addresses. Falls back to straight-line distance without a duration."""
    a = await geocoding.coordinates(origin)
    b = await geocoding.coordinates(destination)
    route = await distance.route(a, b)
    if route.value is None:
        return DistanceTimeResponse(distance_km=round(great_circle_distance(a, b) / 1000, 2), degraded=True)
    return DistanceTimeResponse(
        distance_km=round(route.value.distance_m / 1000, 2),
        duration_min=math.ceil(route.value.duration_s / 60),
    )


@router.get("/autocomplete", response_model=list[str])
async def autocomplete(
    input: str = Query(""),
    geocoding: GeocodingService = Depends(get_geocoding),
):
    return await geocoding.suggestions(input)


@router.get("/directions", response_model=DirectionsResponse)
async def directions(
    origin_lat: float = Query(..., ge=-90, le=90),
    origin_lng: float = Query(..., ge=-180, le=180),
    dest_lat: float = Query(..., ge=-90, le=90),
    dest_lng: float = Query(..., ge=-180, le=180),
    profile: str = "walking",
    routing: RoutingProvider = Depends(get_routing),
    settings: Settings = Depends(get_settings),
):
    if profile not in PROFILES:
        raise HTTPException(status_code=400, detail=f"profile must be one of {', '.join(PROFILES)}")
    result = await bounded(
        routing.directions(LatLng(origin_lat, origin_lng), LatLng(dest_lat, dest_lng), profile),
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        label="routing",
    )
    if result is None:
        raise HTTPException(status_code=404, detail="No route found")
    return DirectionsResponse(
        profile=profile,
        distance_m=result["distance_m"],
        duration_s=result["duration_s"],
        steps=[RouteStep(**s) for s in result["steps"]],
    )


@router.post("/create-travel", response_model=TravelIntent, status_code=status.HTTP_201_CREATED)
async def create_travel(
    body: TravelIntentCreate,
    orchestrator: MatchingOrchestrator = Depends(get_orchestrator),
):
    return await orchestrator.create_intent(body)


@router.post("/find-companions", response_model=FindCandidatesResponse)
async def find_companions(
    body: FindCandidatesRequest,
    orchestrator: MatchingOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
):
    """Other travellers going the same way around the same time, closest first."""
    companions = await orchestrator.find_candidates(
        body.requester_id, body.source, body.destination, body.travel_mode, body.travel_time
    )
    return FindCandidatesResponse(
        companions=companions,
        count=len(companions),
        matching_criteria=MatchingCriteria(
            travel_mode=body.travel_mode,
            time_window_minutes=settings.MATCH_TIME_WINDOW_MINUTES,
        ),
    )


@router.post("/suggest-meeting-point", response_model=MeetingPointResult)
async def suggest_meeting_point(
    body: SuggestMeetingPointRequest,
    orchestrator: MatchingOrchestrator = Depends(get_orchestrator),
):
    return await orchestrator.suggest_meeting_point(
        body.requester_id, body.companion_id, body.user_source, body.companion_source
    )


@router.post("/refresh-meeting-point", response_model=RefreshResult)
async def refresh_meeting_point(
    body: RefreshMeetingPointRequest,
    orchestrator: MatchingOrchestrator = Depends(get_orchestrator),
):
    """Alternative places near the midpoint, ranked."""
    return await orchestrator.refresh_meeting_point(body.user_location, body.companion_location, body.top_n)

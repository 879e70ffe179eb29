"""Shared dependencies: collaborators built in the app lifespan and kept on app.state."""
from fastapi import Request

from cotravel.config import Settings
from cotravel.services.distance import DistanceEngine
from cotravel.services.geocoding import GeocodingService
from cotravel.services.matcher import MatchingOrchestrator
from cotravel.services.providers import RoutingProvider


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_orchestrator(request: Request) -> MatchingOrchestrator:
    return request.app.state.orchestrator


def get_distance_engine(request: Request) -> DistanceEngine:
    return request.app.state.distance


def get_geocoding(request: Request) -> GeocodingService:
    return request.app.state.geocoding


def get_routing(request: Request) -> RoutingProvider:
    return request.app.state.routing

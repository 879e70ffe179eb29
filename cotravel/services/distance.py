"""Distances, route overlap and match scoring between travel intents."""
import asyncio
import enum
import math

from shapely.geometry import LineString, Point

from cotravel.config import Settings
from cotravel.services.geo import LatLng, Route
from cotravel.services.geo_cache import GeoCache, decode_hit, make_cache_key
from cotravel.services.outcome import Outcome, attempt
from cotravel.services.providers import RoutingProvider

EARTH_RADIUS_M = 6371000.0


class MatchLevel(str, enum.Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    BASIC = "Basic"


def great_circle_distance(a: LatLng, b: LatLng) -> float:
    """Haversine distance in meters. Symmetric, and 0 only for identical points."""
    phi1, phi2 = math.radians(a.lat), math.radians(b.lat)
    dphi = math.radians(abs(b.lat - a.lat))
    dlam = math.radians(abs(b.lng - a.lng))
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(max(0.0, 1 - h)))
    return EARTH_RADIUS_M * c


def _project(points: list[list[float]], origin: LatLng) -> list[tuple[float, float]]:
    """Equirectangular projection of [lng, lat] pairs to meters around origin (fine at city scale)."""
    kx = math.radians(1) * EARTH_RADIUS_M * math.cos(math.radians(origin.lat))
    ky = math.radians(1) * EARTH_RADIUS_M
    return [((p[0] - origin.lng) * kx, (p[1] - origin.lat) * ky) for p in points]


def _corridor(points: list[tuple[float, float]], width_m: float):
    if len(points) == 1:
        return Point(points[0]).buffer(width_m)
    return LineString(points).buffer(width_m)


def corridor_overlap(geometry_a: list[list[float]], geometry_b: list[list[float]], corridor_m: float = 100.0) -> float:
    """Area shared by the two buffered paths over the smaller buffered area, in [0, 1]."""
    if not geometry_a or not geometry_b:
        return 0.0
    origin = LatLng(lat=geometry_a[0][1], lng=geometry_a[0][0])
    area_a = _corridor(_project(geometry_a, origin), corridor_m)
    area_b = _corridor(_project(geometry_b, origin), corridor_m)
    if not area_a.intersects(area_b):
        return 0.0
    smaller = min(area_a.area, area_b.area)
    if smaller <= 0:
        return 0.0
    return max(0.0, min(1.0, area_a.intersection(area_b).area / smaller))


def match_score(
    source_distance_m: float,
    dest_distance_m: float,
    *,
    cap_m: float = 10000.0,
    source_weight: float = 0.7,
    dest_weight: float = 0.3,
) -> float:
    """0-100; 100 when both origins and both destinations coincide, dominated by origin proximity."""
    normalized_src = 1 - min(max(source_distance_m, 0.0) / cap_m, 1.0)
    normalized_dst = 1 - min(max(dest_distance_m, 0.0) / cap_m, 1.0)
    return (normalized_src * source_weight + normalized_dst * dest_weight) * 100


def match_level(score: float, excellent: float = 80.0, good: float = 60.0, fair: float = 40.0) -> MatchLevel:
    if score >= excellent:
        return MatchLevel.EXCELLENT
    if score >= good:
        return MatchLevel.GOOD
    if score >= fair:
        return MatchLevel.FAIR
    return MatchLevel.BASIC


class DistanceEngine:
    """Provider-backed distances with cached routes and great-circle fallback."""

    def __init__(self, routing: RoutingProvider, cache: GeoCache, settings: Settings) -> None:
        self.routing = routing
        self.cache = cache
        self.settings = settings

    def _key(self, kind: str, **params) -> str:
        return make_cache_key(kind, self.settings.GEO_CACHE_KEY_PRECISION, **params)

    async def route(self, origin: LatLng, destination: LatLng, profile: str = "driving") -> Outcome[Route | None]:
        key = self._key("route", origin=origin, destination=destination, profile=profile)
        cached = decode_hit(key, await self.cache.get(key), Route.from_dict)
        if cached is not None:
            return Outcome.exact(cached)
        outcome = await attempt(
            self.routing.route(origin, destination, profile),
            None,
            timeout=self.settings.PROVIDER_TIMEOUT_SECONDS,
            label="routing",
        )
        if outcome.value is not None:
            await self.cache.set(key, outcome.value.to_dict())
        return outcome

    async def routed_distance(self, a: LatLng, b: LatLng, profile: str = "driving") -> Outcome[float]:
        """Route distance in meters; great-circle distance whenever the route cannot be obtained."""
        outcome = await self.route(a, b, profile)
        if outcome.value is None:
            return Outcome.fallback(great_circle_distance(a, b), outcome.reason or "routing: no route")
        return Outcome.exact(outcome.value.distance_m)

    async def route_overlap(
        self,
        route_a: tuple[LatLng, LatLng],
        route_b: tuple[LatLng, LatLng],
        profile: str = "driving",
    ) -> Outcome[float]:
        """Fraction of overlap between the two trips' buffered paths. Exactly 0 unless both geometries exist."""
        first, second = await asyncio.gather(
            self.route(route_a[0], route_a[1], profile),
            self.route(route_b[0], route_b[1], profile),
        )
        if first.value is None or second.value is None:
            reason = first.reason or second.reason or "routing: no route"
            return Outcome.fallback(0.0, reason)
        if not first.value.geometry or not second.value.geometry:
            return Outcome.fallback(0.0, "routing: route geometry unavailable")
        return Outcome.exact(
            corridor_overlap(first.value.geometry, second.value.geometry, self.settings.ROUTE_CORRIDOR_M)
        )

    def score(self, source_distance_m: float, dest_distance_m: float) -> float:
        s = self.settings
        return match_score(
            source_distance_m,
            dest_distance_m,
            cap_m=s.MATCH_DISTANCE_CAP_M,
            source_weight=s.MATCH_SOURCE_WEIGHT,
            dest_weight=s.MATCH_DEST_WEIGHT,
        )

    def level(self, score: float) -> MatchLevel:
        s = self.settings
        return match_level(score, s.MATCH_LEVEL_EXCELLENT, s.MATCH_LEVEL_GOOD, s.MATCH_LEVEL_FAIR)

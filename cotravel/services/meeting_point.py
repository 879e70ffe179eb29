"""Pick a fair, safe place for two travellers to meet.

Pipeline per request: midpoint of the two origins -> public places around it ->
cheapest place by weighted travel distance -> safety and fairness scoring.
Every provider failure degrades to a documented fallback (midpoint, great-circle
distance, neutral safety score) instead of raising.
"""
import asyncio
import logging
import math

from cotravel.config import Settings
from cotravel.schemas.meeting import Coordinates, MeetingPointCandidate, MeetingPointResult, RefreshResult
from cotravel.services.distance import DistanceEngine, great_circle_distance
from cotravel.services.geo import LatLng, PointOfInterest, SafetyFeatures
from cotravel.services.geo_cache import GeoCache, as_str, decode_hit, make_cache_key
from cotravel.services.nominatim import ADDRESS_PLACEHOLDER
from cotravel.services.outcome import Outcome, attempt
from cotravel.services.providers import MEETING_POINT_CATEGORIES, GeocodingProvider, PoiProvider

logger = logging.getLogger(__name__)

FALLBACK_FACTORS = ["calculated_location", "requires_verification"]
NEAR_MIDPOINT_M = 500
POPULAR_IMPORTANCE = 0.7
BUSY_AREA_SHOPS = 3


def midpoint(a: LatLng, b: LatLng) -> LatLng:
    """Arithmetic mean of lat and lng.

    Not geodesically exact; the error is negligible at urban scale, which is the only
    scale at which two people agree to meet. Not meant for points across the antimeridian.
    """
    return LatLng(lat=(a.lat + b.lat) / 2, lng=(a.lng + b.lng) / 2)


def is_disallowed(poi: PointOfInterest, keywords: list[str]) -> bool:
    haystack = f"{poi.name} {poi.category}".lower()
    return any(k.lower() in haystack for k in keywords if k)


def weighted_cost(source_distances: list[float], dest_distances: list[float], dest_weight: float = 0.5) -> float:
    return sum(source_distances) + dest_weight * sum(dest_distances)


def select_min_cost(costs: list[float]) -> int:
    """Index of the cheapest entry; the earliest one wins ties."""
    if not costs:
        raise ValueError("no costs to select from")
    best = 0
    for i, cost in enumerate(costs):
        if cost < costs[best]:
            best = i
    return best


def fairness_score(d1: float, d2: float) -> float:
    """min/max of the two parties' distances; 1.0 is a perfectly equal burden."""
    d1, d2 = max(d1, 0.0), max(d2, 0.0)
    longest = max(d1, d2)
    if longest == 0:
        return 1.0
    return min(d1, d2) / longest


def safety_score(features: SafetyFeatures, settings: Settings) -> float:
    """Base score plus capped per-feature increments, clamped to [0, 1]."""
    s = settings
    increments = (
        min(max(features.police, 0) * s.SAFETY_POLICE_WEIGHT, s.SAFETY_POLICE_CAP),
        min(max(features.hospital, 0) * s.SAFETY_HOSPITAL_WEIGHT, s.SAFETY_HOSPITAL_CAP),
        min(max(features.street_lamps, 0) * s.SAFETY_LAMP_WEIGHT, s.SAFETY_LAMP_CAP),
        min(max(features.shops, 0) * s.SAFETY_SHOP_WEIGHT, s.SAFETY_SHOP_CAP),
        min(max(features.commercial, 0) * s.SAFETY_COMMERCIAL_WEIGHT, s.SAFETY_COMMERCIAL_CAP),
    )
    return min(max(s.SAFETY_BASE + sum(increments), 0.0), 1.0)


def safety_factors(
    candidate: MeetingPointCandidate,
    kinds: list[str],
    features: SafetyFeatures | None,
) -> list[str]:
    factors = []
    if candidate.category == "transport":
        factors.append("public_transport")
    if "amenity" in kinds:
        factors.append("public_amenity")
    if candidate.importance > POPULAR_IMPORTANCE:
        factors.append("popular_location")
    if candidate.distance_from_midpoint_m < NEAR_MIDPOINT_M:
        factors.append("near_midpoint")
    if features is not None:
        if features.police:
            factors.append("police_nearby")
        if features.hospital:
            factors.append("hospital_nearby")
        if features.street_lamps:
            factors.append("well_lit")
        if features.shops >= BUSY_AREA_SHOPS:
            factors.append("busy_area")
        if features.commercial:
            factors.append("commercial_area")
    return factors or ["general_location"]


def walk_minutes(distance_m: float, speed_m_per_min: float) -> int:
    return math.ceil(distance_m / speed_m_per_min)


def _decode_places(value) -> list[PointOfInterest]:
    if not isinstance(value, list):
        raise TypeError("expected a list of places")
    return [PointOfInterest.from_dict(d) for d in value]


def _coords(p: LatLng) -> Coordinates:
    return Coordinates(lat=p.lat, lng=p.lng)


def to_candidate(poi: PointOfInterest, center: LatLng, rank: int | None = None) -> MeetingPointCandidate:
    return MeetingPointCandidate(
        coordinates=_coords(poi.location),
        name=poi.name,
        address=poi.address,
        category=poi.category,
        importance=poi.importance,
        amenities=list(poi.amenities),
        distance_from_midpoint_m=great_circle_distance(center, poi.location),
        rank=rank,
    )


class MeetingPointOptimizer:
    def __init__(
        self,
        distance: DistanceEngine,
        pois: PoiProvider,
        geocoder: GeocodingProvider,
        cache: GeoCache,
        settings: Settings,
    ) -> None:
        self.distance = distance
        self.pois = pois
        self.geocoder = geocoder
        self.cache = cache
        self.settings = settings
        self._routing_slots = asyncio.Semaphore(max(settings.MEETING_ROUTING_CONCURRENCY, 1))

    def _key(self, kind: str, **params) -> str:
        return make_cache_key(kind, self.settings.GEO_CACHE_KEY_PRECISION, **params)

    async def nearby_candidates(self, center: LatLng) -> Outcome[list[PointOfInterest]]:
        """Public places around center, disallowed ones removed, provider order kept."""
        radius = self.settings.MEETING_SEARCH_RADIUS_M
        key = self._key("pois", center=center, radius=radius)
        cached = decode_hit(key, await self.cache.get(key), _decode_places)
        if cached is not None:
            return Outcome.exact(cached)
        found = await attempt(
            self.pois.nearby(center, radius, MEETING_POINT_CATEGORIES),
            [],
            timeout=self.settings.PROVIDER_TIMEOUT_SECONDS,
            label="poi search",
        )
        keywords = self.settings.MEETING_DISALLOWED_KEYWORDS
        places = [p for p in found.value if not is_disallowed(p, keywords)]
        if not found.degraded:
            await self.cache.set(key, [p.to_dict() for p in places])
        return Outcome(value=places, degraded=found.degraded, reason=found.reason)

    async def _safety_features(self, point: LatLng) -> Outcome[SafetyFeatures | None]:
        key = self._key("safety", point=point)
        cached = decode_hit(key, await self.cache.get(key), lambda v: SafetyFeatures(**v))
        if cached is not None:
            return Outcome.exact(cached)
        outcome = await attempt(
            self.pois.safety_features(point),
            None,
            timeout=self.settings.PROVIDER_TIMEOUT_SECONDS,
            label="safety features",
        )
        if outcome.value is not None:
            await self.cache.set(key, outcome.value.to_dict())
        return outcome

    async def _address(self, point: LatLng, known: str = "") -> str:
        if known:
            return known
        key = self._key("reverse", point=point)
        cached = decode_hit(key, await self.cache.get(key), as_str)
        if cached is not None:
            return cached
        outcome = await attempt(
            self.geocoder.reverse(point),
            ADDRESS_PLACEHOLDER,
            timeout=self.settings.PROVIDER_TIMEOUT_SECONDS,
            label="reverse geocoding",
        )
        if not outcome.degraded and outcome.value != ADDRESS_PLACEHOLDER:
            await self.cache.set(key, outcome.value)
        return outcome.value

    async def _leg(self, origin: LatLng, destination: LatLng) -> Outcome[float]:
        async with self._routing_slots:
            return await self.distance.routed_distance(origin, destination)

    async def _cost(
        self,
        place: LatLng,
        sources: list[LatLng],
        destinations: list[LatLng],
    ) -> tuple[float, bool]:
        legs = await asyncio.gather(
            *(self._leg(s, place) for s in sources),
            *(self._leg(place, d) for d in destinations),
        )
        to_place = [o.value for o in legs[: len(sources)]]
        onwards = [o.value for o in legs[len(sources):]]
        cost = weighted_cost(to_place, onwards, self.settings.MEETING_DEST_WEIGHT)
        return cost, any(o.degraded for o in legs)

    def _result(
        self,
        place: MeetingPointCandidate,
        center: LatLng,
        user_source: LatLng,
        companion_source: LatLng,
        *,
        address: str,
        score: float,
        factors: list[str],
        source: str,
        reasons: list[str],
    ) -> MeetingPointResult:
        spot = LatLng(place.coordinates.lat, place.coordinates.lng)
        user_m = great_circle_distance(user_source, spot)
        companion_m = great_circle_distance(companion_source, spot)
        speed = self.settings.WALKING_SPEED_M_PER_MIN
        return MeetingPointResult(
            coordinates=place.coordinates,
            name=place.name,
            address=address,
            category=place.category,
            importance=place.importance,
            amenities=place.amenities,
            distance_from_midpoint_m=place.distance_from_midpoint_m,
            safety_score=score,
            safety_factors=factors,
            user_distance_m=user_m,
            companion_distance_m=companion_m,
            user_walk_minutes=walk_minutes(user_m, speed),
            companion_walk_minutes=walk_minutes(companion_m, speed),
            fairness_score=fairness_score(user_m, companion_m),
            midpoint=_coords(center),
            is_exact_midpoint=place.distance_from_midpoint_m < self.settings.MEETING_EXACT_MIDPOINT_M,
            source=source,
            degraded=bool(reasons),
            degraded_reasons=reasons,
        )

    def _midpoint_place(self, center: LatLng, name: str = "Calculated Midpoint", rank: int | None = None) -> MeetingPointCandidate:
        return MeetingPointCandidate(
            coordinates=_coords(center),
            name=name,
            address="",
            category="midpoint",
            distance_from_midpoint_m=0.0,
            rank=rank,
        )

    async def optimize(
        self,
        user_source: LatLng,
        companion_source: LatLng,
        user_destination: LatLng | None = None,
        companion_destination: LatLng | None = None,
    ) -> MeetingPointResult:
        center = midpoint(user_source, companion_source)
        reasons: list[str] = []
        found = await self.nearby_candidates(center)
        if found.degraded:
            reasons.append(found.reason or "poi search failed")
        places = found.value[: self.settings.MEETING_MAX_CANDIDATES]

        if not places:
            address = await self._address(center)
            return self._result(
                self._midpoint_place(center),
                center,
                user_source,
                companion_source,
                address=address,
                score=self.settings.MEETING_FALLBACK_SAFETY,
                factors=list(FALLBACK_FACTORS),
                source="calculated",
                reasons=reasons,
            )

        sources = [user_source, companion_source]
        destinations = [d for d in (user_destination, companion_destination) if d is not None]
        costs = await asyncio.gather(*(self._cost(p.location, sources, destinations) for p in places))
        if any(approximate for _, approximate in costs):
            reasons.append("routing: great-circle distances used for some legs")
        best = places[select_min_cost([cost for cost, _ in costs])]
        logger.debug("meeting point %s chosen among %d candidates", best.name, len(places))

        features, address = await asyncio.gather(
            self._safety_features(best.location),
            self._address(best.location, best.address),
        )
        candidate = to_candidate(best, center)
        if features.value is None:
            reasons.append(features.reason or "safety features unavailable")
            score = self.settings.SAFETY_BASE
        else:
            score = safety_score(features.value, self.settings)
        return self._result(
            candidate,
            center,
            user_source,
            companion_source,
            address=address,
            score=score,
            factors=safety_factors(candidate, best.kinds, features.value),
            source="openstreetmap",
            reasons=reasons,
        )

    async def alternatives(self, user_source: LatLng, companion_source: LatLng, top_n: int | None = None) -> RefreshResult:
        """Ranked places near the midpoint (closest first), for when the suggestion doesn't suit."""
        top_n = top_n or self.settings.MEETING_REFRESH_TOP_N
        center = midpoint(user_source, companion_source)
        found = await self.nearby_candidates(center)
        ranked = sorted(
            (to_candidate(p, center) for p in found.value),
            key=lambda c: c.distance_from_midpoint_m,
        )[:top_n]
        if not ranked:
            ranked = [self._midpoint_place(center)]
        alternatives = [c.model_copy(update={"rank": i}) for i, c in enumerate(ranked, start=1)]
        return RefreshResult(alternatives=alternatives, original_midpoint=_coords(center), degraded=found.degraded)

    def fallback_result(self, user_source: LatLng, companion_source: LatLng, reason: str) -> MeetingPointResult:
        """Midpoint answer with no provider calls, for when optimization itself failed."""
        center = midpoint(user_source, companion_source)
        return self._result(
            self._midpoint_place(center, name="Suggested Meeting Point (fallback)"),
            center,
            user_source,
            companion_source,
            address=ADDRESS_PLACEHOLDER,
            score=self.settings.MEETING_FALLBACK_SAFETY,
            factors=list(FALLBACK_FACTORS),
            source="fallback",
            reasons=[reason],
        )

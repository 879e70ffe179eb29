"""Find co-travel candidates for an intent and suggest where the two should meet."""
import asyncio
import logging
from datetime import datetime, timedelta

from cotravel.config import Settings
from cotravel.errors import NotFoundError, ValidationError
from cotravel.schemas.intent import CandidateMatch, MatchMetrics, Place, TravelIntent, TravelIntentCreate, TravelMode
from cotravel.schemas.meeting import MeetingPointResult, RefreshResult
from cotravel.services.candidate_filter import find_candidate_intents
from cotravel.services.distance import DistanceEngine, great_circle_distance
from cotravel.services.geo import LatLng
from cotravel.services.intent_store import IntentFilter, IntentStore
from cotravel.services.meeting_point import MeetingPointOptimizer
from cotravel.services.outcome import Outcome

logger = logging.getLogger(__name__)


def _require(**fields) -> None:
    missing = [name for name, value in fields.items() if value is None or value == ""]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)


def _point(place: Place | None) -> LatLng | None:
    if place is None or place.coordinates is None:
        return None
    return LatLng.from_lng_lat(place.coordinates)


class MatchingOrchestrator:
    def __init__(
        self,
        store: IntentStore,
        distance: DistanceEngine,
        optimizer: MeetingPointOptimizer,
        settings: Settings,
    ) -> None:
        self.store = store
        self.distance = distance
        self.optimizer = optimizer
        self.settings = settings

    async def create_intent(self, payload: TravelIntentCreate) -> TravelIntent:
        return await self.store.insert(payload)

    async def find_candidates(
        self,
        requester_id: str | None,
        source: Place | None,
        destination: Place | None,
        travel_mode: TravelMode | None,
        travel_time: datetime | None,
    ) -> list[CandidateMatch]:
        """
        Other active intents in the same mode within the time window, ranked by origin proximity.
        Intents without coordinates can't be ranked and are skipped.
        """
        _require(
            requester_id=requester_id,
            source=source,
            destination=destination,
            travel_mode=travel_mode,
            travel_time=travel_time,
        )
        my_source, my_dest = _point(source), _point(destination)
        missing = [n for n, p in (("source.coordinates", my_source), ("destination.coordinates", my_dest)) if p is None]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)

        intents = await find_candidate_intents(
            self.store,
            requester_id,
            travel_mode,
            travel_time,
            window=timedelta(minutes=self.settings.MATCH_TIME_WINDOW_MINUTES),
            limit=self.settings.MATCH_CANDIDATE_LIMIT,
        )
        rankable = []
        for intent in intents:
            their_source, their_dest = _point(intent.source), _point(intent.destination)
            if their_source is None or their_dest is None:
                logger.debug("skipping intent %s without coordinates", intent.id)
                continue
            rankable.append((intent, their_source, their_dest))

        overlaps: list[Outcome[float] | None] = [None] * len(rankable)
        if self.settings.MATCH_INCLUDE_ROUTE_OVERLAP and rankable:
            overlaps = await asyncio.gather(
                *(self.distance.route_overlap((my_source, my_dest), (s, d)) for _, s, d in rankable)
            )

        results = []
        for (intent, their_source, their_dest), overlap in zip(rankable, overlaps):
            d_origin = great_circle_distance(my_source, their_source)
            d_dest = great_circle_distance(my_dest, their_dest)
            score = self.distance.score(d_origin, d_dest)
            results.append(
                CandidateMatch(
                    intent=intent,
                    metrics=MatchMetrics(
                        distance_from_requester_m=round(d_origin, 1),
                        distance_km=round(d_origin / 1000, 1),
                        destination_distance_m=round(d_dest, 1),
                        match_score=round(score, 1),
                        match_level=self.distance.level(score),
                        route_overlap=round(overlap.value, 3) if overlap else None,
                        route_overlap_degraded=overlap.degraded if overlap else False,
                    ),
                )
            )
        results.sort(key=lambda c: (c.metrics.distance_from_requester_m, c.intent.id))
        return results

    async def _own_intent(self, requester_id: str) -> TravelIntent | None:
        mine = await self.store.find(IntentFilter(requester_id=requester_id, is_active=True))
        if not mine:
            return None
        # most recently created one wins
        return max(mine, key=lambda i: i.created_at or i.travel_time)

    async def suggest_meeting_point(
        self,
        requester_id: str | None,
        companion_id: str | None,
        user_source: tuple[float, float] | None = None,
        companion_source: tuple[float, float] | None = None,
    ) -> MeetingPointResult:
        """
        Resolve both starting points and run the optimizer.
        An unexpected optimizer failure still yields a midpoint answer, marked degraded.
        """
        _require(requester_id=requester_id, companion_id=companion_id)
        companion = await self.store.find_by_id(companion_id)
        if companion is None:
            raise NotFoundError("Companion travel intent not found")

        own = await self._own_intent(requester_id)
        user_start = LatLng.from_lng_lat(user_source) if user_source else (_point(own.source) if own else None)
        companion_start = LatLng.from_lng_lat(companion_source) if companion_source else _point(companion.source)
        missing = [n for n, p in (("user_source", user_start), ("companion_source", companion_start)) if p is None]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)

        user_dest = _point(own.destination) if own else None
        try:
            return await self.optimizer.optimize(user_start, companion_start, user_dest, _point(companion.destination))
        except Exception:
            # unexpected failure: answer with the midpoint, marked degraded
            logger.exception("meeting point optimization failed for %s/%s", requester_id, companion_id)
            return self.optimizer.fallback_result(user_start, companion_start, "optimizer_failure")

    async def refresh_meeting_point(
        self,
        user_location: tuple[float, float] | None,
        companion_location: tuple[float, float] | None,
        top_n: int | None = None,
    ) -> RefreshResult:
        _require(user_location=user_location, companion_location=companion_location)
        return await self.optimizer.alternatives(
            LatLng.from_lng_lat(user_location),
            LatLng.from_lng_lat(companion_location),
            top_n,
        )

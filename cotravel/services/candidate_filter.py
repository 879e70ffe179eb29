"""Select active intents compatible in mode and time with a requester."""
from datetime import datetime, timedelta

from cotravel.schemas.intent import TravelIntent, TravelMode
from cotravel.services.intent_store import IntentFilter, IntentStore

DEFAULT_WINDOW = timedelta(minutes=30)
DEFAULT_LIMIT = 20


def candidate_filter(
    requester_id: str,
    travel_mode: TravelMode,
    travel_time: datetime,
    window: timedelta = DEFAULT_WINDOW,
    limit: int = DEFAULT_LIMIT,
) -> IntentFilter:
    """Same mode, someone else, travel time within [t - window, t + window]."""
    return IntentFilter(
        travel_mode=travel_mode,
        exclude_requester_id=requester_id,
        time_from=travel_time - window,
        time_to=travel_time + window,
        is_active=True,
        limit=limit,
    )


async def find_candidate_intents(
    store: IntentStore,
    requester_id: str,
    travel_mode: TravelMode,
    travel_time: datetime,
    *,
    window: timedelta = DEFAULT_WINDOW,
    limit: int = DEFAULT_LIMIT,
) -> list[TravelIntent]:
    """Result order is whatever the store returns; callers re-sort."""
    return await store.find(candidate_filter(requester_id, travel_mode, travel_time, window, limit))

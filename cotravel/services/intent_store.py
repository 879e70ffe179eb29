"""Intent Store: read/filter/insert access to travel intents.

SqlIntentStore is the production store; InMemoryIntentStore serves as a local fixture.
"""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cotravel.models.intent import TravelIntentRecord
from cotravel.schemas.intent import Place, TravelIntent, TravelIntentCreate, TravelMode


@dataclass(frozen=True)
class IntentFilter:
    """Predicates over stored intents; None means "don't filter on this"."""
    travel_mode: TravelMode | None = None
    requester_id: str | None = None
    exclude_requester_id: str | None = None
    # inclusive range on travel_time
    time_from: datetime | None = None
    time_to: datetime | None = None
    is_active: bool | None = True
    limit: int | None = None


class IntentStore(Protocol):
    async def find(self, flt: IntentFilter) -> list[TravelIntent]:
        ...

    async def find_by_id(self, intent_id: str) -> TravelIntent | None:
        ...

    async def insert(self, payload: TravelIntentCreate) -> TravelIntent:
        ...


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; naive values are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _place(address: str | None, lng: float | None, lat: float | None) -> Place:
    coords = (lng, lat) if lng is not None and lat is not None else None
    return Place(address=address, coordinates=coords)


def record_to_intent(row: TravelIntentRecord) -> TravelIntent:
    return TravelIntent(
        id=row.id,
        requester_id=row.requester_id,
        source=_place(row.source_address, row.source_lng, row.source_lat),
        destination=_place(row.destination_address, row.destination_lng, row.destination_lat),
        travel_mode=TravelMode(row.travel_mode),
        travel_time=_as_utc(row.travel_time),
        is_active=row.is_active,
        created_at=_as_utc(row.created_at) if row.created_at else None,
        updated_at=_as_utc(row.updated_at) if row.updated_at else None,
    )


class SqlIntentStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def find(self, flt: IntentFilter) -> list[TravelIntent]:
        q = select(TravelIntentRecord)
        if flt.travel_mode is not None:
            q = q.where(TravelIntentRecord.travel_mode == flt.travel_mode.value)
        if flt.requester_id is not None:
            q = q.where(TravelIntentRecord.requester_id == flt.requester_id)
        if flt.exclude_requester_id is not None:
            q = q.where(TravelIntentRecord.requester_id != flt.exclude_requester_id)
        if flt.time_from is not None:
            q = q.where(TravelIntentRecord.travel_time >= flt.time_from)
        if flt.time_to is not None:
            q = q.where(TravelIntentRecord.travel_time <= flt.time_to)
        if flt.is_active is not None:
            q = q.where(TravelIntentRecord.is_active.is_(flt.is_active))
        q = q.order_by(TravelIntentRecord.travel_time)
        if flt.limit is not None:
            q = q.limit(flt.limit)
        async with self.session_factory() as db:
            rows = (await db.execute(q)).scalars().all()
        return [record_to_intent(r) for r in rows]

    async def find_by_id(self, intent_id: str) -> TravelIntent | None:
        async with self.session_factory() as db:
            row = (
                await db.execute(select(TravelIntentRecord).where(TravelIntentRecord.id == intent_id))
            ).scalar_one_or_none()
        return record_to_intent(row) if row else None

    async def insert(self, payload: TravelIntentCreate) -> TravelIntent:
        src, dst = payload.source.coordinates, payload.destination.coordinates
        record = TravelIntentRecord(
            requester_id=payload.requester_id,
            source_address=payload.source.address,
            source_lng=src[0] if src else None,
            source_lat=src[1] if src else None,
            destination_address=payload.destination.address,
            destination_lng=dst[0] if dst else None,
            destination_lat=dst[1] if dst else None,
            travel_mode=payload.travel_mode.value,
            travel_time=payload.travel_time,
            is_active=payload.is_active,
        )
        async with self.session_factory() as db:
            db.add(record)
            await db.commit()
            await db.refresh(record)
        return record_to_intent(record)


class InMemoryIntentStore:
    """Dict-backed store; insertion order is not guaranteed to survive filtering."""

    def __init__(self, intents: list[TravelIntent] | None = None) -> None:
        self._intents: dict[str, TravelIntent] = {i.id: i for i in intents or []}
        self._lock = asyncio.Lock()

    @staticmethod
    def _matches(intent: TravelIntent, flt: IntentFilter) -> bool:
        if flt.travel_mode is not None and intent.travel_mode != flt.travel_mode:
            return False
        if flt.requester_id is not None and intent.requester_id != flt.requester_id:
            return False
        if flt.exclude_requester_id is not None and intent.requester_id == flt.exclude_requester_id:
            return False
        if flt.time_from is not None and intent.travel_time < flt.time_from:
            return False
        if flt.time_to is not None and intent.travel_time > flt.time_to:
            return False
        if flt.is_active is not None and intent.is_active != flt.is_active:
            return False
        return True

    async def find(self, flt: IntentFilter) -> list[TravelIntent]:
        async with self._lock:
            found = [i for i in self._intents.values() if self._matches(i, flt)]
        return found[: flt.limit] if flt.limit is not None else found

    async def find_by_id(self, intent_id: str) -> TravelIntent | None:
        return self._intents.get(intent_id)

    async def insert(self, payload: TravelIntentCreate) -> TravelIntent:
        now = datetime.now(timezone.utc)
        intent = TravelIntent(
            id=uuid.uuid4().hex,
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        )
        async with self._lock:
            self._intents[intent.id] = intent
        return intent

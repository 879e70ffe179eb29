"""Travel intent model: where a requester is going, how, and when."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, String, func
from sqlalchemy.orm import Mapped, mapped_column

from cotravel.models.base import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class TravelIntentRecord(Base):
    __tablename__ = "travel_intents"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    requester_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    # WGS84 coordinates; nullable because an intent may carry only an address
    source_address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    source_lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    source_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    destination_address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    destination_lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    destination_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    travel_mode: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    travel_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

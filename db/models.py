from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Text,
    Enum as SAEnum,
    Float,
    ForeignKey,
    UniqueConstraint,
    Boolean,
    Index,
)
from sqlalchemy import DateTime as SADateTime
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from common.models import BookingStatus
from db.session import engine, Session

class Base(DeclarativeBase):
    pass

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def new_id() -> str:
    return str(uuid.uuid4())

# ---------- Models ----------
class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("telegram_id", name="uq_users_telegram_id"),)
    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    name: Mapped[Optional[str]] = mapped_column(Text)
    telegram_id: Mapped[Optional[str]] = mapped_column(Text)
    email: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(SADateTime(timezone=True), default=utcnow)

class Court(Base):
    __tablename__ = "courts"
    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(Text)
    court_type: Mapped[Optional[str]] = mapped_column(Text)   # indoor | outdoor | paddle | tennis
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(SADateTime(timezone=True), default=utcnow)

class Booking(Base):
    __tablename__ = "bookings"
    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    court_id: Mapped[str] = mapped_column(Text, ForeignKey("courts.id", ondelete="CASCADE"))
    booked_by_user_id: Mapped[Optional[str]] = mapped_column(Text, ForeignKey("users.id", ondelete="SET NULL"))
    # stored in UTC
    start_time: Mapped[datetime] = mapped_column(SADateTime(timezone=True))
    end_time: Mapped[datetime] = mapped_column(SADateTime(timezone=True))
    status: Mapped[BookingStatus] = mapped_column(
        SAEnum(BookingStatus, name="booking_status", native_enum=False),
        default=BookingStatus.confirmed,
    )
    total_amount: Mapped[Optional[float]] = mapped_column(Float)
    currency: Mapped[Optional[str]] = mapped_column(Text)
    booking_purpose: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(SADateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(SADateTime(timezone=True), default=utcnow, onupdate=utcnow)

Index("ix_bookings_court_window", Booking.court_id, Booking.start_time, Booking.end_time)
Index("ix_bookings_user_status", Booking.booked_by_user_id, Booking.status)

async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

__all__ = [
    "engine",
    "Session",
    "Base",
    "User",
    "Court",
    "Booking",
    "BookingStatus",
    "init_db",
]

# db/repositories.py
"""
SQLAlchemy adapters for the repository ports in services/repositories.py.

Datetimes are stored in UTC; SQLite hands them back naive, so every read goes
through _dt_utc. A booking blocks its court for [start_time, end_time) unless
it is cancelled.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from common.models import Booking, BookingStatus, Court, NewBooking, Page, User
from common.utils import _dt_utc
from db.models import Booking as BookingRow
from db.models import Court as CourtRow
from db.models import User as UserRow
from db.session import Session
from services.repositories import BookingConflictError

__all__ = [
    "BookingConflictError",
    "SqlUserRepository",
    "SqlCourtRepository",
    "SqlBookingRepository",
]


# ------------ mappers ------------

def _user_out(row: UserRow) -> User:
    return User(id=row.id, name=row.name, telegram_id=row.telegram_id, email=row.email)


def _court_out(row: CourtRow) -> Court:
    return Court(id=row.id, name=row.name, court_type=row.court_type, is_active=bool(row.is_active))


def _booking_out(row: BookingRow) -> Booking:
    return Booking(
        id=row.id,
        court_id=row.court_id,
        start_time=_dt_utc(row.start_time),
        end_time=_dt_utc(row.end_time),
        status=BookingStatus(row.status),
        booked_by_user_id=row.booked_by_user_id,
        total_amount=row.total_amount,
        currency=row.currency,
        booking_purpose=row.booking_purpose,
        notes=row.notes,
    )


def _overlapping(court_id: str, start: datetime, end: datetime):
    return and_(
        BookingRow.court_id == court_id,
        BookingRow.status != BookingStatus.cancelled,
        BookingRow.start_time < end,
        BookingRow.end_time > start,
    )


def _window(start: Any, end: Any):
    s, e = _dt_utc(start), _dt_utc(end)
    if s is None or e is None or e <= s:
        raise ValueError("Booking window must have start < end")
    return s, e


# ------------ repositories ------------

class SqlUserRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = Session):
        self.session_factory = session_factory

    async def get_by_id(self, user_id: str) -> Optional[User]:
        """Look up by internal id, then by Telegram id."""
        if not user_id:
            return None
        async with self.session_factory() as db:
            row = await db.get(UserRow, str(user_id))
            if row is None:
                row = (
                    await db.execute(select(UserRow).where(UserRow.telegram_id == str(user_id)))
                ).scalar_one_or_none()
            return _user_out(row) if row else None

    async def create(self, *, name: Optional[str] = None, telegram_id: Optional[str] = None, email: Optional[str] = None) -> User:
        async with self.session_factory() as db:
            row = UserRow(name=name, telegram_id=telegram_id, email=email)
            db.add(row)
            await db.commit()
            return _user_out(row)


class SqlCourtRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = Session):
        self.session_factory = session_factory

    async def find_many(
        self,
        *,
        court_type: Optional[str] = None,
        is_active: Optional[bool] = True,
    ) -> Page[Court]:
        stmt = select(CourtRow)
        if court_type:
            stmt = stmt.where(func.lower(CourtRow.court_type) == court_type.lower())
        if is_active is not None:
            stmt = stmt.where(CourtRow.is_active == is_active)
        # catalog order
        stmt = stmt.order_by(CourtRow.created_at, CourtRow.name)
        async with self.session_factory() as db:
            rows = (await db.execute(stmt)).scalars().all()
        return Page(data=[_court_out(r) for r in rows], total=len(rows))

    async def create(self, *, name: str, court_type: Optional[str] = None, is_active: bool = True) -> Court:
        async with self.session_factory() as db:
            row = CourtRow(name=name, court_type=court_type, is_active=is_active)
            db.add(row)
            await db.commit()
            return _court_out(row)


class SqlBookingRepository:
    # fields a caller may patch; everything else is fixed at creation
    UPDATABLE = ("status", "notes")

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = Session):
        self.session_factory = session_factory

    async def is_court_available(self, court_id: str, start: datetime, end: datetime) -> bool:
        s, e = _window(start, end)
        async with self.session_factory() as db:
            clashes = await db.scalar(
                select(func.count()).select_from(BookingRow).where(_overlapping(court_id, s, e))
            )
        return not clashes

    async def create(self, booking: NewBooking) -> Booking:
        s, e = _window(booking.start_time, booking.end_time)
        async with self.session_factory() as db:
            async with db.begin():
                clash = await db.scalar(
                    select(BookingRow.id).where(_overlapping(booking.court_id, s, e)).limit(1)
                )
                if clash:
                    raise BookingConflictError(
                        f"Court {booking.court_id} is already booked between {s.isoformat()} and {e.isoformat()}"
                    )
                row = BookingRow(
                    court_id=booking.court_id,
                    booked_by_user_id=booking.booked_by_user_id,
                    start_time=s,
                    end_time=e,
                    status=booking.status,
                    total_amount=booking.total_amount,
                    currency=booking.currency,
                    booking_purpose=booking.booking_purpose,
                    notes=booking.notes,
                )
                db.add(row)
            return _booking_out(row)

    async def find_many(
        self,
        *,
        user_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        court_id: Optional[str] = None,
    ) -> Page[Booking]:
        stmt = select(BookingRow)
        if user_id:
            stmt = stmt.where(BookingRow.booked_by_user_id == user_id)
        if status is not None:
            stmt = stmt.where(BookingRow.status == BookingStatus(status))
        if court_id:
            stmt = stmt.where(BookingRow.court_id == court_id)
        stmt = stmt.order_by(BookingRow.start_time)
        async with self.session_factory() as db:
            rows = (await db.execute(stmt)).scalars().all()
        return Page(data=[_booking_out(r) for r in rows], total=len(rows))

    async def update(self, booking_id: str, **patch: Any) -> Booking:
        unknown = set(patch) - set(self.UPDATABLE)
        if unknown:
            raise ValueError(f"Cannot update booking fields: {sorted(unknown)}")
        async with self.session_factory() as db:
            row = await db.get(BookingRow, booking_id)
            if not row:
                raise RuntimeError("Booking not found")
            if "status" in patch:
                row.status = BookingStatus(patch["status"])
            if "notes" in patch:
                row.notes = patch["notes"]
            await db.commit()
            return _booking_out(row)

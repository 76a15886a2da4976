# services/repositories.py
"""
Persistence ports consumed by the booking flow.

The orchestrator only talks to these protocols; db/repositories.py holds the
SQLAlchemy adapters and tests pass AsyncMock fakes.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol

from common.models import Booking, BookingStatus, Court, NewBooking, Page, User


class BookingConflictError(RuntimeError):
    """The court already has an active booking overlapping the requested window."""


class UserRepository(Protocol):
    async def get_by_id(self, user_id: str) -> Optional[User]: ...


class CourtRepository(Protocol):
    async def find_many(
        self,
        *,
        court_type: Optional[str] = None,
        is_active: Optional[bool] = True,
    ) -> Page[Court]: ...


class BookingRepository(Protocol):
    async def create(self, booking: NewBooking) -> Booking: ...

    async def find_many(
        self,
        *,
        user_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
    ) -> Page[Booking]: ...

    async def update(self, booking_id: str, **patch: Any) -> Booking: ...

    async def is_court_available(self, court_id: str, start: datetime, end: datetime) -> bool: ...

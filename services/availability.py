"""
Court availability
------------------

Exports:
  - AvailabilityChecker.courts(...)              # catalog lookup, optional type filter
  - AvailabilityChecker.first_free_court(...)    # booking: first free court in catalog order
  - AvailabilityChecker.at_time(...)             # one entry per court for a given window
  - AvailabilityChecker.day_slots(...)           # whole-day scan over fixed slots

Every check is a single `is_court_available(court_id, start, end)` call on the
booking repository. Windows are built from venue-local date/time and passed
to the repository in UTC.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional

from common.models import Court
from common.utils import _add_minutes, _local_to_utc
from services.repositories import BookingRepository, CourtRepository


@dataclass
class Window:
    start: datetime
    end: datetime


class AvailabilityChecker:
    def __init__(
        self,
        court_repo: CourtRepository,
        booking_repo: BookingRepository,
        *,
        timezone: str = "UTC",
        opening_time: time = time(8, 0),
        closing_time: time = time(22, 0),
        slot_interval_min: int = 120,
    ):
        self.court_repo = court_repo
        self.booking_repo = booking_repo
        self.timezone = timezone
        self.opening_time = opening_time
        self.closing_time = closing_time
        self.slot_interval_min = slot_interval_min

    def window(self, day: date, start: time, duration_min: int) -> Window:
        begin = _local_to_utc(day, start, self.timezone)
        return Window(begin, begin + timedelta(minutes=duration_min))

    async def courts(self, court_type: Optional[str] = None) -> List[Court]:
        page = await self.court_repo.find_many(court_type=court_type, is_active=True)
        return list(page.data)

    async def is_free(self, court: Court, win: Window) -> bool:
        return bool(await self.booking_repo.is_court_available(court.id, win.start, win.end))

    async def first_free_court(self, courts: List[Court], win: Window) -> Optional[Court]:
        for court in courts:
            if await self.is_free(court, win):
                return court
        return None

    async def at_time(self, courts: List[Court], day: date, start: time, duration_min: int) -> List[Dict[str, Any]]:
        win = self.window(day, start, duration_min)
        out: List[Dict[str, Any]] = []
        for court in courts:
            out.append({
                "courtId": court.id,
                "courtName": court.name,
                "courtType": court.court_type,
                "date": day.isoformat(),
                "time": start.strftime("%H:%M"),
                "isAvailable": await self.is_free(court, win),
            })
        return out

    def slot_starts(self, duration_min: int) -> List[time]:
        """Slot start times from opening, every interval, ending no later than closing."""
        if duration_min <= 0 or self.slot_interval_min <= 0:
            return []
        day = date(2000, 1, 1)
        cur = datetime.combine(day, self.opening_time)
        close = datetime.combine(day, self.closing_time)
        step = timedelta(minutes=self.slot_interval_min)
        length = timedelta(minutes=duration_min)
        out: List[time] = []
        while cur + length <= close:
            out.append(cur.time())
            cur += step
        return out

    async def day_slots(self, courts: List[Court], day: date, duration_min: int) -> List[Dict[str, Any]]:
        """Free (slot, court) pairs for the day, ordered by time then catalog order."""
        out: List[Dict[str, Any]] = []
        for start in self.slot_starts(duration_min):
            win = self.window(day, start, duration_min)
            end_local = _add_minutes(start, duration_min)
            for court in courts:
                if await self.is_free(court, win):
                    out.append({
                        "courtId": court.id,
                        "courtName": court.name,
                        "courtType": court.court_type,
                        "date": day.isoformat(),
                        "time": start.strftime("%H:%M"),
                        "endTime": end_local.strftime("%H:%M"),
                        "isAvailable": True,
                    })
        return out

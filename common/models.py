## common/models.py`

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class CommandKind(str, Enum):
    book_court = "book_court"
    check_availability = "check_availability"
    cancel_booking = "cancel_booking"


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"


@dataclass(frozen=True)
class VoiceCommand:
    command: CommandKind
    date: date
    time: Optional[time] = None                 # None = any time that day
    duration: Optional[int] = None              # minutes
    court_type: Optional[str] = None            # "indoor" | "outdoor" | "paddle" | "tennis"
    player_count: Optional[int] = None
    date_explicit: bool = True                  # False when the date defaulted to today

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "command": self.command.value,
            "date": self.date.isoformat(),
        }
        if self.time is not None:
            out["time"] = self.time.strftime("%H:%M")
        if self.duration is not None:
            out["duration"] = self.duration
        if self.court_type is not None:
            out["courtType"] = self.court_type
        if self.player_count is not None:
            out["playerCount"] = self.player_count
        return out


@dataclass(frozen=True)
class BookingResult:
    success: bool
    message: str
    booking_id: Optional[str] = None
    available_slots: Optional[List[Dict[str, Any]]] = None
    next_steps: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.booking_id is not None:
            out["bookingId"] = self.booking_id
        if self.available_slots is not None:
            out["availableSlots"] = list(self.available_slots)
        if self.next_steps is not None:
            out["nextSteps"] = list(self.next_steps)
        return out


@dataclass
class User:
    id: str
    name: Optional[str] = None
    telegram_id: Optional[str] = None
    email: Optional[str] = None


@dataclass
class Court:
    id: str
    name: str
    court_type: Optional[str] = None
    is_active: bool = True

    def label(self) -> str:
        return f"{self.name} ({self.court_type})" if self.court_type else self.name


@dataclass
class Booking:
    id: str
    court_id: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: BookingStatus = BookingStatus.confirmed
    booked_by_user_id: Optional[str] = None
    total_amount: Optional[float] = None
    currency: Optional[str] = None
    booking_purpose: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class NewBooking:
    court_id: str
    start_time: datetime
    end_time: datetime
    booked_by_user_id: str
    total_amount: float
    currency: str
    booking_purpose: str
    status: BookingStatus = BookingStatus.confirmed
    notes: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)


@dataclass
class Page(Generic[T]):
    data: List[T] = field(default_factory=list)
    total: Optional[int] = None

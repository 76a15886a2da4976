"""
Voice booking service
---------------------

Exports:
  - BookingServiceConfig.from_config(cfg)
  - VoiceBookingService.process_voice_booking(command, user_id, locale=None)

One call = resolve user -> resolve courts -> check availability ->
create / cancel / list -> BookingResult. Business-rule failures come back as
`success=False` results; repository faults are logged and reported as a
generic processing error. Nothing raises past `process_voice_booking`.

`booking.request_timeout_s` bounds the lookups only. The booking write runs
outside it, so a reply never says "failed" for a booking that was stored.

No locking around "check, then create": two concurrent requests for the same
court and window can both pass the availability check. The SQL adapter
re-checks inside its transaction and raises BookingConflictError, which is
reported as "no free courts". A storage-level exclusion constraint is still
needed to close the race completely.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from common.config_loader import cfg_get
from common.messages import msg, msg_list, resolve_locale
from common.models import (
    Booking,
    BookingResult,
    BookingStatus,
    CommandKind,
    Court,
    NewBooking,
    User,
    VoiceCommand,
)
from common.utils import _time_of, _utc_to_local
from services.availability import AvailabilityChecker
from services.repositories import (
    BookingConflictError,
    BookingRepository,
    CourtRepository,
    UserRepository,
)

logger = logging.getLogger("voice-booking")


@dataclass
class BookingServiceConfig:
    default_duration_min: int = 90
    currency: str = "THB"
    purpose: str = "free_play"
    price_per_hour: float = 1500
    timezone: str = "UTC"
    opening_time: time = time(8, 0)
    closing_time: time = time(22, 0)
    slot_interval_min: int = 120
    locale: str = "ru-RU"
    request_timeout_s: Optional[float] = None

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "BookingServiceConfig":
        d = cls()
        timeout = cfg_get(cfg, "booking.request_timeout_s", None)
        return cls(
            default_duration_min=int(cfg_get(cfg, "booking.default_duration_min", d.default_duration_min)),
            currency=str(cfg_get(cfg, "booking.currency", d.currency)),
            purpose=str(cfg_get(cfg, "booking.purpose", d.purpose)),
            price_per_hour=float(cfg_get(cfg, "booking.price_per_hour", d.price_per_hour)),
            timezone=str(cfg_get(cfg, "booking.timezone", d.timezone)),
            opening_time=_time_of(cfg_get(cfg, "booking.opening_time", d.opening_time)),
            closing_time=_time_of(cfg_get(cfg, "booking.closing_time", d.closing_time)),
            slot_interval_min=int(cfg_get(cfg, "booking.slot_interval_min", d.slot_interval_min)),
            locale=resolve_locale(cfg_get(cfg, "booking.locale", d.locale)),
            request_timeout_s=float(timeout) if timeout else None,
        )

    def price_for(self, duration_min: int) -> int:
        return round(self.price_per_hour * duration_min / 60)


@dataclass
class _Reservation:
    """A checked booking waiting to be written."""
    booking: NewBooking
    court: Court
    command: VoiceCommand
    user: User
    duration: int


Outcome = Union[BookingResult, _Reservation]
Handler = Callable[[VoiceCommand, User, str], Awaitable[Outcome]]


def _fail(message: str) -> BookingResult:
    return BookingResult(success=False, message=message)


class VoiceBookingService:
    def __init__(
        self,
        booking_repo: BookingRepository,
        court_repo: CourtRepository,
        user_repo: UserRepository,
        config: Optional[BookingServiceConfig] = None,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.booking_repo = booking_repo
        self.court_repo = court_repo
        self.user_repo = user_repo
        self.config = config or BookingServiceConfig()
        self.clock = clock
        self.availability = AvailabilityChecker(
            court_repo,
            booking_repo,
            timezone=self.config.timezone,
            opening_time=self.config.opening_time,
            closing_time=self.config.closing_time,
            slot_interval_min=self.config.slot_interval_min,
        )
        self._handlers: Dict[CommandKind, Handler] = {
            CommandKind.book_court: self._book_court,
            CommandKind.check_availability: self._check_availability,
            CommandKind.cancel_booking: self._cancel_booking,
        }

    async def process_voice_booking(
        self,
        command: VoiceCommand,
        user_id: str,
        *,
        locale: Optional[str] = None,
    ) -> BookingResult:
        loc = resolve_locale(locale or self.config.locale)
        try:
            if self.config.request_timeout_s:
                outcome = await asyncio.wait_for(
                    self._process(command, user_id, loc),
                    timeout=self.config.request_timeout_s,
                )
            else:
                outcome = await self._process(command, user_id, loc)
            if isinstance(outcome, _Reservation):
                return await self._commit_booking(outcome, loc)
            return outcome
        except asyncio.TimeoutError:
            logger.error(
                "process_voice_booking timed out after %ss (command=%s user=%s)",
                self.config.request_timeout_s, command.command, user_id,
            )
            return _fail(msg("processing_error", loc))
        except Exception:
            logger.exception("process_voice_booking failed (command=%s user=%s)", command.command, user_id)
            return _fail(msg("processing_error", loc))

    async def _process(self, command: VoiceCommand, user_id: str, loc: str) -> Outcome:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            return _fail(msg("user_not_found", loc))

        handler = self._handlers.get(command.command)
        if handler is None:
            return _fail(msg("unknown_command", loc))
        return await handler(command, user, loc)

    # ---------------- book_court ----------------
    async def _book_court(self, command: VoiceCommand, user: User, loc: str) -> Outcome:
        if command.date is None or command.time is None:
            return _fail(msg("date_time_required", loc))

        courts = await self.availability.courts(command.court_type)
        if not courts:
            return _fail(msg("no_courts", loc))

        duration = command.duration or self.config.default_duration_min
        win = self.availability.window(command.date, command.time, duration)
        court = await self.availability.first_free_court(courts, win)
        if court is None:
            return _fail(msg("no_free_courts_at_time", loc))

        new = NewBooking(
            court_id=court.id,
            start_time=win.start,
            end_time=win.end,
            booked_by_user_id=user.id,
            total_amount=self.config.price_for(duration),
            currency=self.config.currency,
            booking_purpose=self.config.purpose,
            status=BookingStatus.confirmed,
        )
        return _Reservation(booking=new, court=court, command=command, user=user, duration=duration)

    async def _commit_booking(self, res: _Reservation, loc: str) -> BookingResult:
        new = res.booking
        try:
            booking = await self.booking_repo.create(new)
        except BookingConflictError as e:
            # taken between the availability check and the write
            logger.info("booking conflict court=%s user=%s: %s", res.court.id, res.user.id, e)
            return _fail(msg("no_free_courts_at_time", loc))
        if not booking or not booking.id:
            raise RuntimeError("Booking repository returned a booking without id")

        logger.info(
            "booked court=%s user=%s start=%s duration=%s amount=%s %s",
            res.court.id, res.user.id, new.start_time.isoformat(), res.duration,
            new.total_amount, new.currency,
        )
        return BookingResult(
            success=True,
            message=msg(
                "booked", loc,
                court=res.court.label(),
                date=res.command.date.isoformat(),
                time=res.command.time.strftime("%H:%M"),
            ),
            booking_id=str(booking.id),
            next_steps=msg_list("booked_steps", loc, amount=new.total_amount, currency=new.currency),
        )

    # ---------------- check_availability ----------------
    async def _check_availability(self, command: VoiceCommand, user: User, loc: str) -> BookingResult:
        steps = msg_list("availability_steps", loc)
        courts = await self.availability.courts(command.court_type)
        if not courts:
            return BookingResult(success=True, message=msg("no_courts", loc), available_slots=[], next_steps=steps)

        day = command.date
        duration = command.duration or self.config.default_duration_min

        if command.time is not None:
            slots = await self.availability.at_time(courts, day, command.time, duration)
            free = [s for s in slots if s["isAvailable"]]
            if free:
                header = msg("slots_at_time_header", loc, date=day.isoformat(), time=command.time.strftime("%H:%M"))
                message = _with_lines(header, [f"• {s['courtName']}" for s in free])
            else:
                message = msg("no_free_courts_at_time", loc)
            return BookingResult(success=True, message=message, available_slots=slots, next_steps=steps)

        slots = await self.availability.day_slots(courts, day, duration)
        if slots:
            header = msg("slots_header", loc, date=day.isoformat())
            message = _with_lines(header, [f"• {s['time']}–{s['endTime']} {s['courtName']}" for s in slots])
        else:
            message = msg("no_slots", loc)
        return BookingResult(success=True, message=message, available_slots=slots, next_steps=steps)

    # ---------------- cancel_booking ----------------
    async def _cancel_booking(self, command: VoiceCommand, user: User, loc: str) -> BookingResult:
        page = await self.booking_repo.find_many(user_id=user.id, status=BookingStatus.confirmed)
        active = [
            b for b in page.data
            if b.status == BookingStatus.confirmed and b.start_time is not None
        ]
        if not active:
            return _fail(msg("no_active_bookings", loc))

        target = self._pick_for_cancel(active, command)
        if target is None:
            if command.date_explicit:
                return _fail(msg("no_bookings_on_date", loc, date=command.date.isoformat()))
            return _fail(msg("no_active_bookings", loc))

        await self.booking_repo.update(target.id, status=BookingStatus.cancelled)
        local = _utc_to_local(target.start_time, self.config.timezone)
        logger.info("cancelled booking=%s user=%s", target.id, user.id)
        return BookingResult(
            success=True,
            message=msg("cancelled", loc, date=local.date().isoformat(), time=local.strftime("%H:%M")),
            next_steps=msg_list("cancelled_steps", loc),
        )

    def _pick_for_cancel(self, bookings: List[Booking], command: VoiceCommand) -> Optional[Booking]:
        """Earliest booking on the spoken (venue-local) date, else the soonest upcoming one."""
        ordered = sorted(bookings, key=lambda b: b.start_time)
        if command.date_explicit and command.date is not None:
            for b in ordered:
                if _utc_to_local(b.start_time, self.config.timezone).date() == command.date:
                    return b
            return None
        now = self.clock()
        for b in ordered:
            if _utc_to_local(b.start_time, "UTC") >= now:
                return b
        return None


def _with_lines(header: str, lines: List[str]) -> str:
    return "\n".join([header, *lines])

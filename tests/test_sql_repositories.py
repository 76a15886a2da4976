# tests/test_sql_repositories.py
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

import pytest

from common.models import BookingStatus, CommandKind, NewBooking, VoiceCommand
from db.models import init_db
from db.repositories import (
    BookingConflictError,
    SqlBookingRepository,
    SqlCourtRepository,
    SqlUserRepository,
)
from db.session import make_engine, make_session_factory, ping
from services.booking_service import VoiceBookingService

T0 = datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
async def engine(tmp_path):
    eng = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessions(engine):
    return make_session_factory(engine)


@pytest.fixture
def users(sessions):
    return SqlUserRepository(sessions)


@pytest.fixture
def courts(sessions):
    return SqlCourtRepository(sessions)


@pytest.fixture
def bookings(sessions):
    return SqlBookingRepository(sessions)


def _new(court_id, user_id, start=T0, minutes=90, **kw):
    return NewBooking(
        court_id=court_id,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        booked_by_user_id=user_id,
        total_amount=2250,
        currency="THB",
        booking_purpose="free_play",
        **kw,
    )


async def test_ping(engine):
    assert await ping(engine) is True


# ----------------------------- users / courts -----------------------------

async def test_user_lookup_by_id_or_telegram_id(users):
    u = await users.create(name="Anna", telegram_id="777")

    assert (await users.get_by_id(u.id)).name == "Anna"
    assert (await users.get_by_id("777")).id == u.id
    assert await users.get_by_id("nobody") is None
    assert await users.get_by_id("") is None


async def test_court_catalog_filters(courts):
    a = await courts.create(name="Корт 1", court_type="indoor")
    b = await courts.create(name="Корт 2", court_type="outdoor")
    await courts.create(name="Корт 3", court_type="indoor", is_active=False)

    active = await courts.find_many()
    assert [c.id for c in active.data] == [a.id, b.id]
    assert active.total == 2

    outdoor = await courts.find_many(court_type="OUTDOOR")
    assert [c.id for c in outdoor.data] == [b.id]

    everything = await courts.find_many(is_active=None)
    assert len(everything.data) == 3


# ----------------------------- availability -----------------------------

async def test_overlap_is_half_open(users, courts, bookings):
    u = await users.create(name="Anna")
    c = await courts.create(name="Корт 1")
    await bookings.create(_new(c.id, u.id))  # 10:00-11:30

    assert await bookings.is_court_available(c.id, T0, T0 + timedelta(minutes=30)) is False
    assert await bookings.is_court_available(c.id, T0 - timedelta(minutes=30), T0 + timedelta(minutes=1)) is False
    # touching windows do not overlap
    assert await bookings.is_court_available(c.id, T0 + timedelta(minutes=90), T0 + timedelta(hours=3)) is True
    assert await bookings.is_court_available(c.id, T0 - timedelta(hours=1), T0) is True


async def test_availability_is_per_court(users, courts, bookings):
    u = await users.create(name="Anna")
    c1 = await courts.create(name="Корт 1")
    c2 = await courts.create(name="Корт 2")
    await bookings.create(_new(c1.id, u.id))

    assert await bookings.is_court_available(c2.id, T0, T0 + timedelta(hours=1)) is True


async def test_cancelled_bookings_free_the_court(users, courts, bookings):
    u = await users.create(name="Anna")
    c = await courts.create(name="Корт 1")
    b = await bookings.create(_new(c.id, u.id))

    await bookings.update(b.id, status=BookingStatus.cancelled)

    assert await bookings.is_court_available(c.id, T0, T0 + timedelta(minutes=90)) is True


async def test_window_must_be_positive(bookings):
    with pytest.raises(ValueError):
        await bookings.is_court_available("c", T0, T0)


async def test_other_timezones_are_compared_in_utc(users, courts, bookings):
    u = await users.create(name="Anna")
    c = await courts.create(name="Корт 1")
    await bookings.create(_new(c.id, u.id))
    bangkok = timezone(timedelta(hours=7))

    # 17:00 Bangkok == 10:00 UTC
    start = datetime(2030, 1, 1, 17, 0, tzinfo=bangkok)
    assert await bookings.is_court_available(c.id, start, start + timedelta(minutes=30)) is False


# ----------------------------- bookings -----------------------------

async def test_create_round_trips_fields(users, courts, bookings):
    u = await users.create(name="Anna")
    c = await courts.create(name="Корт 1")

    b = await bookings.create(_new(c.id, u.id, notes="doubles"))

    assert b.id
    assert b.start_time == T0
    assert b.end_time == T0 + timedelta(minutes=90)
    assert b.status is BookingStatus.confirmed
    assert (b.total_amount, b.currency, b.booking_purpose, b.notes) == (2250, "THB", "free_play", "doubles")


async def test_create_rejects_overlap(users, courts, bookings):
    u = await users.create(name="Anna")
    c = await courts.create(name="Корт 1")
    await bookings.create(_new(c.id, u.id))

    with pytest.raises(BookingConflictError):
        await bookings.create(_new(c.id, u.id, start=T0 + timedelta(minutes=60)))

    page = await bookings.find_many(court_id=c.id)
    assert page.total == 1


async def test_find_many_filters_and_orders(users, courts, bookings):
    u = await users.create(name="Anna")
    other = await users.create(name="Boris")
    c = await courts.create(name="Корт 1")
    late = await bookings.create(_new(c.id, u.id, start=T0 + timedelta(days=1)))
    early = await bookings.create(_new(c.id, u.id))
    await bookings.create(_new(c.id, other.id, start=T0 + timedelta(days=2)))
    await bookings.update(late.id, status="cancelled")

    mine = await bookings.find_many(user_id=u.id)
    assert [b.id for b in mine.data] == [early.id, late.id]

    confirmed = await bookings.find_many(user_id=u.id, status=BookingStatus.confirmed)
    assert [b.id for b in confirmed.data] == [early.id]


async def test_update_errors(users, courts, bookings):
    u = await users.create(name="Anna")
    c = await courts.create(name="Корт 1")
    b = await bookings.create(_new(c.id, u.id))

    with pytest.raises(ValueError):
        await bookings.update(b.id, court_id="elsewhere")
    with pytest.raises(RuntimeError, match="Booking not found"):
        await bookings.update("missing", status="cancelled")

    updated = await bookings.update(b.id, notes="bring balls")
    assert updated.notes == "bring balls"
    assert updated.status is BookingStatus.confirmed


# ----------------------------- service on SQL -----------------------------

async def test_voice_booking_end_to_end(users, courts, bookings):
    u = await users.create(name="Anna", telegram_id="42")
    await courts.create(name="Корт 1", court_type="indoor")
    service = VoiceBookingService(bookings, courts, users, clock=lambda: T0 - timedelta(days=1))
    cmd = VoiceCommand(CommandKind.book_court, date(2030, 1, 1), time(10, 0))

    first = await service.process_voice_booking(cmd, "42")
    second = await service.process_voice_booking(cmd, u.id)

    assert first.success is True
    assert first.booking_id
    assert second.success is False
    assert second.message == "Нет доступных кортов на указанное время"

    cancel = await service.process_voice_booking(VoiceCommand(CommandKind.cancel_booking, date(2030, 1, 1)), u.id)
    assert cancel.success is True
    assert (await bookings.find_many(user_id=u.id, status=BookingStatus.cancelled)).total == 1

    again = await service.process_voice_booking(cmd, u.id)
    assert again.success is True

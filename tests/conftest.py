# tests/conftest.py
import os
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

# --- Part 1: Path Setup ---
# Must run before application imports so `common`, `services`, `db`... resolve.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

# --- Part 2: Environment ---
# Keep the module-level engine in db/session.py off disk; SQL tests build their own.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CONFIG_PATH", str(REPO_ROOT / "tests" / "missing-config.yaml"))

# --- Part 3: Application Imports ---
import pytest

from common.models import Booking, BookingResult, Court, Page, User
from services.booking_service import BookingServiceConfig, VoiceBookingService
from services.speech import MockSpeechBridge

# Friday
TODAY = date(2024, 12, 27)
NOW = datetime(2024, 12, 27, 12, 0, tzinfo=timezone.utc)


# --- Part 4: Core Test Fixtures ---

@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def user() -> User:
    return User(id="user-123", name="Test Player", telegram_id="42")


@pytest.fixture
def courts():
    return [
        Court(id="court-1", name="Корт 1", court_type="indoor"),
        Court(id="court-2", name="Корт 2", court_type="outdoor"),
    ]


@pytest.fixture
def repos(user, courts):
    """AsyncMock ports: user found, all courts free, create returns booking-123."""
    user_repo = AsyncMock()
    user_repo.get_by_id.return_value = user

    court_repo = AsyncMock()
    court_repo.find_many.return_value = Page(data=list(courts), total=len(courts))

    booking_repo = AsyncMock()
    booking_repo.is_court_available.return_value = True
    booking_repo.create.return_value = Booking(id="booking-123", court_id="court-1")
    booking_repo.find_many.return_value = Page(data=[], total=0)

    return SimpleNamespace(users=user_repo, courts=court_repo, bookings=booking_repo)


@pytest.fixture
def config() -> BookingServiceConfig:
    return BookingServiceConfig()


@pytest.fixture
def service(repos, config) -> VoiceBookingService:
    return VoiceBookingService(repos.bookings, repos.courts, repos.users, config, clock=lambda: NOW)


@pytest.fixture
def fake_service():
    """Stand-in for VoiceBookingService at the tool boundary."""
    svc = AsyncMock()
    svc.process_voice_booking.return_value = BookingResult(
        success=True,
        message="Корт Корт 1 (indoor) успешно забронирован на 2024-12-28 в 14:00",
        booking_id="booking-123",
        next_steps=["Приходите за 15 минут до начала игры"],
    )
    return svc


@pytest.fixture
def speech() -> MockSpeechBridge:
    return MockSpeechBridge("https://voice.test/audio")

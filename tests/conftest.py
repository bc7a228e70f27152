import os

# Credential fields have no defaults (the service must fail without secrets).
# Provide test values so Settings() can be constructed in tests.
os.environ.setdefault("AUTH_SECRET_KEY", "test-secret-key-for-signing-tokens")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from seatbook.app_logging import LogContext
from seatbook.bookings import BookingLifecycleManager
from seatbook.db import init_database
from seatbook.settings import AuthSettings, BookingSettings
from tests.factories import FrozenClock, MarketplaceFactory


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "seatbook.db"


@pytest.fixture
def session_factory(db_path: Path):
    """Session factory over a fresh SQLite file database.

    A file (not :memory:) so that concurrent tests get one database shared
    by every connection in the pool.
    """
    return init_database(f"sqlite:///{db_path}", busy_timeout_seconds=10)


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at the current minute so stored timestamps stay comparable."""
    return FrozenClock(datetime.now(UTC).replace(second=0, microsecond=0))


@pytest.fixture
def booking_settings() -> BookingSettings:
    """Booking policy with immediate conflict retries."""
    return BookingSettings(
        conflict_max_attempts=10,
        conflict_base_delay=0.0,
        conflict_max_delay=0.0,
    )


@pytest.fixture
def auth_settings() -> AuthSettings:
    return AuthSettings(secret_key="test-secret-key-for-signing-tokens")


@pytest.fixture
def market(session_factory, clock: FrozenClock) -> MarketplaceFactory:
    return MarketplaceFactory(session_factory, clock)


@pytest.fixture
def lifecycle(session_factory, booking_settings, clock) -> BookingLifecycleManager:
    return BookingLifecycleManager(session_factory, booking_settings, clock=clock)


@pytest.fixture(autouse=True)
def clear_log_context():
    """Reset thread-local log context between tests."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def tomorrow(clock: FrozenClock) -> datetime:
    return clock() + timedelta(days=1)

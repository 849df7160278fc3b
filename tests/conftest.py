"""Shared test fixtures and configuration.

Sets up fake environment variables so moffittboard.config doesn't
sys.exit(), and provides common fixtures like a temp DB and a fixed clock.
"""

import os

# Patch env vars BEFORE any moffittboard imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("ALLOWED_EMAIL_DOMAIN", "berkeley.edu")
os.environ.setdefault("RESET_TIMEZONE", "America/Los_Angeles")
os.environ.setdefault("RESET_HOUR", "0")
os.environ.setdefault("LEADERBOARD_SIZE", "10")
os.environ.setdefault("GEOFENCE_ENABLED", "false")

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

LA = ZoneInfo("America/Los_Angeles")


def la_ms(year, month, day, hour=0, minute=0, second=0):
    """Milliseconds since epoch for a wall-clock time in Los Angeles."""
    return int(datetime(year, month, day, hour, minute, second, tzinfo=LA).timestamp() * 1000)


class FakeClock:
    """Settable millisecond clock for the tracker service."""

    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_board.db")


@pytest.fixture
def user_store(tmp_db_path):
    """Return a UserStore instance backed by a temp file."""
    from moffittboard.data.db import UserStore
    return UserStore(db_path=tmp_db_path)


@pytest.fixture
def clock():
    """A clock pinned to 2025-03-10 09:00 in Los Angeles."""
    return FakeClock(la_ms(2025, 3, 10, 9, 0))


@pytest.fixture
def tracker(user_store, clock):
    """TrackerService over a temp store, already reset for the current day."""
    from moffittboard.core.daily_reset import ResetBoundary
    from moffittboard.core.tracker_service import TrackerService

    service = TrackerService(
        store=user_store,
        boundary=ResetBoundary(timezone="America/Los_Angeles", hour=0),
        allowed_domain="berkeley.edu",
        clock=clock,
    )
    service.reset_if_due()
    return service

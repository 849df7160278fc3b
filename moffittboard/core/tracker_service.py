"""
MoffittBoard — UI-Agnostic Tracker Service.

Orchestrates the pure tracker core against a record store:
read the current record -> validate the transition -> write the new one.

Every UI adapter (Telegram today, anything else tomorrow) calls this
service and renders what it returns. The service owns no timers and no
connections; its store and clock are passed in.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable

from moffittboard.core import checkin as state_machine
from moffittboard.core.daily_reset import ResetBoundary, apply_reset, is_reset_due
from moffittboard.core.elapsed import is_clock_skewed, live_total
from moffittboard.core.profile import (
    is_allowed_email,
    name_from_email,
    normalize_email,
    set_display_name,
)
from moffittboard.core.ranking import rank, sort_leaderboard
from moffittboard.ports.record_store import ConcurrentUpdate

if TYPE_CHECKING:
    from moffittboard.core.geofence import Geofence, GeoPoint
    from moffittboard.data.models import UserRecord
    from moffittboard.ports.record_store import RecordStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class UnknownUser(Exception):
    """Raised when a user id has no record in the store."""


class InvalidEmail(Exception):
    """Raised when a login email is not on the allowed domain."""


class EmailInUse(Exception):
    """Raised when a login email already belongs to another Telegram account."""


class OutsideGeofence(Exception):
    """Raised when a check-in comes from outside the configured area."""


def wall_clock_ms() -> int:
    """Current time as milliseconds since epoch."""
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TrackerService:
    """Check-in, check-out, ranking and daily reset over a RecordStore.

    Concurrent writers are detected, not prevented: a check-in or check-out
    whose record changed between read and write raises ConcurrentUpdate and
    nothing is written. The caller decides whether to retry.
    """

    def __init__(
        self,
        store: RecordStore,
        boundary: ResetBoundary,
        allowed_domain: str,
        clock: Callable[[], int] = wall_clock_ms,
        geofence: Geofence | None = None,
    ) -> None:
        self._store = store
        self._boundary = boundary
        self._allowed_domain = allowed_domain
        self._clock = clock
        self._geofence = geofence

    def now(self) -> int:
        return self._clock()

    # -- identity ---------------------------------------------------------

    def login(self, email: str, telegram_user_id: int) -> UserRecord:
        """Find or create the user for email and link the Telegram account.

        An email already linked to a different Telegram account raises
        EmailInUse and the existing link is left alone.
        """
        email = normalize_email(email)
        if not is_allowed_email(email, self._allowed_domain):
            raise InvalidEmail(f"{email!r} is not a @{self._allowed_domain} address")

        user = self._store.get_by_email(email)
        if user is None:
            user = self._store.add_user(email, name_from_email(email))
            logger.info("New user #%d created on first login", user.id)

        if user.telegram_user_id != telegram_user_id:
            if not self._store.link_telegram_id(user.id, telegram_user_id):
                logger.warning(
                    "Login for user #%d refused: linked to another account", user.id,
                )
                raise EmailInUse(f"{email!r} is already linked to another account")
        return self._require(user.id)

    def current_user(self, telegram_user_id: int) -> UserRecord | None:
        return self._store.get_by_telegram_id(telegram_user_id)

    def _require(self, user_id: int) -> UserRecord:
        user = self._store.get_user(user_id)
        if user is None:
            raise UnknownUser(f"User {user_id} not found")
        return user

    # -- sessions ---------------------------------------------------------

    def check_in(self, user_id: int, location: GeoPoint | None = None) -> UserRecord:
        """Open a session for user_id. Raises InvalidTransition if one is open."""
        self._check_location(location)
        # A session opened just before a pending reset would be wiped at once.
        self.reset_if_due()

        before = self._require(user_id)
        after = state_machine.check_in(before, self.now())
        self._save(before, after)
        logger.info("User #%d checked in", user_id)
        return after

    def check_out(self, user_id: int) -> UserRecord:
        """Close the open session and credit its whole minutes.

        A session still open at a pending reset is discarded first, so the
        check-out then raises InvalidTransition.
        """
        self.reset_if_due()

        before = self._require(user_id)
        now = self.now()
        if before.check_in_time is not None and is_clock_skewed(before.check_in_time, now):
            logger.warning(
                "Clock skew for user #%d: now=%d is before check-in %d; crediting 0 minutes",
                user_id, now, before.check_in_time,
            )

        after = state_machine.check_out(before, now)
        self._save(before, after)
        logger.info(
            "User #%d checked out, credited %d minutes",
            user_id, after.time_spent - before.time_spent,
        )
        return after

    def _check_location(self, location: GeoPoint | None) -> None:
        if self._geofence is None:
            return
        if location is None:
            raise OutsideGeofence("A location is required to check in")
        if not self._geofence.contains(location):
            raise OutsideGeofence("You are too far from the library to check in")

    def _save(self, before: UserRecord, after: UserRecord) -> None:
        if not self._store.save_transition(before, after):
            raise ConcurrentUpdate(f"User {before.id} was modified concurrently")

    def set_display_name(self, user_id: int, raw: str) -> UserRecord:
        """Change the name shown on the board. Raises ValueError if too long."""
        updated = set_display_name(self._require(user_id), raw)
        self._store.set_display_name(user_id, updated.display_name)
        return self._require(user_id)

    # -- leaderboard ------------------------------------------------------

    def leaderboard(self) -> list[UserRecord]:
        """All users, best first, after applying any due reset."""
        self.reset_if_due()
        return sort_leaderboard(self._store.list_users())

    def rank_of(self, user_id: int) -> tuple[int, int]:
        """Return (rank, number of users on the board)."""
        users = self.leaderboard()
        return rank(user_id, users), len(users)

    def live_minutes(self, user: UserRecord) -> int:
        """Committed minutes plus the open session so far (display only)."""
        return live_total(user, self.now())

    # -- daily reset ------------------------------------------------------

    def reset_if_due(self) -> list[UserRecord]:
        """Reset the board if the daily boundary has passed.

        Returns the pre-reset records whose open sessions were discarded;
        empty when no reset was due or another writer applied it first.
        """
        now = self.now()
        last_reset_at = self._store.get_last_reset_at()
        if not is_reset_due(last_reset_at, now, self._boundary):
            return []

        users = self._store.list_users()
        discarded = [u for u in users if u.is_checked_in]
        if not self._store.reset_all(
            apply_reset(users), reset_at=now, previous_reset_at=last_reset_at,
        ):
            logger.info("Daily reset already applied by another writer")
            return []
        logger.info(
            "Daily reset ran for %d users (%d open sessions discarded)",
            len(users), len(discarded),
        )
        return discarded

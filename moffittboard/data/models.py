"""
MoffittBoard — Data Models.

A single flat record per tracked person. The core never mutates a record:
every transition returns a fresh snapshot for the caller to persist.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class UserRecord:
    """One person on the leaderboard.

    check_in_time is milliseconds since epoch and is set iff is_checked_in.
    """

    id: int
    email: str                        # unique login key, lowercased
    name: str                         # fallback label, local part of the email
    display_name: str | None = None   # user-chosen label, wins over name
    time_spent: int = 0               # committed minutes
    is_checked_in: bool = False
    check_in_time: int | None = None  # ms epoch of the open session's start
    telegram_user_id: int | None = None
    created_at: str = ""

    @property
    def label(self) -> str:
        """Name shown on the leaderboard."""
        return self.display_name or self.name

"""Daily reset policy — pure business logic.

The board is wiped once a day at a fixed boundary (RESET_HOUR:00 in one
reference timezone). The boundary never depends on the host's local time,
so every deployment agrees on when a day ends.

An open session that straddles the boundary is discarded with the rest:
its uncommitted minutes are not credited to either day.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, time, timedelta
from typing import Iterable
from zoneinfo import ZoneInfo

from moffittboard.data.models import UserRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResetBoundary:
    """Where the daily boundary falls: `hour`:00 in `timezone` (IANA name)."""

    timezone: str = "America/Los_Angeles"
    hour: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.hour <= 23:
            raise ValueError(f"Reset hour out of range: {self.hour}")
        ZoneInfo(self.timezone)  # raises ZoneInfoNotFoundError on a bad name


def _to_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def most_recent_boundary(now: int, boundary: ResetBoundary) -> int:
    """Return the ms epoch of the latest boundary at or before `now`."""
    tz = ZoneInfo(boundary.timezone)
    local_now = datetime.fromtimestamp(now / 1000, tz)

    candidate = datetime.combine(local_now.date(), time(hour=boundary.hour), tzinfo=tz)
    if _to_ms(candidate) > now:
        previous_day = local_now.date() - timedelta(days=1)
        candidate = datetime.combine(previous_day, time(hour=boundary.hour), tzinfo=tz)
    return _to_ms(candidate)


def is_reset_due(
    last_reset_at: int | None,
    now: int,
    boundary: ResetBoundary,
) -> bool:
    """Decide whether the board must be reset.

    Due when no reset has ever run, or when the last one happened strictly
    before the most recent boundary.
    """
    if last_reset_at is None:
        return True
    return last_reset_at < most_recent_boundary(now, boundary)


def apply_reset(records: Iterable[UserRecord]) -> list[UserRecord]:
    """Zero every record and close any open session without crediting it."""
    reset = [
        replace(r, time_spent=0, is_checked_in=False, check_in_time=None)
        for r in records
    ]
    logger.debug("Reset computed for %d records", len(reset))
    return reset

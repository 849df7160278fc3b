"""Elapsed-time accounting — pure business logic.

Minutes for an open session are always recomputed from the session's
original check-in timestamp. Nothing here accumulates across calls, so a
caller may poll as often as it likes: at a fixed `now` the answer is the
same, and it never decreases as `now` advances.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from moffittboard.data.models import UserRecord

MS_PER_MINUTE = 60_000


def elapsed_minutes(check_in_time: int, now: int) -> int:
    """Whole minutes between check_in_time and now (both ms epoch).

    Partial minutes are truncated: 90 seconds counts as 1 minute.
    A clock that runs backwards (now < check_in_time) yields 0.
    """
    if now <= check_in_time:
        return 0
    return (now - check_in_time) // MS_PER_MINUTE


def is_clock_skewed(check_in_time: int, now: int) -> bool:
    """True when now is earlier than the recorded check-in."""
    return now < check_in_time


def new_total(prior_total: int, elapsed: int) -> int:
    """Add elapsed minutes to a committed total.

    Raises ValueError on a negative prior_total; a negative elapsed is
    treated as zero.
    """
    if prior_total < 0:
        raise ValueError(f"prior_total must be non-negative, got {prior_total}")
    return prior_total + max(elapsed, 0)


def live_total(record: UserRecord, now: int) -> int:
    """Committed minutes plus the open session's minutes so far.

    For display only; the result is never written back to the store.
    """
    if not record.is_checked_in or record.check_in_time is None:
        return record.time_spent
    return new_total(record.time_spent, elapsed_minutes(record.check_in_time, now))

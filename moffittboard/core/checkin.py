"""Check-in / check-out state machine — pure business logic.

Two states, two transitions:

    CHECKED_OUT --check_in--> CHECKED_IN --check_out--> CHECKED_OUT

Any other move raises InvalidTransition. Transitions return a new
UserRecord; the input snapshot is left untouched.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from dataclasses import replace
from enum import Enum

from moffittboard.core.elapsed import elapsed_minutes, new_total
from moffittboard.data.models import UserRecord


class SessionState(Enum):
    CHECKED_OUT = "checked_out"
    CHECKED_IN = "checked_in"


class InvalidTransition(Exception):
    """Raised when a transition is not legal from the record's current state."""

    def __init__(self, record_id: int, transition: str, reason: str) -> None:
        self.record_id = record_id
        self.transition = transition
        self.reason = reason
        super().__init__(f"Cannot {transition} user {record_id}: {reason}")


def state_of(record: UserRecord) -> SessionState:
    """Return the session state a record is in."""
    if record.is_checked_in:
        return SessionState.CHECKED_IN
    return SessionState.CHECKED_OUT


def check_in(record: UserRecord, now: int) -> UserRecord:
    """Open a session at `now`. time_spent is carried over unchanged."""
    if state_of(record) is not SessionState.CHECKED_OUT:
        raise InvalidTransition(record.id, "check in", "already checked in")
    return replace(record, is_checked_in=True, check_in_time=now)


def check_out(record: UserRecord, now: int) -> UserRecord:
    """Close the open session and credit its whole elapsed minutes."""
    if state_of(record) is not SessionState.CHECKED_IN:
        raise InvalidTransition(record.id, "check out", "not checked in")
    if record.check_in_time is None:
        raise InvalidTransition(record.id, "check out", "no check-in time recorded")

    elapsed = elapsed_minutes(record.check_in_time, now)
    return replace(
        record,
        is_checked_in=False,
        check_in_time=None,
        time_spent=new_total(record.time_spent, elapsed),
    )

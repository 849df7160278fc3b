"""Leaderboard ranking — pure business logic.

Orders users by committed minutes, highest first. Ties keep the order the
records arrived in (Python's sort is stable); no secondary key is applied.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from typing import Iterable

from moffittboard.data.models import UserRecord


def sort_leaderboard(records: Iterable[UserRecord]) -> list[UserRecord]:
    """Return a new list sorted by time_spent descending, ties in input order."""
    return sorted(records, key=lambda r: r.time_spent, reverse=True)


def rank(target_id: int, records: Iterable[UserRecord]) -> int:
    """Return the 1-based rank of target_id.

    An id missing from records gets len(records) + 1, the worst possible rank.
    """
    ordered = sort_leaderboard(records)
    for position, record in enumerate(ordered, start=1):
        if record.id == target_id:
            return position
    return len(ordered) + 1


def top(
    records: Iterable[UserRecord], limit: int,
) -> list[tuple[int, UserRecord]]:
    """Return (rank, record) pairs for the first `limit` leaderboard entries."""
    ordered = sort_leaderboard(records)
    return list(enumerate(ordered[:max(limit, 0)], start=1))


def rank_label(position: int) -> str:
    """Format a rank as an English ordinal: 1st, 2nd, 3rd, 4th, 11th, 21st."""
    if 10 <= position % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(position % 10, "th")
    return f"{position}{suffix}"

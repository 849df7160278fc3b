"""
MoffittBoard — Reset Tick.

Runs the daily reset on a periodic schedule and tells anyone whose open
session was discarded. The schedule itself (interval, cancellation) is
owned by the UI adapter; this module only does one tick's work.

This module is provider-agnostic: it depends on the NotificationPort
protocol, not on a specific messaging implementation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from moffittboard.ports.record_store import StoreFailure

if TYPE_CHECKING:
    from moffittboard.core.tracker_service import TrackerService
    from moffittboard.data.models import UserRecord
    from moffittboard.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


async def run_reset_tick(
    service: TrackerService,
    notifier: NotificationPort,
) -> list[UserRecord]:
    """Apply the daily reset if due and notify discarded sessions.

    Returns the users whose sessions were discarded. A store failure is
    logged and swallowed so the next tick can try again; a failed notice
    to one user does not stop notices to the others.
    """
    try:
        discarded = service.reset_if_due()
    except StoreFailure as exc:
        logger.error("Reset tick: store failure, will retry next tick: %s", exc)
        return []

    for user in discarded:
        if user.telegram_user_id is None:
            continue
        try:
            await notifier.send_notice(user.telegram_user_id, _format_reset_notice(user))
            logger.info("Reset notice sent to user #%d", user.id)
        except Exception as exc:
            logger.error("Failed to send reset notice to user #%d: %s", user.id, exc)

    return discarded


def _format_reset_notice(user: UserRecord) -> str:
    """Message for a user whose open session was closed by the daily reset."""
    return (
        f"Hi {user.label}, the leaderboard was reset for the new day.\n"
        "Your open session was closed without credit. "
        "Use /checkin to start a new one."
    )

"""Notification port — pushes unsolicited notices to board members.

Used by the reset tick to tell people their open session was closed.
The tracker core never sends anything itself.
"""

from __future__ import annotations

from typing import Protocol


class NotificationPort(Protocol):
    """Abstract outbound channel keyed by the member's chat id."""

    async def send_notice(self, chat_id: int, text: str) -> None: ...

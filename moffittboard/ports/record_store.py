"""Record store port — abstract interface for persisting user records.

Core modules depend on this protocol, never on a specific database.
"""

from __future__ import annotations

from typing import Protocol

from moffittboard.data.models import UserRecord


class StoreFailure(Exception):
    """Raised when any record store operation fails. Safe to retry."""


class ConcurrentUpdate(StoreFailure):
    """Raised when a record changed between read and write (lost update)."""


class RecordStore(Protocol):
    """Abstract record store used by the tracker service."""

    def get_user(self, user_id: int) -> UserRecord | None: ...

    def get_by_email(self, email: str) -> UserRecord | None: ...

    def get_by_telegram_id(self, telegram_user_id: int) -> UserRecord | None: ...

    def add_user(
        self, email: str, name: str, telegram_user_id: int | None = None,
    ) -> UserRecord: ...

    def link_telegram_id(self, user_id: int, telegram_user_id: int) -> bool: ...

    def list_users(self) -> list[UserRecord]: ...

    def save_transition(self, before: UserRecord, after: UserRecord) -> bool: ...

    def set_display_name(self, user_id: int, display_name: str | None) -> None: ...

    def reset_all(
        self, records: list[UserRecord], reset_at: int, previous_reset_at: int | None,
    ) -> bool: ...

    def get_last_reset_at(self) -> int | None: ...

"""
MoffittBoard — User Record Database.

SQLite implementation of the RecordStore port. One flat `users` table
plus a tiny `meta` key/value table that remembers when the board was
last reset.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from moffittboard.data.models import UserRecord
from moffittboard.ports.record_store import StoreFailure

logger = logging.getLogger(__name__)

_LAST_RESET_KEY = "last_reset_at"


class UserStore:
    """SQLite-backed storage for leaderboard users."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from moffittboard.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside one transaction; map errors to StoreFailure."""
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StoreFailure(f"Cannot open database {self._db_path}: {exc}") from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            logger.error("Database error on %s: %s", self._db_path, exc)
            raise StoreFailure(str(exc)) from exc
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Create the tables if they don't exist, and migrate schema."""
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id               INTEGER PRIMARY KEY AUTOINCREMENT,
                    email            TEXT    NOT NULL UNIQUE,
                    name             TEXT    NOT NULL,
                    display_name     TEXT,
                    time_spent       INTEGER NOT NULL DEFAULT 0,
                    is_checked_in    INTEGER NOT NULL DEFAULT 0,
                    check_in_time    INTEGER,
                    telegram_user_id INTEGER UNIQUE,
                    created_at       TEXT    NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS meta (
                    key   TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            # Migrate existing DBs: add new columns if missing
            existing_cols = {
                row[1] for row in conn.execute("PRAGMA table_info(users)").fetchall()
            }
            if "display_name" not in existing_cols:
                conn.execute("ALTER TABLE users ADD COLUMN display_name TEXT")
        logger.debug("Users table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> UserRecord:
        return UserRecord(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            display_name=row["display_name"],
            time_spent=row["time_spent"],
            is_checked_in=bool(row["is_checked_in"]),
            check_in_time=row["check_in_time"],
            telegram_user_id=row["telegram_user_id"],
            created_at=row["created_at"],
        )

    def add_user(
        self,
        email: str,
        name: str,
        telegram_user_id: int | None = None,
    ) -> UserRecord:
        """Register a new user with zero minutes, checked out."""
        now = datetime.now().isoformat()
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO users
                    (email, name, time_spent, is_checked_in, check_in_time,
                     telegram_user_id, created_at)
                VALUES (?, ?, 0, 0, NULL, ?, ?)
                """,
                (email, name, telegram_user_id, now),
            )
            user_id = cursor.lastrowid

        user = UserRecord(
            id=user_id,
            email=email,
            name=name,
            telegram_user_id=telegram_user_id,
            created_at=now,
        )
        logger.info("User registered: #%d <%s>", user_id, email)
        return user

    def get_user(self, user_id: int) -> UserRecord | None:
        """Fetch a user by record id."""
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_by_email(self, email: str) -> UserRecord | None:
        """Fetch a user by (already normalized) email."""
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_by_telegram_id(self, telegram_user_id: int) -> UserRecord | None:
        """Fetch the user logged in from a Telegram account."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE telegram_user_id = ?",
                (telegram_user_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def link_telegram_id(self, user_id: int, telegram_user_id: int) -> bool:
        """Point a Telegram account at an unclaimed user.

        The account is unlinked from any other record it held. Returns False,
        writing nothing, when the user is already linked to another account.
        """
        with self._transaction() as conn:
            conn.execute(
                "UPDATE users SET telegram_user_id = NULL WHERE telegram_user_id = ?",
                (telegram_user_id,),
            )
            cursor = conn.execute(
                """
                UPDATE users SET telegram_user_id = ?
                 WHERE id = ?
                   AND (telegram_user_id IS NULL OR telegram_user_id = ?)
                """,
                (telegram_user_id, user_id, telegram_user_id),
            )
            linked = cursor.rowcount == 1
            if not linked:
                conn.rollback()
        if linked:
            logger.info("User #%d linked to Telegram account %d", user_id, telegram_user_id)
        else:
            logger.warning(
                "User #%d is linked to another account; refused link to %d",
                user_id, telegram_user_id,
            )
        return linked

    def list_users(self) -> list[UserRecord]:
        """Return all users in insertion order."""
        with self._transaction() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY id").fetchall()
        return [self._row_to_user(r) for r in rows]

    def save_transition(self, before: UserRecord, after: UserRecord) -> bool:
        """Write `after` only if the stored row still matches `before`.

        Returns False when another writer got there first, so two racing
        check-outs cannot both credit the same session.
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE users
                   SET time_spent = ?, is_checked_in = ?, check_in_time = ?
                 WHERE id = ?
                   AND time_spent = ?
                   AND is_checked_in = ?
                   AND check_in_time IS ?
                """,
                (
                    after.time_spent, int(after.is_checked_in), after.check_in_time,
                    before.id,
                    before.time_spent, int(before.is_checked_in), before.check_in_time,
                ),
            )
            saved = cursor.rowcount == 1
        if saved:
            logger.info(
                "User #%d saved: checked_in=%s time_spent=%d",
                after.id, after.is_checked_in, after.time_spent,
            )
        else:
            logger.warning("User #%d changed since it was read; write skipped", before.id)
        return saved

    def set_display_name(self, user_id: int, display_name: str | None) -> None:
        """Replace a user's display name (None clears it)."""
        with self._transaction() as conn:
            conn.execute(
                "UPDATE users SET display_name = ? WHERE id = ?",
                (display_name, user_id),
            )
        logger.info("Display name set for user #%d", user_id)

    def reset_all(
        self,
        records: list[UserRecord],
        reset_at: int,
        previous_reset_at: int | None,
    ) -> bool:
        """Persist reset records and the reset timestamp in one transaction.

        The timestamp is compare-and-set against `previous_reset_at`: when
        another writer already recorded a newer reset, nothing is written
        and False is returned.
        """
        with self._transaction() as conn:
            if previous_reset_at is None:
                cursor = conn.execute(
                    "INSERT OR IGNORE INTO meta (key, value) VALUES (?, ?)",
                    (_LAST_RESET_KEY, str(reset_at)),
                )
            else:
                cursor = conn.execute(
                    "UPDATE meta SET value = ? WHERE key = ? AND value = ?",
                    (str(reset_at), _LAST_RESET_KEY, str(previous_reset_at)),
                )
            claimed = cursor.rowcount == 1
            if not claimed:
                logger.warning("Board was reset by another writer; reset skipped")
                return False

            conn.executemany(
                """
                UPDATE users
                   SET time_spent = ?, is_checked_in = ?, check_in_time = ?
                 WHERE id = ?
                """,
                [
                    (r.time_spent, int(r.is_checked_in), r.check_in_time, r.id)
                    for r in records
                ],
            )
        logger.info("Board reset applied to %d users at %d", len(records), reset_at)
        return True

    def get_last_reset_at(self) -> int | None:
        """Return the ms epoch of the last reset, or None if never reset."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT value FROM meta WHERE key = ?", (_LAST_RESET_KEY,),
            ).fetchone()
        if row is None:
            return None
        return int(row["value"])

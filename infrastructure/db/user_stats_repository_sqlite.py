from __future__ import annotations

import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from typing import Optional

from domain.categories import classify_user
from domain.errors import LedgerUnavailableError
from domain.models import STAT_FIELDS, UserCategory, UserStats
from domain.repositories import UserStatsRepository


class SqliteUserStatsRepository(UserStatsRepository):
    """
    SQLite-backed implementation of `UserStatsRepository`.

    Owns the `user_stats` table. The category column is only written by
    `recalculate_user_category`, mirroring the hosted database where the
    category is derived server-side.
    """

    def __init__(self, db_path: str, clock=None) -> None:
        self._db_path = db_path
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._ensure_table()

    def _get_connection(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path, timeout=10)

    def _ensure_table(self) -> None:
        with closing(self._get_connection()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS user_stats (
                    user_id TEXT PRIMARY KEY,
                    events_created INTEGER NOT NULL DEFAULT 0,
                    events_joined INTEGER NOT NULL DEFAULT 0,
                    groups_created INTEGER NOT NULL DEFAULT 0,
                    groups_joined INTEGER NOT NULL DEFAULT 0,
                    last_activity_at TEXT,
                    category TEXT NOT NULL DEFAULT 'new'
                )
                """
            )

    @staticmethod
    def _to_domain(user_id: str, row: Optional[tuple]) -> UserStats:
        if not row:
            return UserStats(user_id=user_id)
        return UserStats(
            user_id=user_id,
            events_created=int(row[0]),
            events_joined=int(row[1]),
            groups_created=int(row[2]),
            groups_joined=int(row[3]),
            last_activity_at=datetime.fromisoformat(row[4]) if row[4] else None,
            category=UserCategory(row[5]),
        )

    def get_user_stats(self, user_id: str) -> UserStats:
        try:
            with closing(self._get_connection()) as conn:
                row = conn.execute(
                    """
                    SELECT events_created, events_joined, groups_created,
                           groups_joined, last_activity_at, category
                    FROM user_stats
                    WHERE user_id = ?
                    """,
                    (user_id,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(str(exc)) from exc
        return self._to_domain(user_id, row)

    def increment_stat(self, user_id: str, stat: str) -> None:
        if stat not in STAT_FIELDS:
            raise ValueError(f"Unknown user stat: {stat}")

        now = self._clock().isoformat()
        # `stat` is whitelisted above, so it is safe to interpolate.
        try:
            with closing(self._get_connection()) as conn, conn:
                conn.execute(
                    f"""
                    INSERT INTO user_stats (user_id, {stat}, last_activity_at)
                    VALUES (?, 1, ?)
                    ON CONFLICT (user_id) DO UPDATE
                    SET {stat} = {stat} + 1,
                        last_activity_at = excluded.last_activity_at
                    """,
                    (user_id, now),
                )
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(str(exc)) from exc

    def recalculate_user_category(self, user_id: str) -> UserCategory:
        stats = self.get_user_stats(user_id)
        category = classify_user(stats, now=self._clock())
        try:
            with closing(self._get_connection()) as conn, conn:
                conn.execute(
                    """
                    INSERT INTO user_stats (user_id, category)
                    VALUES (?, ?)
                    ON CONFLICT (user_id) DO UPDATE SET category = excluded.category
                    """,
                    (user_id, category.value),
                )
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(str(exc)) from exc
        return category

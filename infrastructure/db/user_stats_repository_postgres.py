from __future__ import annotations

from contextlib import closing

import psycopg2

from domain.errors import LedgerUnavailableError
from domain.models import STAT_FIELDS, UserCategory, UserStats
from domain.repositories import UserStatsRepository
from infrastructure.db.ledger_repository_postgres import connect, ensure_schema


class PostgresUserStatsRepository(UserStatsRepository):
    """
    Postgres-backed implementation of `UserStatsRepository`.

    The category itself is computed by the `recalculate_user_category`
    stored function, so every client sees the same classification.
    """

    def __init__(self, db_params: dict, install_schema: bool = True) -> None:
        self._db_params = db_params
        if install_schema:
            ensure_schema(db_params)

    def _get_connection(self):
        return connect(self._db_params)

    def get_user_stats(self, user_id: str) -> UserStats:
        try:
            with closing(self._get_connection()) as conn, conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        SELECT events_created, events_joined, groups_created,
                               groups_joined, last_activity_at, category
                        FROM user_stats
                        WHERE user_id = %s
                        """,
                        (user_id,),
                    )
                    row = cur.fetchone()
        except psycopg2.Error as exc:
            raise LedgerUnavailableError(str(exc)) from exc

        if not row:
            return UserStats(user_id=user_id)
        return UserStats(
            user_id=user_id,
            events_created=row[0],
            events_joined=row[1],
            groups_created=row[2],
            groups_joined=row[3],
            last_activity_at=row[4],
            category=UserCategory(row[5]),
        )

    def increment_stat(self, user_id: str, stat: str) -> None:
        if stat not in STAT_FIELDS:
            raise ValueError(f"Unknown user stat: {stat}")

        try:
            with closing(self._get_connection()) as conn, conn:
                with conn.cursor() as cur:
                    # `stat` is whitelisted above, so it is safe to interpolate.
                    cur.execute(
                        f"""
                        INSERT INTO user_stats (user_id, {stat}, last_activity_at)
                        VALUES (%s, 1, now())
                        ON CONFLICT (user_id) DO UPDATE
                        SET {stat} = user_stats.{stat} + 1,
                            last_activity_at = now()
                        """,
                        (user_id,),
                    )
                conn.commit()
        except psycopg2.Error as exc:
            raise LedgerUnavailableError(str(exc)) from exc

    def recalculate_user_category(self, user_id: str) -> UserCategory:
        try:
            with closing(self._get_connection()) as conn, conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT recalculate_user_category(%s)", (user_id,))
                    category = cur.fetchone()[0]
                conn.commit()
        except psycopg2.Error as exc:
            raise LedgerUnavailableError(str(exc)) from exc
        return UserCategory(category)

from __future__ import annotations

import json
import logging
from contextlib import closing
from datetime import datetime
from decimal import Decimal
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Optional

import psycopg2
import psycopg2.extras

from domain.errors import LedgerUnavailableError
from domain.models import (
    CoinUpdateResult,
    TransactionStatus,
    TransactionType,
    UserProfile,
    WalletTransaction,
)
from domain.money import to_amount
from domain.repositories import LedgerRepository


logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("wallet_schema.sql")

_json_loads = partial(json.loads, parse_float=Decimal)


def connect(db_params: dict):
    """Open a connection that decodes JSON numbers as `Decimal`."""

    conn = psycopg2.connect(**db_params)
    psycopg2.extras.register_default_jsonb(conn, loads=_json_loads)
    psycopg2.extras.register_default_json(conn, loads=_json_loads)
    return conn


def ensure_schema(db_params: dict) -> None:
    """Install tables and stored functions; safe to run repeatedly."""

    with closing(connect(db_params)) as conn, conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
        conn.commit()


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


class PostgresLedgerRepository(LedgerRepository):
    """
    Postgres-backed implementation of `LedgerRepository`.

    All reads and writes go through the stored functions defined in
    `wallet_schema.sql`; `update_user_coins` takes a row lock on the
    profile, so concurrent sessions cannot overdraw a balance.
    """

    def __init__(self, db_params: dict) -> None:
        self._db_params = db_params
        ensure_schema(db_params)

    def _get_connection(self):
        return connect(self._db_params)

    @staticmethod
    def _transaction_from_json(data: Dict[str, Any]) -> WalletTransaction:
        return WalletTransaction(
            id=str(data["id"]),
            type=TransactionType(data["type"]),
            amount=to_amount(data["amount"]),
            description=data["description"],
            status=TransactionStatus(data["status"]),
            details=data.get("details") or {},
            related_item_id=data.get("related_item_id"),
            timestamp=_parse_timestamp(data["timestamp"]),
        )

    @staticmethod
    def _to_domain(row: tuple) -> WalletTransaction:
        return WalletTransaction(
            id=str(row[0]),
            type=TransactionType(row[1]),
            amount=to_amount(row[2]),
            description=row[3],
            status=TransactionStatus(row[4]),
            details=row[5] or {},
            related_item_id=row[6],
            timestamp=row[7],
        )

    def update_user_coins(
        self,
        user_id: str,
        amount: Decimal,
        transaction_type: TransactionType,
        description: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> CoinUpdateResult:
        try:
            with closing(self._get_connection()) as conn, conn:
                with conn.cursor() as cur:
                    cur.execute(
                        "SELECT update_user_coins(%s, %s, %s, %s, %s)",
                        (
                            user_id,
                            to_amount(amount),
                            TransactionType(transaction_type).value,
                            description,
                            psycopg2.extras.Json(details or {}),
                        ),
                    )
                    payload = cur.fetchone()[0]
                conn.commit()
        except psycopg2.Error as exc:
            logger.error("update_user_coins failed for %s: %s", user_id, exc)
            raise LedgerUnavailableError(str(exc)) from exc

        new_balance = payload.get("new_balance")
        transaction = payload.get("transaction")
        return CoinUpdateResult(
            success=bool(payload.get("success")),
            transaction=self._transaction_from_json(transaction) if transaction else None,
            new_balance=to_amount(new_balance) if new_balance is not None else None,
            error=payload.get("error"),
        )

    def get_user_profile(self, user_id: str) -> UserProfile:
        try:
            with closing(self._get_connection()) as conn, conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT coins FROM get_user_profile(%s)", (user_id,))
                    row = cur.fetchone()
        except psycopg2.Error as exc:
            raise LedgerUnavailableError(str(exc)) from exc

        return UserProfile(user_id=user_id, coins=to_amount(row[0] if row else 0))

    def get_user_transactions(
        self,
        user_id: str,
        limit: int = 50,
    ) -> List[WalletTransaction]:
        try:
            with closing(self._get_connection()) as conn, conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        SELECT id, type, amount, description, status,
                               details, related_item_id, created_at
                        FROM get_user_transactions(%s, %s)
                        """,
                        (user_id, limit),
                    )
                    rows = cur.fetchall()
        except psycopg2.Error as exc:
            raise LedgerUnavailableError(str(exc)) from exc

        return [self._to_domain(row) for row in rows]

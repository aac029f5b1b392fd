from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from contextlib import closing
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from domain.errors import LedgerUnavailableError
from domain.models import (
    CoinUpdateResult,
    TransactionStatus,
    TransactionType,
    UserProfile,
    WalletTransaction,
)
from domain.money import from_cents, to_cents
from domain.repositories import LedgerRepository


logger = logging.getLogger(__name__)


class SqliteLedgerRepository(LedgerRepository):
    """
    SQLite-backed implementation of `LedgerRepository`.

    Owns the `profiles` and `wallet_transactions` tables. Amounts are stored
    as integer cents. Every coin update runs inside a `BEGIN IMMEDIATE`
    transaction, so the balance check, the balance write and the log row
    commit together or not at all, even with several processes sharing
    the file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._ensure_tables()

    def _get_connection(self) -> sqlite3.Connection:
        # Autocommit mode: transactions are opened explicitly below.
        return sqlite3.connect(self._db_path, isolation_level=None, timeout=10)

    def _ensure_tables(self) -> None:
        with closing(self._get_connection()) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS profiles (
                    user_id TEXT PRIMARY KEY,
                    coins_cents INTEGER NOT NULL DEFAULT 0 CHECK (coins_cents >= 0)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS wallet_transactions (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    user_id TEXT NOT NULL,
                    type TEXT NOT NULL,
                    amount_cents INTEGER NOT NULL,
                    description TEXT NOT NULL,
                    status TEXT NOT NULL,
                    details TEXT NOT NULL DEFAULT '{}',
                    related_item_id TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_wallet_transactions_user
                ON wallet_transactions (user_id, seq)
                """
            )

    @staticmethod
    def _to_domain(row: tuple) -> WalletTransaction:
        return WalletTransaction(
            id=row[0],
            type=TransactionType(row[1]),
            amount=from_cents(row[2]),
            description=row[3],
            status=TransactionStatus(row[4]),
            details=json.loads(row[5] or "{}"),
            related_item_id=row[6],
            timestamp=datetime.fromisoformat(row[7]),
        )

    @staticmethod
    def _related_item_id(details: Dict[str, Any]) -> Optional[str]:
        for key in ("eventId", "groupId"):
            if details.get(key) is not None:
                return str(details[key])
        return None

    def update_user_coins(
        self,
        user_id: str,
        amount: Decimal,
        transaction_type: TransactionType,
        description: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> CoinUpdateResult:
        delta = to_cents(amount)
        if delta == 0:
            return CoinUpdateResult(success=False, error="Amount must not be zero")

        details = dict(details or {})
        transaction = WalletTransaction(
            id=str(uuid.uuid4()),
            type=TransactionType(transaction_type),
            amount=from_cents(delta),
            description=description,
            timestamp=datetime.now(timezone.utc),
            status=TransactionStatus.COMPLETED,
            details=details,
            related_item_id=self._related_item_id(details),
        )

        try:
            with closing(self._get_connection()) as conn:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    row = conn.execute(
                        "SELECT coins_cents FROM profiles WHERE user_id = ?",
                        (user_id,),
                    ).fetchone()
                    current = int(row[0]) if row else 0
                    new_balance = current + delta

                    if new_balance < 0:
                        conn.execute("ROLLBACK")
                        return CoinUpdateResult(
                            success=False,
                            new_balance=from_cents(current),
                            error="Insufficient funds",
                        )

                    conn.execute(
                        """
                        INSERT INTO profiles (user_id, coins_cents)
                        VALUES (?, ?)
                        ON CONFLICT (user_id)
                        DO UPDATE SET coins_cents = excluded.coins_cents
                        """,
                        (user_id, new_balance),
                    )
                    conn.execute(
                        """
                        INSERT INTO wallet_transactions (
                            id, user_id, type, amount_cents, description,
                            status, details, related_item_id, created_at
                        )
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            transaction.id,
                            user_id,
                            transaction.type.value,
                            delta,
                            description,
                            transaction.status.value,
                            json.dumps(details),
                            transaction.related_item_id,
                            transaction.timestamp.isoformat(),
                        ),
                    )
                    conn.execute("COMMIT")
                except Exception:
                    conn.execute("ROLLBACK")
                    raise
        except sqlite3.Error as exc:
            logger.error("Coin update for %s rolled back: %s", user_id, exc)
            raise LedgerUnavailableError(str(exc)) from exc

        return CoinUpdateResult(
            success=True,
            transaction=transaction,
            new_balance=from_cents(new_balance),
        )

    def get_user_profile(self, user_id: str) -> UserProfile:
        try:
            with closing(self._get_connection()) as conn:
                row = conn.execute(
                    "SELECT coins_cents FROM profiles WHERE user_id = ?",
                    (user_id,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(str(exc)) from exc

        coins = from_cents(row[0]) if row else from_cents(0)
        return UserProfile(user_id=user_id, coins=coins)

    def get_user_transactions(
        self,
        user_id: str,
        limit: int = 50,
    ) -> List[WalletTransaction]:
        try:
            with closing(self._get_connection()) as conn:
                rows = conn.execute(
                    """
                    SELECT id, type, amount_cents, description, status,
                           details, related_item_id, created_at
                    FROM wallet_transactions
                    WHERE user_id = ?
                    ORDER BY seq DESC
                    LIMIT ?
                    """,
                    (user_id, limit),
                ).fetchall()
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(str(exc)) from exc

        return [self._to_domain(row) for row in rows]

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol

from .models import (
    CoinUpdateResult,
    TransactionType,
    UserCategory,
    UserProfile,
    UserStats,
    WalletTransaction,
)


class LedgerRepository(Protocol):
    """
    Abstraction over the authoritative per-user balance and transaction log.

    Implementations are responsible for:
    - Applying each coin update atomically (balance and log row together,
      or neither).
    - Hiding any SQL / driver details from the application layer.
    - Raising `LedgerUnavailableError` on storage failures.
    """

    def update_user_coins(
        self,
        user_id: str,
        amount: Decimal,
        transaction_type: TransactionType,
        description: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> CoinUpdateResult:
        """
        Adjust the user's balance by the signed `amount` and append a
        completed transaction.

        A debit that would take the balance below zero is rejected with
        `success=False` and no mutation.
        """

        ...

    def get_user_profile(self, user_id: str) -> UserProfile:
        """Return the user's profile; a user with no wallet yet has zero coins."""

        ...

    def get_user_transactions(
        self,
        user_id: str,
        limit: int = 50,
    ) -> List[WalletTransaction]:
        """Return the user's transactions, newest first."""

        ...


class UserStatsRepository(Protocol):
    """
    Activity counters that drive the fee-discount category.
    """

    def get_user_stats(self, user_id: str) -> UserStats:
        ...

    def increment_stat(self, user_id: str, stat: str) -> None:
        """
        Increment one of `events_created`, `events_joined`,
        `groups_created`, `groups_joined` and stamp the activity time.
        """

        ...

    def recalculate_user_category(self, user_id: str) -> UserCategory:
        """Recompute, persist and return the user's category."""

        ...

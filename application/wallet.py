from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from application.notifications import NotificationLevel, NotificationType, Notifier
from domain.fees import calculate_fee
from domain.models import (
    TransactionType,
    UserCategory,
    WalletSnapshot,
    WalletTransaction,
)
from domain.money import format_coins, parse_amount
from domain.repositories import LedgerRepository, UserStatsRepository


logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Failed to process transaction"
WALLET_URL = "/wallet"


class WalletPhase(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    CALLING_RPC = "calling_rpc"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class WalletOperationResult:
    """Result of a deposit, withdrawal or fee charge."""

    success: bool
    error_message: Optional[str] = None
    transaction: Optional[WalletTransaction] = None
    new_balance: Optional[Decimal] = None
    fee: Optional[Decimal] = None


@dataclass(frozen=True)
class FeeKind:
    detail_key: str
    stat: str
    description: str
    action: str


FEE_KINDS: Dict[TransactionType, FeeKind] = {
    TransactionType.EVENT_CREATION_FEE: FeeKind(
        "eventId", "events_created", "Event creation fee", "create event"
    ),
    TransactionType.EVENT_JOIN_FEE: FeeKind(
        "eventId", "events_joined", "Event join fee", "join event"
    ),
    TransactionType.GROUP_CREATION_FEE: FeeKind(
        "groupId", "groups_created", "Group creation fee", "create group"
    ),
    TransactionType.GROUP_JOIN_FEE: FeeKind(
        "groupId", "groups_joined", "Group join fee", "join group"
    ),
}


class WalletService:
    """
    Client-side wallet for one authenticated user.

    Each operation runs in two phases:
    - a local validation phase against the cached balance, which never
      touches the ledger store;
    - a remote commit phase through `LedgerRepository.update_user_coins`,
      which is authoritative.

    The cached balance and transaction list only change through
    `refresh()`, which re-reads both from the store after every successful
    mutation. There is no local lock: two calls issued back to back may
    race, and the store's atomicity decides the outcome.
    """

    def __init__(
        self,
        user_id: str,
        ledger_repo: LedgerRepository,
        stats_repo: UserStatsRepository,
        notifier: Notifier,
    ) -> None:
        self.user_id = user_id
        self._ledger_repo = ledger_repo
        self._stats_repo = stats_repo
        self._notifier = notifier
        self._balance = Decimal("0.00")
        self._transactions: List[WalletTransaction] = []
        self.phase = WalletPhase.IDLE
        self.last_outcome: Optional[WalletPhase] = None

    # ------------------------------------------------------------------
    # Cached state
    # ------------------------------------------------------------------

    @property
    def balance(self) -> Decimal:
        return self._balance

    def get_balance(self) -> Decimal:
        return self._balance

    @property
    def transactions(self) -> List[WalletTransaction]:
        return list(self._transactions)

    def refresh(self) -> WalletSnapshot:
        """Re-fetch balance and transactions from the ledger store."""

        profile = self._ledger_repo.get_user_profile(self.user_id)
        transactions = self._ledger_repo.get_user_transactions(self.user_id)
        self._balance = profile.coins
        self._transactions = list(transactions)
        return WalletSnapshot(balance=self._balance, transactions=self.transactions)

    # ------------------------------------------------------------------
    # Validation phase
    # ------------------------------------------------------------------

    def validate_deposit(self, amount: Any) -> Optional[str]:
        value = parse_amount(amount)
        if value is None or value <= 0:
            return "Invalid deposit amount"
        return None

    def validate_withdrawal(self, amount: Any) -> Optional[str]:
        value = parse_amount(amount)
        if value is None or value <= 0:
            return "Invalid withdrawal amount"
        if value > self._balance:
            return "Insufficient funds"
        return None

    def validate_charge(self, fee: Decimal, action: str = "complete payment") -> Optional[str]:
        if fee > self._balance:
            return f"Insufficient funds to {action}"
        return None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def deposit(self, amount: Any) -> WalletOperationResult:
        self.phase = WalletPhase.VALIDATING
        error = self.validate_deposit(amount)
        if error:
            return self._fail(error)

        value = parse_amount(amount)
        return self._commit(
            amount=value,
            transaction_type=TransactionType.DEPOSIT,
            description="Added funds to wallet",
            details=None,
            success_message=f"Successfully added {format_coins(value)} to your wallet",
            notification_type=NotificationType.WALLET_UPDATED,
        )

    def withdraw(self, amount: Any) -> WalletOperationResult:
        self.phase = WalletPhase.VALIDATING
        error = self.validate_withdrawal(amount)
        if error:
            return self._fail(error)

        value = parse_amount(amount)
        return self._commit(
            amount=-value,
            transaction_type=TransactionType.WITHDRAWAL,
            description="Withdrew funds from wallet",
            details=None,
            success_message=f"Successfully withdrew {format_coins(value)} from your wallet",
            notification_type=NotificationType.WALLET_UPDATED,
        )

    def charge_fee(
        self,
        transaction_type: TransactionType,
        item_id: str,
        base_amount: Any,
    ) -> WalletOperationResult:
        """
        Charge a category-discounted fee for creating or joining an event
        or group.

        A non-positive base amount, or one the discount brings below a cent,
        means the item is free: the call succeeds without touching the ledger
        and without a notification.
        """

        kind = FEE_KINDS.get(TransactionType(transaction_type))
        if kind is None:
            raise ValueError(f"{transaction_type} is not a fee transaction type.")

        self.phase = WalletPhase.VALIDATING
        base = parse_amount(base_amount)
        if base is None:
            return self._fail("Invalid fee amount")
        if base <= 0:
            return self._free()

        fee = calculate_fee(base, self._current_category())
        if fee <= 0:
            # A sub-cent fee discounts to nothing; there is nothing to charge.
            return self._free()

        error = self.validate_charge(fee, kind.action)
        if error:
            return self._fail(error, fee=fee)

        details = {
            kind.detail_key: item_id,
            "baseAmount": float(base),
            "finalAmount": float(fee),
        }
        result = self._commit(
            amount=-fee,
            transaction_type=TransactionType(transaction_type),
            description=kind.description,
            details=details,
            success_message=f"{kind.description} of {format_coins(fee)} charged successfully",
            notification_type=NotificationType.PAYMENT_COMPLETED,
        )
        result.fee = fee
        if result.success:
            self._record_activity(kind.stat)
        return result

    def charge_event_creation_fee(self, event_id: str, base_amount: Any) -> WalletOperationResult:
        return self.charge_fee(TransactionType.EVENT_CREATION_FEE, event_id, base_amount)

    def charge_event_join_fee(self, event_id: str, base_amount: Any) -> WalletOperationResult:
        return self.charge_fee(TransactionType.EVENT_JOIN_FEE, event_id, base_amount)

    def charge_group_creation_fee(self, group_id: str, base_amount: Any) -> WalletOperationResult:
        return self.charge_fee(TransactionType.GROUP_CREATION_FEE, group_id, base_amount)

    def charge_group_join_fee(self, group_id: str, base_amount: Any) -> WalletOperationResult:
        return self.charge_fee(TransactionType.GROUP_JOIN_FEE, group_id, base_amount)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _current_category(self) -> Optional[UserCategory]:
        # Fetched fresh each time; the server may have reclassified the user.
        try:
            return self._stats_repo.get_user_stats(self.user_id).category
        except Exception:
            logger.warning(
                "Category lookup failed for user %s; charging without discount",
                self.user_id,
                exc_info=True,
            )
            return None

    def _record_activity(self, stat: str) -> None:
        try:
            self._stats_repo.increment_stat(self.user_id, stat)
            self._stats_repo.recalculate_user_category(self.user_id)
        except Exception:
            logger.exception("Failed to update %s for user %s", stat, self.user_id)

    def _commit(
        self,
        amount: Decimal,
        transaction_type: TransactionType,
        description: str,
        details: Optional[Dict[str, Any]],
        success_message: str,
        notification_type: NotificationType,
    ) -> WalletOperationResult:
        self.phase = WalletPhase.CALLING_RPC
        try:
            outcome = self._ledger_repo.update_user_coins(
                self.user_id,
                amount,
                transaction_type,
                description,
                details,
            )
        except Exception:
            logger.exception(
                "Coin update of %s (%s) failed for user %s",
                amount,
                transaction_type.value,
                self.user_id,
            )
            return self._fail(GENERIC_FAILURE)

        if not outcome.success:
            return self._fail(outcome.error or GENERIC_FAILURE)

        logger.info(
            "User %s: %s %s, new balance %s",
            self.user_id,
            transaction_type.value,
            amount,
            outcome.new_balance,
        )

        try:
            self.refresh()
        except Exception:
            # The money has moved; the next refresh will catch the cache up.
            logger.exception("Wallet refresh failed for user %s", self.user_id)

        self._notifier.add_notification(
            self.user_id,
            notification_type,
            success_message,
            NotificationLevel.SUCCESS,
            action_url=WALLET_URL,
        )
        self._finish(WalletPhase.SUCCEEDED)
        return WalletOperationResult(
            success=True,
            transaction=outcome.transaction,
            new_balance=outcome.new_balance,
        )

    def _fail(self, message: str, fee: Optional[Decimal] = None) -> WalletOperationResult:
        self._notifier.add_notification(
            self.user_id,
            NotificationType.PAYMENT_FAILED,
            message,
            NotificationLevel.ERROR,
            action_url=WALLET_URL,
        )
        self._finish(WalletPhase.FAILED)
        return WalletOperationResult(
            success=False,
            error_message=message,
            new_balance=self._balance,
            fee=fee,
        )

    def _free(self) -> WalletOperationResult:
        self._finish(WalletPhase.SUCCEEDED)
        return WalletOperationResult(
            success=True, new_balance=self._balance, fee=Decimal("0.00")
        )

    def _finish(self, outcome: WalletPhase) -> None:
        self.last_outcome = outcome
        self.phase = WalletPhase.IDLE

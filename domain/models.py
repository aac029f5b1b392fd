from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    EVENT_CREATION_FEE = "event_creation_fee"
    EVENT_JOIN_FEE = "event_join_fee"
    GROUP_CREATION_FEE = "group_creation_fee"
    GROUP_JOIN_FEE = "group_join_fee"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class UserCategory(str, Enum):
    """Server-derived activity tier, used only to pick a fee discount."""

    NEW = "new"
    ACTIVE = "active"
    HIBERNATING = "hibernating"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class WalletTransaction:
    """
    One committed row of a user's ledger.

    Rows are append-only: the client never updates or deletes them. The sum
    of `amount` over all rows of a user equals that user's balance.
    """

    id: str
    type: TransactionType
    amount: Decimal
    description: str
    timestamp: datetime
    status: TransactionStatus = TransactionStatus.COMPLETED
    details: Dict[str, Any] = field(default_factory=dict)
    related_item_id: Optional[str] = None


@dataclass
class UserProfile:
    user_id: str
    coins: Decimal


@dataclass
class UserStats:
    user_id: str
    events_created: int = 0
    events_joined: int = 0
    groups_created: int = 0
    groups_joined: int = 0
    last_activity_at: Optional[datetime] = None
    category: UserCategory = UserCategory.NEW

    @property
    def total_activity(self) -> int:
        return (
            self.events_created
            + self.events_joined
            + self.groups_created
            + self.groups_joined
        )


STAT_FIELDS = ("events_created", "events_joined", "groups_created", "groups_joined")


@dataclass
class CoinUpdateResult:
    """Outcome of a single coin update against the ledger store."""

    success: bool
    transaction: Optional[WalletTransaction] = None
    new_balance: Optional[Decimal] = None
    error: Optional[str] = None


@dataclass
class WalletSnapshot:
    balance: Decimal
    transactions: List[WalletTransaction] = field(default_factory=list)

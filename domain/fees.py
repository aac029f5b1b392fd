from __future__ import annotations

from decimal import ROUND_DOWN, Decimal
from typing import Any, Dict, Optional, Union

from .models import TransactionType, UserCategory
from .money import CENT


CATEGORY_DISCOUNTS: Dict[UserCategory, Decimal] = {
    UserCategory.ACTIVE: Decimal("0.20"),
    UserCategory.HIBERNATING: Decimal("0.10"),
    UserCategory.NEW: Decimal("0"),
    UserCategory.INACTIVE: Decimal("0"),
}


def discount_for(category: Optional[Union[UserCategory, str]]) -> Decimal:
    """Return the discount rate for `category`; anything unrecognised gets none."""

    if category is None:
        return Decimal("0")
    try:
        key = UserCategory(category)
    except ValueError:
        return Decimal("0")
    return CATEGORY_DISCOUNTS.get(key, Decimal("0"))


def calculate_fee(
    base_amount: Any,
    category: Optional[Union[UserCategory, str]],
) -> Decimal:
    """
    Discount `base_amount` by the user's activity category.

    The result is rounded down to whole cents, so it never exceeds the
    base amount.
    """

    base = Decimal(str(base_amount))
    if base < 0:
        raise ValueError("Base amount must not be negative.")

    fee = base * (Decimal("1") - discount_for(category))
    return fee.quantize(CENT, rounding=ROUND_DOWN)


BASE_FEES: Dict[TransactionType, Decimal] = {
    TransactionType.EVENT_CREATION_FEE: Decimal("50.00"),
    TransactionType.EVENT_JOIN_FEE: Decimal("25.00"),
    TransactionType.GROUP_CREATION_FEE: Decimal("75.00"),
    TransactionType.GROUP_JOIN_FEE: Decimal("30.00"),
}
PREMIUM_EVENT_JOIN_FEE = Decimal("100.00")

STANDARD_TIER = "standard"
PREMIUM_TIER = "premium"


def resolve_base_fee(
    transaction_type: Union[TransactionType, str],
    requested: Optional[Any] = None,
) -> Any:
    """
    Pick the base amount to charge for a fee transaction.

    No request, or the `standard` tier, gives the standard fee for the
    type. The `premium` tier only exists for event joins. Anything else is
    a custom amount and is returned untouched for the wallet to validate.
    """

    kind = TransactionType(transaction_type)
    if kind not in BASE_FEES:
        raise ValueError(f"{kind.value} has no base fee.")

    tier = requested.strip().lower() if isinstance(requested, str) else requested
    if tier is None or tier == STANDARD_TIER:
        return BASE_FEES[kind]
    if tier == PREMIUM_TIER:
        if kind is not TransactionType.EVENT_JOIN_FEE:
            raise ValueError("Only event joins have a premium tier.")
        return PREMIUM_EVENT_JOIN_FEE
    return requested

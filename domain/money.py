from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional


CENT = Decimal("0.01")
COIN_GLYPH = "🪙"


def to_amount(value: Any) -> Decimal:
    """Coerce ints, floats, strings and Decimals to a two-place Decimal."""

    if isinstance(value, Decimal):
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    # `str()` first so that 0.1 becomes Decimal("0.1") and not its binary expansion.
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value: Any) -> Optional[Decimal]:
    """Like `to_amount`, but returns None for anything that is not a finite number."""

    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite():
            return None
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return None


def to_cents(value: Any) -> int:
    return int((to_amount(value) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(int(cents)) / 100).quantize(CENT)


def format_coins(amount: Any) -> str:
    return f"{COIN_GLYPH}{to_amount(amount):.2f}"


def format_signed_coins(amount: Any) -> str:
    value = to_amount(amount)
    sign = "+" if value >= 0 else "-"
    return f"{sign}{COIN_GLYPH}{abs(value):.2f}"

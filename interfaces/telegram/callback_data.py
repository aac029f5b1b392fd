from __future__ import annotations

from decimal import Decimal

from domain.money import parse_amount


QUICK_DEPOSIT_AMOUNTS = ("10", "25", "50", "100")


def _parse_positive_amount(raw: str, data: str) -> Decimal:
    amount = parse_amount(raw)
    if amount is None or amount <= 0:
        raise ValueError(f"Invalid amount in callback data: {data}")
    return amount


def encode_quick_deposit(amount) -> str:
    """
    Encode a quick-amount deposit button.

    Format: dep:{amount}
    """

    return f"dep:{amount}"


def parse_quick_deposit(data: str) -> Decimal:
    parts = data.split(":")
    if len(parts) != 2 or parts[0] != "dep":
        raise ValueError(f"Invalid deposit callback data: {data}")
    return _parse_positive_amount(parts[1], data)


def encode_withdraw_confirmation(amount, accepted: bool) -> str:
    """
    Encode a withdrawal confirmation/cancel button.

    Format:
      wd:yes:{amount}
      wd:no:{amount}
    """

    answer = "yes" if accepted else "no"
    return f"wd:{answer}:{amount}"


def parse_withdraw_confirmation(data: str) -> tuple[bool, Decimal]:
    parts = data.split(":")
    if len(parts) != 3 or parts[0] != "wd" or parts[1] not in ("yes", "no"):
        raise ValueError(f"Invalid withdrawal callback data: {data}")

    accepted = parts[1] == "yes"
    return accepted, _parse_positive_amount(parts[2], data)

from __future__ import annotations

from typing import Iterable, List

from application.notifications import Notification, NotificationLevel
from domain.models import TransactionType, WalletTransaction
from domain.money import format_coins, format_signed_coins


TRANSACTION_TITLES = {
    TransactionType.DEPOSIT: "Added Money",
    TransactionType.WITHDRAWAL: "Withdrew Money",
    TransactionType.EVENT_CREATION_FEE: "Event Creation Fee",
    TransactionType.EVENT_JOIN_FEE: "Event Join Fee",
    TransactionType.GROUP_CREATION_FEE: "Group Creation Fee",
    TransactionType.GROUP_JOIN_FEE: "Group Join Fee",
}


def transaction_title(transaction_type: TransactionType) -> str:
    return TRANSACTION_TITLES.get(transaction_type, "Transaction")


def format_transaction(tx: WalletTransaction) -> str:
    when = tx.timestamp.strftime("%Y-%m-%d %H:%M")
    line = f"{when}  {transaction_title(tx.type)}  {format_signed_coins(tx.amount)}"
    if tx.related_item_id:
        line += f"  ({tx.related_item_id})"
    return line


def format_history(transactions: Iterable[WalletTransaction]) -> str:
    lines: List[str] = [format_transaction(tx) for tx in transactions]
    if not lines:
        return (
            "No transactions yet.\n"
            "Add funds to your wallet or join events to see transactions here."
        )
    return "\n".join(lines)


def format_balance(balance) -> str:
    return f"Balance: {format_coins(balance)}"


def format_notification(notification: Notification) -> str:
    marker = "✅" if notification.level == NotificationLevel.SUCCESS else "⚠️"
    return f"{marker} {notification.message}"

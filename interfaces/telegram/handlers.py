from __future__ import annotations

import telebot
from telebot.types import InlineKeyboardButton, InlineKeyboardMarkup

from application.notifications import Notification
from application.sessions import ExternalContext, WalletSessionRegistry
from domain.fees import resolve_base_fee
from domain.models import TransactionType
from domain.money import format_coins, parse_amount
from interfaces.formatting import format_balance, format_history, format_notification
from interfaces.telegram.callback_data import (
    QUICK_DEPOSIT_AMOUNTS,
    encode_quick_deposit,
    encode_withdraw_confirmation,
    parse_quick_deposit,
    parse_withdraw_confirmation,
)


PROVIDER = "telegram"

FEE_COMMANDS = {
    "createevent": TransactionType.EVENT_CREATION_FEE,
    "joinevent": TransactionType.EVENT_JOIN_FEE,
    "creategroup": TransactionType.GROUP_CREATION_FEE,
    "joingroup": TransactionType.GROUP_JOIN_FEE,
}


def _build_external_context(user) -> ExternalContext:
    """Extract a channel-agnostic context object from a Telegram user."""

    name = " ".join(part for part in (user.first_name, user.last_name) if part)
    return ExternalContext(
        provider=PROVIDER,
        provider_user_id=str(user.id),
        display_name=name,
    )


def create_telegram_bot(
    bot_token: str,
    sessions: WalletSessionRegistry,
) -> telebot.TeleBot:
    """
    Configure and return a TeleBot instance wired to the wallet sessions.

    This module contains only Telegram-specific concerns: parsing Telegram
    messages/callbacks and delivering wallet notifications back to chats.
    Outcome messages reach the user through the notification listener, so
    handlers do not echo them.
    """

    bot = telebot.TeleBot(bot_token)

    def deliver(notification: Notification) -> None:
        ctx = sessions.context_for(notification.user_id)
        if ctx is None or ctx.provider != PROVIDER:
            return
        bot.send_message(int(ctx.provider_user_id), format_notification(notification))

    sessions.notifications.subscribe(deliver)

    @bot.message_handler(commands=["start", "hello"])
    def handle_start(message):
        sessions.get_or_create(_build_external_context(message.from_user))
        bot.send_message(
            message.chat.id,
            "Welcome to your Renaissance wallet!\n"
            "Use /deposit and /withdraw to manage coins.\n"
            "Type /help to see available commands.",
        )

    @bot.message_handler(commands=["help"])
    def handle_help(message):
        bot.send_message(
            message.chat.id,
            "/balance                   - show your balance\n"
            "/history                   - show recent transactions\n"
            "/deposit <amount>          - add coins to your wallet\n"
            "/withdraw <amount>         - withdraw coins from your wallet\n"
            "/createevent <id> [fee]    - pay the fee to create an event (50)\n"
            "/joinevent <id> [fee]      - pay the fee to join an event (25, or premium 100)\n"
            "/creategroup <id> [fee]    - pay the fee to create a group (75)\n"
            "/joingroup <id> [fee]      - pay the fee to join a group (30)\n"
            "/notifications             - show recent wallet notifications\n"
            "/logout                    - end your wallet session\n",
        )

    @bot.message_handler(commands=["balance"])
    def handle_balance(message):
        wallet = sessions.get_or_create(_build_external_context(message.from_user))
        wallet.refresh()
        bot.send_message(message.chat.id, format_balance(wallet.balance))

    @bot.message_handler(commands=["history"])
    def handle_history(message):
        wallet = sessions.get_or_create(_build_external_context(message.from_user))
        wallet.refresh()
        bot.send_message(message.chat.id, format_history(wallet.transactions[:10]))

    @bot.message_handler(commands=["deposit"])
    def handle_deposit(message):
        wallet = sessions.get_or_create(_build_external_context(message.from_user))
        parts = message.text.split()

        if len(parts) < 2:
            markup = InlineKeyboardMarkup(row_width=len(QUICK_DEPOSIT_AMOUNTS))
            markup.add(
                *[
                    InlineKeyboardButton(
                        format_coins(amount),
                        callback_data=encode_quick_deposit(amount),
                    )
                    for amount in QUICK_DEPOSIT_AMOUNTS
                ]
            )
            bot.send_message(message.chat.id, "How much do you want to add?", reply_markup=markup)
            return

        wallet.deposit(parts[1])

    @bot.message_handler(commands=["withdraw"])
    def handle_withdraw(message):
        wallet = sessions.get_or_create(_build_external_context(message.from_user))
        parts = message.text.split()
        if len(parts) < 2:
            bot.send_message(message.chat.id, "Please enter an amount to withdraw.")
            return

        error = wallet.validate_withdrawal(parts[1])
        if error:
            # Run the full operation so the failure is recorded and notified.
            wallet.withdraw(parts[1])
            return

        amount = parse_amount(parts[1])
        markup = InlineKeyboardMarkup(row_width=2)
        markup.add(
            InlineKeyboardButton(
                "yes", callback_data=encode_withdraw_confirmation(amount, accepted=True)
            ),
            InlineKeyboardButton(
                "no", callback_data=encode_withdraw_confirmation(amount, accepted=False)
            ),
        )
        bot.send_message(
            message.chat.id,
            f"Withdraw {format_coins(amount)} from your wallet?",
            reply_markup=markup,
        )

    @bot.message_handler(commands=list(FEE_COMMANDS))
    def handle_fee(message):
        wallet = sessions.get_or_create(_build_external_context(message.from_user))
        parts = message.text.split()
        command = parts[0][1:].split("@")[0]  # strip leading '/' and bot mention
        usage = f"Usage: /{command} <id> [fee]"
        if len(parts) < 2:
            bot.send_message(message.chat.id, usage)
            return

        transaction_type = FEE_COMMANDS[command]
        try:
            base = resolve_base_fee(transaction_type, parts[2] if len(parts) > 2 else None)
        except ValueError as exc:
            bot.send_message(message.chat.id, f"{exc}\n{usage}")
            return

        wallet.charge_fee(transaction_type, parts[1], base)

    @bot.message_handler(commands=["notifications"])
    def handle_notifications(message):
        wallet = sessions.get_or_create(_build_external_context(message.from_user))
        recent = sessions.notifications.list_for(wallet.user_id)[:5]
        if not recent:
            bot.send_message(message.chat.id, "No notifications.")
            return

        bot.send_message(message.chat.id, "\n".join(format_notification(n) for n in recent))
        sessions.notifications.mark_all_as_read(wallet.user_id)

    @bot.message_handler(commands=["logout"])
    def handle_logout(message):
        sessions.end_session(_build_external_context(message.from_user))
        bot.send_message(message.chat.id, "Wallet session closed.")

    @bot.callback_query_handler(func=lambda call: call.data.startswith("dep:"))
    def handle_quick_deposit(call):
        try:
            amount = parse_quick_deposit(call.data)
        except ValueError:
            bot.answer_callback_query(call.id, "Invalid selection.")
            return

        wallet = sessions.get_or_create(_build_external_context(call.from_user))
        try:
            wallet.deposit(amount)
        finally:
            bot.delete_message(call.message.chat.id, call.message.id)

    @bot.callback_query_handler(func=lambda call: call.data.startswith("wd:"))
    def handle_withdraw_confirmation(call):
        try:
            accepted, amount = parse_withdraw_confirmation(call.data)
        except ValueError:
            bot.answer_callback_query(call.id, "Invalid confirmation.")
            return

        try:
            if accepted:
                wallet = sessions.get_or_create(_build_external_context(call.from_user))
                wallet.withdraw(amount)
            else:
                bot.answer_callback_query(call.id, "Withdrawal cancelled.")
        finally:
            bot.delete_message(call.message.chat.id, call.message.id)

    return bot

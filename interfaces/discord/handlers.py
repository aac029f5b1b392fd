from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Dict, Optional, Set

import discord
from discord.ext import commands

from application.notifications import Notification
from application.sessions import ExternalContext, WalletSessionRegistry
from application.wallet import WalletService
from domain.fees import resolve_base_fee
from domain.models import TransactionType
from interfaces.formatting import format_balance, format_history, format_notification


logger = logging.getLogger(__name__)

PROVIDER = "discord"


def _build_external_context(user: discord.abc.User) -> ExternalContext:
    """Create an `ExternalContext` from a Discord user."""

    return ExternalContext(
        provider=PROVIDER,
        provider_user_id=str(user.id),
        display_name=user.display_name or user.name,
    )


def spawn_tracked(
    loop: asyncio.AbstractEventLoop,
    pending: Set[asyncio.Task],
    coro: Coroutine[Any, Any, Any],
) -> asyncio.Task:
    """
    Schedule `coro` on `loop` and hold a reference to it in `pending` until it
    finishes. A failure is logged instead of being dropped with the task.
    """

    task = loop.create_task(coro)
    pending.add(task)

    def _finished(done: asyncio.Task) -> None:
        pending.discard(done)
        if not done.cancelled() and done.exception() is not None:
            logger.error("Failed to deliver notification: %s", done.exception())

    task.add_done_callback(_finished)
    return task


def create_discord_bot(sessions: WalletSessionRegistry) -> commands.Bot:
    """
    Configure and return a Discord bot with behaviour analogous to
    the Telegram interface: balance, history, deposits, withdrawals and fees.
    """

    intents = discord.Intents.default()
    intents.message_content = True

    # Disable the default help command so we can provide our own `!help`.
    bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)

    # Channel of each user's most recent command, keyed by internal user ID.
    # Wallet notifications for that user are posted there.
    reply_channels: Dict[str, discord.abc.Messageable] = {}
    # Strong references to in-flight notification sends until they finish.
    pending_sends: Set[asyncio.Task] = set()

    def deliver(notification: Notification) -> None:
        ctx = sessions.context_for(notification.user_id)
        if ctx is None or ctx.provider != PROVIDER:
            return
        channel = reply_channels.get(notification.user_id)
        if channel is None:
            return
        spawn_tracked(bot.loop, pending_sends, channel.send(format_notification(notification)))

    sessions.notifications.subscribe(deliver)

    def wallet_for(ctx: commands.Context) -> WalletService:
        wallet = sessions.get_or_create(_build_external_context(ctx.author))
        reply_channels[wallet.user_id] = ctx.channel
        return wallet

    async def charge(
        ctx: commands.Context,
        transaction_type: TransactionType,
        item_id: str,
        fee: Optional[str],
    ) -> None:
        try:
            base = resolve_base_fee(transaction_type, fee)
        except ValueError as exc:
            await ctx.send(f"{exc} Type !help for usage.")
            return
        wallet_for(ctx).charge_fee(transaction_type, item_id, base)

    @bot.event
    async def on_ready():
        logger.info("Discord bot logged in as %s (id=%s)", bot.user, bot.user.id)

    @bot.command(name="start")
    async def start_cmd(ctx: commands.Context):
        wallet_for(ctx)
        await ctx.send(
            "Welcome to your Renaissance wallet (Discord)!\n"
            "Use !deposit and !withdraw to manage coins.\n"
            "Type !help to see available commands."
        )

    @bot.command(name="help")
    async def help_cmd(ctx: commands.Context):
        await ctx.send(
            "!balance                   - show your balance\n"
            "!history                   - show recent transactions\n"
            "!deposit <amount>          - add coins to your wallet\n"
            "!withdraw <amount>         - withdraw coins from your wallet\n"
            "!createevent <id> [fee]    - pay the fee to create an event (50)\n"
            "!joinevent <id> [fee]      - pay the fee to join an event (25, or premium 100)\n"
            "!creategroup <id> [fee]    - pay the fee to create a group (75)\n"
            "!joingroup <id> [fee]      - pay the fee to join a group (30)\n"
            "!notifications             - show recent wallet notifications\n"
            "!logout                    - end your wallet session\n"
        )

    @bot.command(name="balance")
    async def balance_cmd(ctx: commands.Context):
        wallet = wallet_for(ctx)
        wallet.refresh()
        await ctx.send(format_balance(wallet.balance))

    @bot.command(name="history")
    async def history_cmd(ctx: commands.Context):
        wallet = wallet_for(ctx)
        wallet.refresh()
        await ctx.send(format_history(wallet.transactions[:10]))

    @bot.command(name="deposit")
    async def deposit_cmd(ctx: commands.Context, amount: str):
        wallet_for(ctx).deposit(amount)

    @bot.command(name="withdraw")
    async def withdraw_cmd(ctx: commands.Context, amount: str):
        wallet_for(ctx).withdraw(amount)

    @bot.command(name="createevent")
    async def create_event_cmd(ctx: commands.Context, event_id: str, fee: Optional[str] = None):
        await charge(ctx, TransactionType.EVENT_CREATION_FEE, event_id, fee)

    @bot.command(name="joinevent")
    async def join_event_cmd(ctx: commands.Context, event_id: str, fee: Optional[str] = None):
        await charge(ctx, TransactionType.EVENT_JOIN_FEE, event_id, fee)

    @bot.command(name="creategroup")
    async def create_group_cmd(ctx: commands.Context, group_id: str, fee: Optional[str] = None):
        await charge(ctx, TransactionType.GROUP_CREATION_FEE, group_id, fee)

    @bot.command(name="joingroup")
    async def join_group_cmd(ctx: commands.Context, group_id: str, fee: Optional[str] = None):
        await charge(ctx, TransactionType.GROUP_JOIN_FEE, group_id, fee)

    @bot.command(name="notifications")
    async def notifications_cmd(ctx: commands.Context):
        wallet = wallet_for(ctx)
        recent = sessions.notifications.list_for(wallet.user_id)[:5]
        if not recent:
            await ctx.send("No notifications.")
            return

        await ctx.send("\n".join(format_notification(n) for n in recent))
        sessions.notifications.mark_all_as_read(wallet.user_id)

    @bot.command(name="logout")
    async def logout_cmd(ctx: commands.Context):
        external = _build_external_context(ctx.author)
        reply_channels.pop(external.user_id, None)
        sessions.end_session(external)
        await ctx.send("Wallet session closed.")

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError):
        if isinstance(error, commands.MissingRequiredArgument):
            await ctx.send(f"Missing argument: {error.param.name}. Type !help for usage.")
            return
        logger.error("Command %s failed: %s", ctx.command, error)
        await ctx.send("Something went wrong. Please try again.")

    return bot

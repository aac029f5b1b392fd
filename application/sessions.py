from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from application.notifications import NotificationCenter
from application.wallet import WalletService
from domain.repositories import LedgerRepository, UserStatsRepository


logger = logging.getLogger(__name__)

# Fixed namespace so the same chat identity always maps to the same wallet.
USER_NAMESPACE = uuid.UUID("5b0f6c8e-2f7a-4d7c-9a51-3f1f0e6a9c21")


@dataclass
class ExternalContext:
    """
    Information about the caller from a particular channel (Telegram, Discord).

    The application layer never depends on concrete SDK types; it only sees
    this small context object.
    """

    provider: str
    provider_user_id: str
    display_name: str = ""

    @property
    def user_id(self) -> str:
        return str(uuid.uuid5(USER_NAMESPACE, f"{self.provider}:{self.provider_user_id}"))


class WalletSessionRegistry:
    """
    Owns one `WalletService` per signed-in identity.

    The first request from an identity builds its wallet and loads the
    balance; later requests reuse the same object, so every consumer sees
    one balance per session.
    """

    def __init__(
        self,
        ledger_repo: LedgerRepository,
        stats_repo: UserStatsRepository,
        notifications: NotificationCenter,
    ) -> None:
        self._ledger_repo = ledger_repo
        self._stats_repo = stats_repo
        self.notifications = notifications
        self._sessions: Dict[Tuple[str, str], WalletService] = {}
        # Reverse map from internal user ID back to the chat identity, used
        # by interfaces to deliver notifications.
        self._contexts: Dict[str, ExternalContext] = {}
        # Telegram handlers run on a worker pool; creation must happen once.
        self._lock = threading.Lock()

    def get_or_create(self, ctx: ExternalContext) -> WalletService:
        key = (ctx.provider, ctx.provider_user_id)
        with self._lock:
            wallet = self._sessions.get(key)
            if wallet is not None:
                return wallet

            wallet = WalletService(
                ctx.user_id,
                self._ledger_repo,
                self._stats_repo,
                self.notifications,
            )
            wallet.refresh()
            self._sessions[key] = wallet
            self._contexts[wallet.user_id] = ctx
        logger.info("Opened wallet session for %s:%s", ctx.provider, ctx.provider_user_id)
        return wallet

    def context_for(self, user_id: str) -> Optional[ExternalContext]:
        return self._contexts.get(user_id)

    def end_session(self, ctx: ExternalContext) -> None:
        with self._lock:
            wallet = self._sessions.pop((ctx.provider, ctx.provider_user_id), None)
            if wallet is not None:
                self._contexts.pop(wallet.user_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

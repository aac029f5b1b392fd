from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Protocol


logger = logging.getLogger(__name__)

# Inbox history kept per user; older entries are dropped first.
MAX_NOTIFICATIONS_PER_USER = 50


class NotificationType(str, Enum):
    WALLET_UPDATED = "wallet_updated"
    PAYMENT_COMPLETED = "payment_completed"
    PAYMENT_FAILED = "payment_failed"


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class Notification:
    """A user-visible message about the outcome of a wallet operation."""

    id: str
    user_id: str
    type: NotificationType
    message: str
    level: NotificationLevel
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    read: bool = False
    action_url: Optional[str] = None


class Notifier(Protocol):
    """Anything the wallet facade can report outcomes to."""

    def add_notification(
        self,
        user_id: str,
        type: NotificationType,
        message: str,
        level: NotificationLevel,
        action_url: Optional[str] = None,
    ) -> Notification:
        ...


Listener = Callable[[Notification], None]


class NotificationCenter:
    """
    In-memory notification inbox with fan-out to subscribed listeners.

    Interfaces subscribe a listener that pushes each new notification to
    the right chat; the inbox itself keeps the history per user so that
    unread counts and "mark as read" work across commands. Each user keeps
    at most `max_per_user` entries.
    """

    def __init__(self, max_per_user: int = MAX_NOTIFICATIONS_PER_USER) -> None:
        if max_per_user < 1:
            raise ValueError("max_per_user must be at least 1.")
        self._max_per_user = max_per_user
        self._notifications: List[Notification] = []
        self._listeners: List[Listener] = []
        self._ids = itertools.count(1)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def add_notification(
        self,
        user_id: str,
        type: NotificationType,
        message: str,
        level: NotificationLevel,
        action_url: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            id=f"notif_{next(self._ids)}",
            user_id=user_id,
            type=type,
            message=message,
            level=level,
            action_url=action_url,
        )
        # Newest first.
        self._notifications.insert(0, notification)
        self._trim(user_id)

        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                # One broken chat must not stop delivery to the others.
                logger.exception("Notification listener failed for %s", notification.id)

        return notification

    def list_for(self, user_id: str) -> List[Notification]:
        return [n for n in self._notifications if n.user_id == user_id]

    def unread_count(self, user_id: str) -> int:
        return sum(1 for n in self._notifications if n.user_id == user_id and not n.read)

    def mark_as_read(self, notification_id: str) -> None:
        for notification in self._notifications:
            if notification.id == notification_id:
                notification.read = True

    def mark_all_as_read(self, user_id: str) -> None:
        for notification in self._notifications:
            if notification.user_id == user_id:
                notification.read = True

    def remove_notification(self, notification_id: str) -> None:
        self._notifications = [
            n for n in self._notifications if n.id != notification_id
        ]

    def clear_all(self, user_id: str) -> None:
        self._notifications = [
            n for n in self._notifications if n.user_id != user_id
        ]

    def _trim(self, user_id: str) -> None:
        # Drop the user's oldest notifications beyond the cap.
        seen = 0
        kept: List[Notification] = []
        for notification in self._notifications:
            if notification.user_id == user_id:
                seen += 1
                if seen > self._max_per_user:
                    continue
            kept.append(notification)
        self._notifications = kept

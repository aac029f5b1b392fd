from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from .models import UserCategory, UserStats


ACTIVE_WINDOW = timedelta(days=30)
HIBERNATION_WINDOW = timedelta(days=90)


def classify_user(stats: UserStats, now: Optional[datetime] = None) -> UserCategory:
    """
    Derive a user's activity tier from their counters.

    - no recorded activity             -> new
    - last activity within 30 days     -> active
    - last activity within 90 days     -> hibernating
    - anything older                   -> inactive
    """

    if stats.total_activity == 0 or stats.last_activity_at is None:
        return UserCategory.NEW

    now = now or datetime.now(timezone.utc)
    idle_for = now - stats.last_activity_at

    if idle_for <= ACTIVE_WINDOW:
        return UserCategory.ACTIVE
    if idle_for <= HIBERNATION_WINDOW:
        return UserCategory.HIBERNATING
    return UserCategory.INACTIVE

import unittest
from datetime import datetime, timedelta, timezone

from domain.categories import classify_user
from domain.models import UserCategory, UserStats


NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def _stats(days_idle=None, joined=1):
    last = NOW - timedelta(days=days_idle) if days_idle is not None else None
    return UserStats(user_id="u1", events_joined=joined, last_activity_at=last)


class ClassifyUserTests(unittest.TestCase):
    def test_no_activity_is_new(self):
        self.assertEqual(classify_user(_stats(joined=0), now=NOW), UserCategory.NEW)
        self.assertEqual(classify_user(_stats(days_idle=None), now=NOW), UserCategory.NEW)

    def test_recent_activity_is_active(self):
        self.assertEqual(classify_user(_stats(days_idle=0), now=NOW), UserCategory.ACTIVE)
        self.assertEqual(classify_user(_stats(days_idle=30), now=NOW), UserCategory.ACTIVE)

    def test_idle_users_hibernate_then_go_inactive(self):
        self.assertEqual(classify_user(_stats(days_idle=31), now=NOW), UserCategory.HIBERNATING)
        self.assertEqual(classify_user(_stats(days_idle=90), now=NOW), UserCategory.HIBERNATING)
        self.assertEqual(classify_user(_stats(days_idle=91), now=NOW), UserCategory.INACTIVE)


if __name__ == "__main__":
    unittest.main()

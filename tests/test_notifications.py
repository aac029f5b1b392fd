import unittest

from application.notifications import NotificationCenter, NotificationLevel, NotificationType


class NotificationCenterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.center = NotificationCenter()

    def _add(self, user_id="u1", message="hello", level=NotificationLevel.SUCCESS):
        return self.center.add_notification(
            user_id, NotificationType.WALLET_UPDATED, message, level
        )

    def test_newest_first_and_per_user(self):
        self._add(message="first")
        self._add(message="second")
        self._add(user_id="u2", message="other")

        self.assertEqual([n.message for n in self.center.list_for("u1")], ["second", "first"])
        self.assertEqual(len(self.center.list_for("u2")), 1)

    def test_read_state(self):
        first = self._add()
        self._add()
        self.assertEqual(self.center.unread_count("u1"), 2)

        self.center.mark_as_read(first.id)
        self.assertEqual(self.center.unread_count("u1"), 1)

        self.center.mark_all_as_read("u1")
        self.assertEqual(self.center.unread_count("u1"), 0)

    def test_remove_and_clear(self):
        first = self._add()
        self._add()
        self._add(user_id="u2")

        self.center.remove_notification(first.id)
        self.assertEqual(len(self.center.list_for("u1")), 1)

        self.center.clear_all("u1")
        self.assertEqual(self.center.list_for("u1"), [])
        self.assertEqual(len(self.center.list_for("u2")), 1)

    def test_listeners_receive_every_notification(self):
        received = []
        self.center.subscribe(received.append)

        notification = self._add()
        self.assertEqual(received, [notification])

        self.center.unsubscribe(received.append)
        self._add()
        self.assertEqual(len(received), 1)

    def test_failing_listener_does_not_block_others(self):
        def broken(_notification):
            raise RuntimeError("chat gone")

        received = []
        self.center.subscribe(broken)
        self.center.subscribe(received.append)

        with self.assertLogs("application.notifications", level="ERROR"):
            self._add(level=NotificationLevel.ERROR)

        self.assertEqual(len(received), 1)
        self.assertEqual(received[0].level, NotificationLevel.ERROR)

    def test_history_is_capped_per_user(self):
        center = NotificationCenter(max_per_user=3)
        center.add_notification("u2", NotificationType.WALLET_UPDATED, "other", NotificationLevel.SUCCESS)
        for i in range(5):
            center.add_notification(
                "u1", NotificationType.WALLET_UPDATED, f"m{i}", NotificationLevel.SUCCESS
            )

        self.assertEqual([n.message for n in center.list_for("u1")], ["m4", "m3", "m2"])
        self.assertEqual(len(center.list_for("u2")), 1)
        self.assertEqual(center.unread_count("u1"), 3)

    def test_cap_must_be_positive(self):
        with self.assertRaises(ValueError):
            NotificationCenter(max_per_user=0)


if __name__ == "__main__":
    unittest.main()

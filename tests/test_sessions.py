import os
import tempfile
import threading
import unittest
import uuid
from decimal import Decimal

from application.notifications import NotificationCenter
from application.sessions import ExternalContext, WalletSessionRegistry
from infrastructure.db.ledger_repository_sqlite import SqliteLedgerRepository
from infrastructure.db.user_stats_repository_sqlite import SqliteUserStatsRepository


class WalletSessionRegistryTests(unittest.TestCase):
    def setUp(self) -> None:
        fd, self.db_path = tempfile.mkstemp(suffix=".db")
        os.close(fd)
        self.sessions = WalletSessionRegistry(
            SqliteLedgerRepository(self.db_path),
            SqliteUserStatsRepository(self.db_path),
            NotificationCenter(),
        )
        self.ctx = ExternalContext(
            provider="telegram",
            provider_user_id="12345",
            display_name="John Doe",
        )

    def tearDown(self) -> None:
        os.remove(self.db_path)

    def test_user_id_is_a_stable_uuid(self):
        same = ExternalContext(provider="telegram", provider_user_id="12345")
        other = ExternalContext(provider="discord", provider_user_id="12345")

        self.assertEqual(self.ctx.user_id, same.user_id)
        self.assertNotEqual(self.ctx.user_id, other.user_id)
        uuid.UUID(self.ctx.user_id)

    def test_same_identity_shares_one_wallet(self):
        wallet = self.sessions.get_or_create(self.ctx)
        again = self.sessions.get_or_create(
            ExternalContext(provider="telegram", provider_user_id="12345")
        )

        self.assertIs(wallet, again)
        self.assertEqual(len(self.sessions), 1)
        self.assertEqual(self.sessions.context_for(wallet.user_id), self.ctx)

    def test_end_to_end_over_sqlite(self):
        wallet = self.sessions.get_or_create(self.ctx)
        wallet.deposit(100)
        result = wallet.charge_event_creation_fee("e1", 30)

        self.assertTrue(result.success)
        self.assertEqual(wallet.balance, Decimal("70.00"))
        self.assertEqual(len(wallet.transactions), 2)
        # First fee makes the user active; the next one is discounted.
        result = wallet.charge_event_join_fee("e2", 50)
        self.assertEqual(result.fee, Decimal("40.00"))
        self.assertEqual(wallet.balance, Decimal("30.00"))

    def test_new_session_reloads_balance(self):
        self.sessions.get_or_create(self.ctx).deposit(12)
        self.sessions.end_session(self.ctx)
        self.assertEqual(len(self.sessions), 0)

        wallet = self.sessions.get_or_create(self.ctx)
        self.assertEqual(wallet.balance, Decimal("12.00"))

    def test_concurrent_first_requests_share_one_wallet(self):
        workers = 8
        barrier = threading.Barrier(workers)
        wallets = []

        def open_session():
            barrier.wait()
            wallets.append(
                self.sessions.get_or_create(
                    ExternalContext(provider="telegram", provider_user_id="12345")
                )
            )

        threads = [threading.Thread(target=open_session) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(wallets), workers)
        self.assertTrue(all(wallet is wallets[0] for wallet in wallets))
        self.assertEqual(len(self.sessions), 1)


if __name__ == "__main__":
    unittest.main()

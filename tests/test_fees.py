import unittest
from decimal import Decimal

from domain.fees import PREMIUM_EVENT_JOIN_FEE, calculate_fee, discount_for, resolve_base_fee
from domain.models import TransactionType, UserCategory

class FeeCalculatorTests(unittest.TestCase):
    def test_discount_table(self):
        self.assertEqual(calculate_fee(100, UserCategory.ACTIVE), Decimal("80.00"))
        self.assertEqual(calculate_fee(100, UserCategory.HIBERNATING), Decimal("90.00"))
        self.assertEqual(calculate_fee(100, UserCategory.NEW), Decimal("100.00"))
        self.assertEqual(calculate_fee(100, UserCategory.INACTIVE), Decimal("100.00"))

    def test_accepts_category_strings(self):
        self.assertEqual(calculate_fee(50, "active"), Decimal("40.00"))

    def test_unknown_category_gets_no_discount(self):
        self.assertEqual(calculate_fee(50, "vip"), Decimal("50.00"))
        self.assertEqual(calculate_fee(50, None), Decimal("50.00"))
        self.assertEqual(discount_for("vip"), Decimal("0"))

    def test_zero_base_is_free_for_every_category(self):
        for category in list(UserCategory) + [None]:
            self.assertEqual(calculate_fee(0, category), Decimal("0.00"))

    def test_fee_never_exceeds_base(self):
        for base in ("0.01", "0.05", "1", "9.99", "12.345", "1000"):
            for category in UserCategory:
                self.assertLessEqual(calculate_fee(base, category), Decimal(base))

    def test_rounds_down_to_cents(self):
        # 0.05 * 0.9 = 0.045
        self.assertEqual(calculate_fee("0.05", UserCategory.HIBERNATING), Decimal("0.04"))

    def test_negative_base_is_rejected(self):
        with self.assertRaises(ValueError):
            calculate_fee(-1, UserCategory.ACTIVE)


class BaseFeeTests(unittest.TestCase):
    def test_standard_fee_when_none_requested(self):
        self.assertEqual(resolve_base_fee(TransactionType.EVENT_CREATION_FEE), Decimal("50.00"))
        self.assertEqual(resolve_base_fee(TransactionType.EVENT_JOIN_FEE), Decimal("25.00"))
        self.assertEqual(resolve_base_fee(TransactionType.GROUP_CREATION_FEE), Decimal("75.00"))
        self.assertEqual(resolve_base_fee(TransactionType.GROUP_JOIN_FEE), Decimal("30.00"))

    def test_named_tiers(self):
        self.assertEqual(resolve_base_fee("event_join_fee", "standard"), Decimal("25.00"))
        self.assertEqual(resolve_base_fee("event_join_fee", "Premium"), PREMIUM_EVENT_JOIN_FEE)

    def test_premium_only_exists_for_event_joins(self):
        with self.assertRaises(ValueError):
            resolve_base_fee(TransactionType.GROUP_JOIN_FEE, "premium")

    def test_custom_amount_is_passed_through(self):
        self.assertEqual(resolve_base_fee(TransactionType.GROUP_JOIN_FEE, "12.50"), "12.50")

    def test_non_fee_types_are_rejected(self):
        with self.assertRaises(ValueError):
            resolve_base_fee(TransactionType.DEPOSIT)

    def test_active_user_pays_forty_for_standard_event_creation(self):
        base = resolve_base_fee(TransactionType.EVENT_CREATION_FEE)
        self.assertEqual(calculate_fee(base, UserCategory.ACTIVE), Decimal("40.00"))


if __name__ == "__main__":
    unittest.main()

import unittest

from carehours.models import BalanceStatus
from carehours.services.balance_calc import balance_message, balance_status, calculate_balance, round_hours


class BalanceCalcTests(unittest.TestCase):
    def test_deficit_month(self) -> None:
        result = calculate_balance(20, 16)
        self.assertEqual(result.status, BalanceStatus.DEFICIT)
        self.assertEqual(result.remaining_hours, 4.0)
        self.assertEqual(result.excess_hours, 0.0)
        self.assertEqual(result.percentage, 80.0)

    def test_exact_month_is_perfect(self) -> None:
        result = calculate_balance(16, 16)
        self.assertEqual(result.status, BalanceStatus.PERFECT)
        self.assertEqual(result.remaining_hours, 0.0)
        self.assertEqual(result.percentage, 100.0)

    def test_excess_month(self) -> None:
        result = calculate_balance(10, 12.5)
        self.assertEqual(result.status, BalanceStatus.EXCESS)
        self.assertEqual(result.remaining_hours, 0.0)
        self.assertEqual(result.excess_hours, 2.5)
        self.assertEqual(result.percentage, 125.0)

    def test_zero_contract_is_perfect_with_zero_percentage(self) -> None:
        result = calculate_balance(0, 0)
        self.assertEqual(result.status, BalanceStatus.PERFECT)
        self.assertEqual(result.percentage, 0.0)

    def test_zero_contract_with_usage_is_excess(self) -> None:
        result = calculate_balance(0, 3)
        self.assertEqual(result.status, BalanceStatus.EXCESS)
        self.assertEqual(result.percentage, 0.0)
        self.assertEqual(result.excess_hours, 3.0)

    def test_perfect_threshold(self) -> None:
        self.assertEqual(balance_status(20, 19.95), BalanceStatus.PERFECT)
        self.assertEqual(balance_status(20, 20.05), BalanceStatus.PERFECT)
        self.assertEqual(balance_status(20, 19.85), BalanceStatus.DEFICIT)
        self.assertEqual(balance_status(20, 20.15), BalanceStatus.EXCESS)

    def test_remaining_plus_used_equals_contract(self) -> None:
        for monthly, used in [(20, 0), (20, 7.25), (86.5, 86.4), (40, 40)]:
            result = calculate_balance(monthly, used)
            self.assertAlmostEqual(result.remaining_hours + min(used, monthly), monthly)

    def test_round_hours_rounds_half_up(self) -> None:
        self.assertEqual(round_hours(1.25), 1.3)
        self.assertEqual(round_hours(2.449), 2.4)
        self.assertEqual(round_hours(16.0), 16.0)
        self.assertEqual(round_hours(1 / 3), 0.3)

    def test_messages_mention_difference(self) -> None:
        self.assertIn("4.0h", balance_message(BalanceStatus.DEFICIT, 4))
        self.assertIn("2.5h", balance_message(BalanceStatus.EXCESS, -2.5))
        self.assertNotIn("h below", balance_message(BalanceStatus.PERFECT, 0))


if __name__ == "__main__":
    unittest.main()

"""Tests for the installment calculators and amortization schedule."""
import os
import sys
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dealermaster.services.amortization import (
    compute_financed_installment,
    compute_direct_installment,
    build_amortization_schedule,
)


class TestFinancedInstallment(unittest.TestCase):

    def test_known_price_table_value(self):
        """10,000 at 1% a month over 12 months is 888.49 per month."""
        installment = compute_financed_installment(10000, 0.01, 12)
        self.assertAlmostEqual(installment, 888.49, places=2)

    def test_zero_rate_is_plain_division(self):
        self.assertEqual(compute_financed_installment(50000, 0, 10), 50000 / 10)
        self.assertEqual(compute_financed_installment(1000, 0.0, 3), 1000 / 3)

    def test_positive_and_covers_principal(self):
        """Installment is positive and never repays less than the principal."""
        for principal in (1, 999.99, 48000, 250000):
            for rate in (0, 0.005, 0.0149, 0.03):
                for term in (1, 12, 37, 60, 120):
                    installment = compute_financed_installment(principal, rate, term)
                    self.assertGreater(installment, 0)
                    self.assertGreaterEqual(installment * term, principal * (1 - 1e-12))

    def test_single_installment_includes_one_month_interest(self):
        self.assertAlmostEqual(compute_financed_installment(1000, 0.02, 1), 1020.0)

    def test_invalid_term(self):
        with self.assertRaises(ValueError):
            compute_financed_installment(1000, 0.01, 0)

    def test_negative_rate(self):
        with self.assertRaises(ValueError):
            compute_financed_installment(1000, -0.01, 12)


class TestDirectInstallment(unittest.TestCase):

    def test_even_split(self):
        self.assertEqual(compute_direct_installment(60000, 10000, 10), 5000)

    def test_nothing_to_finance(self):
        self.assertEqual(compute_direct_installment(60000, 60000, 10), 0.0)
        self.assertEqual(compute_direct_installment(60000, 70000, 10), 0.0)

    def test_term_below_one(self):
        self.assertEqual(compute_direct_installment(60000, 10000, 0), 0.0)


class TestAmortizationSchedule(unittest.TestCase):

    def test_schedule_closes_at_zero(self):
        rows = build_amortization_schedule(40000, 0.0149, 48)

        self.assertEqual(len(rows), 48)
        self.assertEqual([r.number for r in rows], list(range(1, 49)))
        self.assertEqual(rows[-1].balance, 0.0)
        self.assertAlmostEqual(sum(r.principal for r in rows), 40000, places=6)

    def test_interest_decreases_over_time(self):
        rows = build_amortization_schedule(40000, 0.0149, 48)
        interests = [r.interest for r in rows]
        self.assertEqual(interests, sorted(interests, reverse=True))
        self.assertAlmostEqual(rows[0].interest, 40000 * 0.0149)

    def test_zero_rate_schedule(self):
        rows = build_amortization_schedule(1200, 0, 12)
        for row in rows:
            self.assertEqual(row.interest, 0)
            self.assertAlmostEqual(row.principal, 100)


if __name__ == '__main__':
    unittest.main()

"""Tests for rate table parsing and nearest-tier resolution."""
import os
import sys
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dealermaster.config import RATE_TIERS
from dealermaster.exceptions import InvalidRateTableError
from dealermaster.services.rate_resolver import parse_rate_table, nearest_tier, resolve_rate

TABLE = {12: 1.29, 24: 1.39, 36: 1.49, 48: 1.59, 60: 1.69}


class TestResolveRate(unittest.TestCase):

    def test_exact_tiers(self):
        for tier in RATE_TIERS:
            self.assertEqual(resolve_rate(TABLE, tier), (tier, TABLE[tier]))

    def test_always_closest_tier(self):
        for term in range(1, 201):
            used_term, rate = resolve_rate(TABLE, term)
            self.assertIn(used_term, RATE_TIERS)
            best_distance = min(abs(t - term) for t in RATE_TIERS)
            self.assertEqual(abs(used_term - term), best_distance)
            self.assertEqual(rate, TABLE[used_term])

    def test_tie_goes_to_lower_tier(self):
        self.assertEqual(nearest_tier(30), 24)
        self.assertEqual(nearest_tier(18), 12)
        self.assertEqual(nearest_tier(54), 48)

    def test_out_of_range_terms(self):
        self.assertEqual(nearest_tier(1), 12)
        self.assertEqual(nearest_tier(200), 60)

    def test_no_table(self):
        with self.assertRaises(InvalidRateTableError):
            resolve_rate(None, 24)
        with self.assertRaises(InvalidRateTableError):
            resolve_rate({}, 24)


class TestParseRateTable(unittest.TestCase):

    def test_json_with_string_keys(self):
        table = parse_rate_table('{"12": 1.29, "24": 1.39, "36": 1.49, "48": 1.59, "60": 1.69}')
        self.assertEqual(table, TABLE)

    def test_mapping_with_string_values(self):
        table = parse_rate_table({str(k): str(v) for k, v in TABLE.items()})
        self.assertEqual(table, TABLE)

    def test_empty_values(self):
        self.assertIsNone(parse_rate_table(None))
        self.assertIsNone(parse_rate_table(""))
        self.assertIsNone(parse_rate_table("null"))

    def test_missing_tier_rejected(self):
        partial = dict(TABLE)
        del partial[36]
        with self.assertRaises(InvalidRateTableError) as ctx:
            parse_rate_table(partial)
        self.assertEqual(ctx.exception.details['terms'], [12, 24, 48, 60])

    def test_extra_tier_rejected(self):
        with self.assertRaises(InvalidRateTableError):
            parse_rate_table({**TABLE, 72: 1.9})

    def test_negative_rate_rejected(self):
        with self.assertRaises(InvalidRateTableError):
            parse_rate_table({**TABLE, 12: -0.5})

    def test_garbage_rejected(self):
        with self.assertRaises(InvalidRateTableError):
            parse_rate_table("{not json")
        with self.assertRaises(InvalidRateTableError):
            parse_rate_table([1.2, 1.3])
        with self.assertRaises(InvalidRateTableError):
            parse_rate_table({**TABLE, 12: "abc"})


if __name__ == '__main__':
    unittest.main()

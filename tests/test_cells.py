from __future__ import annotations

import math
import unittest

from app.domain.cells import (
    as_text,
    is_missing,
    parse_amount,
    parse_count,
    parse_number,
    round_half_up,
)


class TestCellCoercion(unittest.TestCase):
    def test_missing_values(self) -> None:
        self.assertTrue(is_missing(None))
        self.assertTrue(is_missing(math.nan))
        self.assertTrue(is_missing("   "))
        self.assertFalse(is_missing(0))
        self.assertFalse(is_missing("0"))

    def test_parse_count_strips_non_numeric_characters(self) -> None:
        self.assertEqual(parse_count("25 users"), 25.0)
        self.assertEqual(parse_count("1,200"), 1200.0)
        self.assertEqual(parse_count(7), 7.0)
        self.assertEqual(parse_count("n/a"), 0.0)
        self.assertEqual(parse_count(None), 0.0)
        self.assertEqual(parse_count(True), 0.0)

    def test_parse_amount_handles_thousands_separators(self) -> None:
        self.assertEqual(parse_amount("1,000.50"), 1000.5)
        self.assertEqual(parse_amount(250), 250.0)
        self.assertEqual(parse_amount("abc"), 0.0)
        self.assertEqual(parse_amount(None), 0.0)

    def test_parse_number_keeps_sign_and_counts_true(self) -> None:
        self.assertEqual(parse_number("-12"), -12.0)
        self.assertEqual(parse_number(True), 1.0)
        self.assertEqual(parse_number(False), 0.0)
        self.assertEqual(parse_number("-"), 0.0)

    def test_as_text_renders_integral_floats_without_fraction(self) -> None:
        self.assertEqual(as_text(42.0), "42")
        self.assertEqual(as_text("  Direct Sale "), "Direct Sale")
        self.assertEqual(as_text(None, default="Other"), "Other")

    def test_round_half_up_breaks_ties_upwards(self) -> None:
        self.assertEqual(round_half_up(1.125), 1.13)
        self.assertEqual(round_half_up(583.335), 583.34)
        self.assertEqual(round_half_up(2.0), 2.0)
        self.assertEqual(round_half_up(0.6666), 0.67)


if __name__ == "__main__":
    unittest.main()

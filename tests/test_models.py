# tests/test_models.py
import unittest
from decimal import Decimal

from walletledger.errors import ValidationError
from walletledger.models import MAX_AMOUNT, parse_amount, to_money


class TestParseAmount(unittest.TestCase):
    def test_accepts_cents(self):
        self.assertEqual(parse_amount("12.5"), Decimal("12.50"))
        self.assertEqual(parse_amount(7), Decimal("7.00"))
        self.assertEqual(parse_amount(Decimal("0.010")), Decimal("0.01"))
        self.assertEqual(parse_amount(MAX_AMOUNT), MAX_AMOUNT)

    def test_rejects_more_than_two_decimal_places(self):
        for value in ("10.005", "0.004", Decimal("1.001")):
            with self.subTest(value=value), self.assertRaisesRegex(ValidationError, "two decimal places"):
                parse_amount(value)

    def test_rejects_out_of_range(self):
        for value in ("1e27", MAX_AMOUNT + Decimal("0.01"), "-1e16"):
            with self.subTest(value=value), self.assertRaisesRegex(ValidationError, "out of range"):
                parse_amount(value)

    def test_rejects_non_numbers(self):
        for value in ("abc", "NaN", "Infinity", "-Infinity"):
            with self.subTest(value=value), self.assertRaises(ValidationError):
                parse_amount(value)

    def test_label_appears_in_message(self):
        with self.assertRaisesRegex(ValidationError, "^Fee is out of range$"):
            parse_amount("1e20", "Fee")


class TestToMoney(unittest.TestCase):
    def test_rounds_half_up(self):
        self.assertEqual(to_money("2.345"), Decimal("2.35"))

    def test_overflow_is_a_validation_error(self):
        with self.assertRaises(ValidationError):
            to_money("1e27")


if __name__ == "__main__":
    unittest.main()

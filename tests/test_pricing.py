import os
import sys
import unittest

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db.models import LineItem, Quote  # noqa: E402
from utils.errors import InvalidLineItemError  # noqa: E402
from utils.pricing import (  # noqa: E402
    check_amounts,
    compute_totals,
    line_total,
    parse_amount,
)


def _item(qty, price, item_id="item-1"):
    return LineItem(id=item_id, description="", quantity=qty, unit_price=price)


class PricingTestCase(unittest.TestCase):
    def test_consultation_example(self):
        totals = compute_totals([_item(10, 150)], 8.5)
        self.assertAlmostEqual(totals.subtotal, 1500.0)
        self.assertAlmostEqual(totals.tax_amount, 127.5)
        self.assertAlmostEqual(totals.total, 1627.5)

    def test_multiple_lines_sum_into_subtotal(self):
        items = [_item(12, 89.5, "a"), _item(2, 420, "b")]
        totals = compute_totals(items, 20)
        self.assertAlmostEqual(totals.subtotal, 1914.0)
        self.assertAlmostEqual(totals.tax_amount, 382.8)
        self.assertAlmostEqual(totals.total, 2296.8)

    def test_no_items_is_all_zero(self):
        totals = compute_totals([], 8.5)
        self.assertEqual((totals.subtotal, totals.tax_amount, totals.total), (0.0, 0.0, 0.0))

    def test_zero_or_missing_tax_rate(self):
        for rate in (0, None):
            totals = compute_totals([_item(3, 10)], rate)
            self.assertAlmostEqual(totals.tax_amount, 0.0)
            self.assertAlmostEqual(totals.total, 30.0)

    def test_precision_rounds_each_step(self):
        self.assertNotEqual(line_total(3, 0.1), 0.3)
        self.assertEqual(line_total(3, 0.1, precision=2), 0.3)
        totals = compute_totals([_item(3, 0.1)], 10, precision=2)
        self.assertEqual(totals.subtotal, 0.3)
        self.assertEqual(totals.tax_amount, 0.03)
        self.assertEqual(totals.total, 0.33)

    def test_negative_amounts_follow_policy(self):
        # accepted by default and carried through the arithmetic
        check_amounts(-1, 10)
        self.assertAlmostEqual(compute_totals([_item(-1, 10)], 0).total, -10.0)

        with self.assertRaises(InvalidLineItemError):
            check_amounts(-1, 10, "reject")
        with self.assertRaises(InvalidLineItemError):
            check_amounts(1, -10, "reject")
        check_amounts(0, 0, "reject")

    def test_parse_amount(self):
        self.assertEqual(parse_amount("12.5"), 12.5)
        self.assertEqual(parse_amount(""), 0.0)
        self.assertEqual(parse_amount("abc", default=1.0), 1.0)
        self.assertEqual(parse_amount(None), 0.0)

    def test_quote_totals_are_derived(self):
        quote = Quote(
            id="Q-1",
            customer_id="C-1",
            customer_name="Acme Corporation",
            quote_number="Q-1",
            date="2024-01-15",
            expiry_date="2024-02-15",
            line_items=(_item(10, 150),),
            tax_rate=8.5,
        )
        self.assertAlmostEqual(quote.subtotal, 1500.0)
        self.assertAlmostEqual(quote.tax_amount, 127.5)
        self.assertAlmostEqual(quote.total, 1627.5)
        self.assertAlmostEqual(quote.line_items[0].total, 1500.0)


if __name__ == "__main__":
    unittest.main()

import os
import sys
import unittest
from datetime import date

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db.models import Contract, LineItem, Quote  # noqa: E402
from utils.contracts import (  # noqa: E402
    active_contracts,
    approved_quotes,
    convert_to_contract,
    pending_review,
    quote_for_contract,
    review_quote,
)


def _quote(qid, status, review_notes=""):
    return Quote(
        id=qid,
        customer_id="C-005",
        customer_name="Northwind Printing",
        quote_number=qid,
        date="2024-01-20",
        expiry_date="2024-02-19",
        line_items=(
            LineItem(id="item-5", description="Managed Print", quantity=12, unit_price=89.5),
            LineItem(id="item-6", description="Printer Lease", quantity=2, unit_price=420),
        ),
        tax_rate=20,
        status=status,
        review_notes=review_notes,
    )


def _contract(cid, quote_id, status="active"):
    return Contract(
        id=cid,
        quote_id=quote_id,
        contract_number="CON-" + cid.split("-")[1],
        customer_name="Acme Corporation",
        start_date="2024-01-01",
        end_date="2024-12-31",
        value=1627.5,
        status=status,
        signed_date="2023-12-28",
    )


class ReviewTestCase(unittest.TestCase):
    def test_actions_map_to_statuses(self):
        q = _quote("Q-002", "under_review")
        self.assertEqual(review_quote(q, "approve").status, "approved")
        self.assertEqual(review_quote(q, "reject").status, "rejected")
        self.assertEqual(review_quote(q, "request_changes").status, "draft")
        self.assertEqual(q.status, "under_review")

    def test_notes(self):
        q = _quote("Q-002", "under_review", review_notes="check pricing")
        self.assertEqual(review_quote(q, "approve", "  looks good ").review_notes, "looks good")
        self.assertEqual(review_quote(q, "approve", "   ").review_notes, "check pricing")

    def test_unknown_action(self):
        with self.assertRaises(ValueError):
            review_quote(_quote("Q-002", "sent"), "escalate")

    def test_queues(self):
        quotes = [
            _quote("Q-1", "under_review"),
            _quote("Q-2", "sent"),
            _quote("Q-3", "approved"),
            _quote("Q-4", "draft"),
        ]
        self.assertEqual([q.id for q in pending_review(quotes)], ["Q-1", "Q-2"])
        self.assertEqual([q.id for q in approved_quotes(quotes)], ["Q-3"])


class ContractTestCase(unittest.TestCase):
    def test_convert_numbers_after_highest_contract(self):
        existing = [_contract("C-001", "Q-001"), _contract("C-002", "Q-003")]
        quote = _quote("Q-005", "approved")
        contract, converted = convert_to_contract(quote, existing, date(2024, 3, 1))

        self.assertEqual(contract.id, "C-003")
        self.assertEqual(contract.contract_number, "CON-003")
        self.assertEqual(contract.quote_id, "Q-005")
        self.assertEqual(contract.customer_name, "Northwind Printing")
        self.assertAlmostEqual(contract.value, 2296.8)
        self.assertEqual(contract.status, "active")
        self.assertEqual(contract.start_date, "2024-03-01")
        self.assertEqual(contract.signed_date, "2024-03-01")
        self.assertEqual(contract.end_date, "2025-03-01")
        self.assertEqual(converted.status, "active_contract")
        self.assertEqual(quote.status, "approved")

    def test_numbering_skips_gaps_and_starts_at_one(self):
        quote = _quote("Q-005", "approved")
        contract, _ = convert_to_contract(quote, [_contract("C-007", "Q-001")], date(2024, 3, 1))
        self.assertEqual(contract.id, "C-008")
        contract, _ = convert_to_contract(quote, [], date(2024, 3, 1), term_days=30)
        self.assertEqual(contract.id, "C-001")
        self.assertEqual(contract.end_date, "2024-03-31")

    def test_join_and_active_filter(self):
        contracts = [
            _contract("C-001", "Q-001"),
            _contract("C-002", "Q-404"),
            _contract("C-003", "Q-003", status="completed"),
        ]
        quotes = [_quote("Q-001", "active_contract"), _quote("Q-003", "active_contract")]
        self.assertEqual(quote_for_contract(contracts[0], quotes).id, "Q-001")
        self.assertIsNone(quote_for_contract(contracts[1], quotes))
        self.assertEqual([c.id for c in active_contracts(contracts)], ["C-001", "C-002"])


if __name__ == "__main__":
    unittest.main()

import os
import sys
import unittest
from datetime import date, datetime

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db.models import Quote  # noqa: E402
from utils.pure import (  # noqa: E402
    count_by_status,
    filter_quotes,
    fmt_money,
    generate_markdown_table,
    humanize_status,
    normalize_date,
)


def _quote(qid, customer, status):
    return Quote(
        id=qid,
        customer_id="C-" + qid,
        customer_name=customer,
        quote_number=qid,
        date="2024-01-15",
        expiry_date="2024-02-15",
        status=status,
    )


QUOTES = [
    _quote("Q-001", "Acme Corporation", "sent"),
    _quote("Q-002", "Tech Solutions Inc", "draft"),
    _quote("Q-003", "Acme Logistics", "draft"),
    _quote("Q-004", "StartupCo", "expired"),
]


class FilterQuotesTestCase(unittest.TestCase):
    def test_all_and_empty_query_keep_everything_in_order(self):
        self.assertEqual(filter_quotes(QUOTES), QUOTES)
        self.assertEqual(filter_quotes(QUOTES, "all", ""), QUOTES)

    def test_status_filter(self):
        got = filter_quotes(QUOTES, "draft")
        self.assertEqual([q.id for q in got], ["Q-002", "Q-003"])
        self.assertEqual(filter_quotes(QUOTES, "accepted"), [])

    def test_query_matches_customer_case_insensitive(self):
        got = filter_quotes(QUOTES, "all", "aCmE")
        self.assertEqual([q.id for q in got], ["Q-001", "Q-003"])

    def test_query_matches_quote_number(self):
        got = filter_quotes(QUOTES, "all", "q-004")
        self.assertEqual([q.id for q in got], ["Q-004"])

    def test_status_and_query_combine(self):
        got = filter_quotes(QUOTES, "draft", "acme")
        self.assertEqual([q.id for q in got], ["Q-003"])

    def test_count_by_status(self):
        counts = count_by_status(QUOTES)
        self.assertEqual(counts["all"], 4)
        self.assertEqual(counts["draft"], 2)
        self.assertEqual(counts["sent"], 1)
        self.assertNotIn("accepted", counts)
        self.assertEqual(count_by_status([]), {"all": 0})


class NormalizeDateTestCase(unittest.TestCase):
    def test_iso_timestamps_are_cut_to_the_day(self):
        self.assertEqual(normalize_date("2024-01-15T09:30:00Z"), "2024-01-15")
        self.assertEqual(normalize_date("2024-01-15 09:30"), "2024-01-15")
        self.assertEqual(normalize_date(" 2024-01-15 "), "2024-01-15")

    def test_date_objects(self):
        self.assertEqual(normalize_date(date(2024, 2, 29)), "2024-02-29")
        self.assertEqual(normalize_date(datetime(2024, 3, 1, 23, 59)), "2024-03-01")

    def test_empty_input(self):
        self.assertEqual(normalize_date(None), "")
        self.assertEqual(normalize_date(""), "")

    def test_garbage_raises(self):
        with self.assertRaises(ValueError):
            normalize_date("next tuesday")
        with self.assertRaises(ValueError):
            normalize_date("2024-13-01")


class FormattingTestCase(unittest.TestCase):
    def test_markdown_table(self):
        md = generate_markdown_table(["A", "B"], [["1", "x|y"]], ["l", "r"])
        self.assertEqual(md, "| A | B |\n| :--- | ---: |\n| 1 | x\\|y |")
        self.assertEqual(generate_markdown_table(["A"], []), "")
        with self.assertRaises(ValueError):
            generate_markdown_table(["A", "B"], [["1", "2"]], ["l"])

    def test_first_row_becomes_header(self):
        md = generate_markdown_table(None, [["Name", "Bob"], ["Store", "x"]], ["l", "l"])
        self.assertTrue(md.startswith("| Name | Bob |"))

    def test_money_and_status(self):
        self.assertEqual(fmt_money(1627.5), "$1,627.50")
        self.assertEqual(humanize_status("under_review"), "Under Review")
        self.assertEqual(humanize_status("draft"), "Draft")


if __name__ == "__main__":
    unittest.main()

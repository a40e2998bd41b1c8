from collections import Counter
from datetime import date, datetime
from typing import Dict, Iterable, List, Literal, Optional, Sequence, Union

from db.models import Order, Quote


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows, each a list of strings.
        aligns: List of alignments ('l', 'c', 'r') for each column.
                Defaults to all center ('c').

    Returns:
        str: Markdown formatted table.
    """
    if not rows:
        return ""

    # If no headers, take the first row as header and remove it from rows
    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = list(map(str, headers))
    rows = [[str(cell).replace("|", "\\|") for cell in row] for row in rows]

    num_cols = len(headers)
    if aligns is None:
        aligns = ["c"] * num_cols
    elif len(aligns) != num_cols:
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {
        "l": ":---",
        "c": ":---:",
        "r": "---:",
    }

    header_line = "| " + " | ".join(headers) + " |"
    align_line = "| " + " | ".join(align_map[a] for a in aligns) + " |"
    row_lines = ["| " + " | ".join(row) + " |" for row in rows]

    return "\n".join([header_line, align_line, *row_lines])


def fmt_money(value: float) -> str:
    return f"${value:,.2f}"


def humanize_status(status: str) -> str:
    """'under_review' -> 'Under Review'"""
    return " ".join(w.capitalize() for w in (status or "").split("_"))


def normalize_date(value: Union[str, date, datetime, None]) -> str:
    """
    Normalize an ISO string, date or datetime to YYYY-MM-DD.
    Strings are cut at the 'T' of an ISO timestamp; empty input gives "".
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    if not text:
        return ""
    head = text.split("T")[0].split(" ")[0]
    # validates the format, raises ValueError on garbage
    return date.fromisoformat(head).isoformat()


def filter_quotes(
    quotes: Iterable[Quote], status: str = "all", query: str = ""
) -> List[Quote]:
    """
    Quotes whose status matches `status` (or any, for "all") and whose quote
    number or customer name contains `query`, case-insensitive.
    An empty query matches everything. Input order is kept.
    """
    needle = (query or "").lower()
    return [
        q
        for q in quotes
        if (status == "all" or q.status == status)
        and (
            needle in (q.quote_number or "").lower()
            or needle in (q.customer_name or "").lower()
        )
    ]


def count_by_status(records: Sequence[Union[Quote, Order]]) -> Dict[str, int]:
    """Per-status counts of quotes or orders, plus an "all" total."""
    counts = Counter(r.status for r in records)
    counts["all"] = len(records)
    return dict(counts)

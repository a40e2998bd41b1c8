import dataclasses
import re
from datetime import date, timedelta
from typing import Iterable, List, Literal, Optional, Sequence, Tuple

from db.models import Contract, Quote

ReviewAction = Literal["approve", "reject", "request_changes"]

REVIEW_RESULT = {
    "approve": "approved",
    "reject": "rejected",
    "request_changes": "draft",
}
PENDING_REVIEW_STATUSES = ("under_review", "sent")


def review_quote(quote: Quote, action: ReviewAction, notes: str = "") -> Quote:
    """Apply a reviewer decision. Blank notes keep the previous review notes."""
    if action not in REVIEW_RESULT:
        raise ValueError(f"Unknown review action: {action!r}")
    return dataclasses.replace(
        quote,
        status=REVIEW_RESULT[action],
        review_notes=notes.strip() or quote.review_notes,
    )


def pending_review(quotes: Iterable[Quote]) -> List[Quote]:
    return [q for q in quotes if q.status in PENDING_REVIEW_STATUSES]


def approved_quotes(quotes: Iterable[Quote]) -> List[Quote]:
    return [q for q in quotes if q.status == "approved"]


def active_contracts(contracts: Iterable[Contract]) -> List[Contract]:
    return [c for c in contracts if c.status == "active"]


def quote_for_contract(
    contract: Contract, quotes: Iterable[Quote]
) -> Optional[Quote]:
    for quote in quotes:
        if quote.id == contract.quote_id:
            return quote
    return None


def _seq(contract_id: str) -> int:
    m = re.search(r"(\d+)$", contract_id or "")
    return int(m.group(1)) if m else 0


def convert_to_contract(
    quote: Quote,
    contracts: Sequence[Contract],
    today: date,
    term_days: int = 365,
) -> Tuple[Contract, Quote]:
    """
    Build an active contract from `quote`, numbered after the highest
    existing contract. Returns (new_contract, quote moved to active_contract).
    """
    seq = max((_seq(c.id) for c in contracts), default=0) + 1
    contract = Contract(
        id=f"C-{seq:03d}",
        quote_id=quote.id,
        contract_number=f"CON-{seq:03d}",
        customer_name=quote.customer_name,
        start_date=today.isoformat(),
        end_date=(today + timedelta(days=term_days)).isoformat(),
        value=quote.total,
        status="active",
        signed_date=today.isoformat(),
    )
    return contract, dataclasses.replace(quote, status="active_contract")

"""
Line-item arithmetic for quotes.

Everything here is a pure function of the line items and the tax rate;
callers recompute from scratch after each edit instead of patching totals.
"""

from dataclasses import dataclass
from typing import Iterable, Literal, Optional, Protocol

from utils.errors import InvalidLineItemError

NegativePolicy = Literal["accept", "reject"]


class Priced(Protocol):
    quantity: float
    unit_price: float


@dataclass(frozen=True)
class QuoteTotals:
    subtotal: float = 0.0
    tax_amount: float = 0.0
    total: float = 0.0


def _round(value: float, precision: Optional[int]) -> float:
    return value if precision is None else round(value, precision)


def line_total(
    quantity: float, unit_price: float, precision: Optional[int] = None
) -> float:
    """quantity * unit_price, rounded only when a currency precision is given."""
    return _round(float(quantity) * float(unit_price), precision)


def compute_totals(
    items: Iterable[Priced], tax_rate: float, precision: Optional[int] = None
) -> QuoteTotals:
    """
    Roll up line items into subtotal, tax and grand total.

    Args:
        items: anything with `quantity` and `unit_price`.
        tax_rate: percentage, e.g. 8.5 for 8.5%.
        precision: decimal places for currency rounding, or None for raw floats.
    """
    subtotal = sum(
        (line_total(it.quantity, it.unit_price, precision) for it in items), 0.0
    )
    subtotal = _round(subtotal, precision)
    tax_amount = _round(subtotal * float(tax_rate or 0) / 100, precision)
    total = _round(subtotal + tax_amount, precision)
    return QuoteTotals(subtotal=subtotal, tax_amount=tax_amount, total=total)


def check_amounts(
    quantity: float, unit_price: float, policy: NegativePolicy = "accept"
) -> None:
    """
    Apply the negative-amount policy. "accept" lets everything through,
    "reject" raises InvalidLineItemError on a negative quantity or price.
    """
    if policy == "accept":
        return
    if quantity < 0:
        raise InvalidLineItemError("Quantity cannot be negative.")
    if unit_price < 0:
        raise InvalidLineItemError("Unit price cannot be negative.")


def parse_amount(raw: str, default: float = 0.0) -> float:
    """Parse user input for a number; blank or garbage falls back to `default`."""
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default

# provide dataclass models

from dataclasses import dataclass, field
from typing import Literal, Optional, Tuple, get_args

from utils.pricing import QuoteTotals, compute_totals, line_total

QuoteStatus = Literal[
    "draft",
    "pending",
    "sent",
    "accepted",
    "approved",
    "rejected",
    "expired",
    "under_review",
    "active_contract",
]
QUOTE_STATUSES: Tuple[str, ...] = get_args(QuoteStatus)

OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]
ORDER_STATUSES: Tuple[str, ...] = get_args(OrderStatus)

ContractStatus = Literal["active", "completed", "cancelled"]


# currency_precision is the number of decimals totals round to; None keeps
# raw floats. The store and the quote editor fill it from their settings.


@dataclass(frozen=True)
class LineItem:
    id: str
    description: str
    quantity: float
    unit_price: float
    currency_precision: Optional[int] = field(default=None, compare=False, repr=False)

    @property
    def total(self) -> float:
        return line_total(self.quantity, self.unit_price, self.currency_precision)


@dataclass(frozen=True)
class Quote:
    id: Optional[str]
    customer_id: str
    customer_name: str
    quote_number: str
    date: str  # YYYY-MM-DD
    expiry_date: str  # YYYY-MM-DD
    line_items: Tuple[LineItem, ...] = ()
    tax_rate: float = 0.0
    terms: str = ""
    notes: str = ""
    status: QuoteStatus = "draft"
    sales_rep: str = ""
    review_notes: str = ""
    currency_precision: Optional[int] = field(default=None, compare=False, repr=False)

    @property
    def totals(self) -> QuoteTotals:
        return compute_totals(self.line_items, self.tax_rate, self.currency_precision)

    @property
    def subtotal(self) -> float:
        return self.totals.subtotal

    @property
    def tax_amount(self) -> float:
        return self.totals.tax_amount

    @property
    def total(self) -> float:
        return self.totals.total


@dataclass(frozen=True)
class OrderItem:
    id: str
    name: str
    quantity: int
    price: float
    category: str = "Uncategorized"
    description: str = ""
    is_shipped: bool = False

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


@dataclass(frozen=True)
class Order:
    id: str
    order_number: str
    customer_name: str
    status: OrderStatus
    items: Tuple[OrderItem, ...] = ()
    customer_email: str = ""
    shipping_address: str = ""
    order_date: str = ""
    expected_delivery: Optional[str] = None
    payment_method: str = ""
    notes: str = ""

    @property
    def total_amount(self) -> float:
        return sum((it.line_total for it in self.items), 0.0)


@dataclass(frozen=True)
class Contract:
    id: str
    quote_id: str
    contract_number: str
    customer_name: str
    start_date: str
    end_date: str
    value: float
    status: ContractStatus
    signed_date: str

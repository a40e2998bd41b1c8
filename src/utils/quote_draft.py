from __future__ import annotations

import dataclasses
import uuid
from datetime import date, timedelta
from typing import List, Optional

from db.models import LineItem, Quote, QuoteStatus
from utils.config import Settings, get_settings
from utils.errors import NotFoundError, QuoteValidationError
from utils.logger import get_logger
from utils.pricing import QuoteTotals, check_amounts, compute_totals
from utils.pure import normalize_date

_logger = get_logger(__name__)

DEFAULT_TERMS = "Payment due within 30 days"
REQUIRED_FIELDS = ("customer_name", "quote_number")
EDITABLE_FIELDS = (
    "customer_id",
    "customer_name",
    "quote_number",
    "date",
    "expiry_date",
    "terms",
    "notes",
    "status",
    "sales_rep",
)


def _new_item_id() -> str:
    return f"item-{uuid.uuid4().hex[:10]}"


class QuoteDraft:
    """
    Editable state behind the quote editor.

    Line items are stored as frozen LineItem rows and replaced on edit. After
    every mutation `totals` is recomputed from the whole item list, so readers
    never see a subtotal, tax amount or total that lags the items.
    """

    def __init__(
        self, quote: Optional[Quote] = None, settings: Optional[Settings] = None
    ):
        self.settings = settings or get_settings()
        if quote is None:
            today = date.today()
            quote = Quote(
                id=None,
                customer_id="",
                customer_name="",
                quote_number="",
                date=today.isoformat(),
                expiry_date=(
                    today + timedelta(days=self.settings.quote_validity_days)
                ).isoformat(),
                terms=DEFAULT_TERMS,
            )

        self.quote_id: Optional[str] = quote.id
        self.customer_id = quote.customer_id
        self.customer_name = quote.customer_name
        self.quote_number = quote.quote_number
        self.date = normalize_date(quote.date)
        self.expiry_date = normalize_date(quote.expiry_date)
        self.terms = quote.terms
        self.notes = quote.notes
        self.status: QuoteStatus = quote.status
        self.sales_rep = quote.sales_rep
        self.review_notes = quote.review_notes
        self.tax_rate = float(quote.tax_rate or 0)
        self.items: List[LineItem] = [
            dataclasses.replace(it, currency_precision=self.precision)
            for it in quote.line_items
        ]
        self.totals = QuoteTotals()
        self._recompute()

    @property
    def is_new(self) -> bool:
        return self.quote_id is None

    @property
    def precision(self) -> Optional[int]:
        return self.settings.currency_precision

    def _recompute(self) -> None:
        self.totals = compute_totals(self.items, self.tax_rate, self.precision)

    def _index_of(self, item_id: str) -> int:
        for i, item in enumerate(self.items):
            if item.id == item_id:
                return i
        raise NotFoundError(f"No line item {item_id!r} on this quote.")

    # ---------------------------
    # Line items
    # ---------------------------

    def add_item(
        self, description: str = "", quantity: float = 1, unit_price: float = 0
    ) -> LineItem:
        check_amounts(quantity, unit_price, self.settings.negative_amounts)
        item = LineItem(
            id=_new_item_id(),
            description=description,
            quantity=quantity,
            unit_price=unit_price,
            currency_precision=self.precision,
        )
        self.items.append(item)
        self._recompute()
        return item

    def update_item(
        self,
        item_id: str,
        description: Optional[str] = None,
        quantity: Optional[float] = None,
        unit_price: Optional[float] = None,
    ) -> LineItem:
        """Replace the given fields of one line item; the rest stay as they were."""
        idx = self._index_of(item_id)
        old = self.items[idx]
        new_qty = old.quantity if quantity is None else quantity
        new_price = old.unit_price if unit_price is None else unit_price
        check_amounts(new_qty, new_price, self.settings.negative_amounts)
        item = dataclasses.replace(
            old,
            description=old.description if description is None else description,
            quantity=new_qty,
            unit_price=new_price,
        )
        self.items[idx] = item
        self._recompute()
        return item

    def remove_item(self, item_id: str) -> LineItem:
        removed = self.items.pop(self._index_of(item_id))
        self._recompute()
        return removed

    def remove_item_at(self, index: int) -> LineItem:
        removed = self.items.pop(index)
        self._recompute()
        return removed

    # ---------------------------
    # Quote level fields
    # ---------------------------

    def set_tax_rate(self, tax_rate: float) -> None:
        self.tax_rate = float(tax_rate or 0)
        self._recompute()

    def set_field(self, name: str, value) -> None:
        if name not in EDITABLE_FIELDS:
            raise AttributeError(f"{name!r} is not an editable quote field")
        if name in ("date", "expiry_date"):
            value = normalize_date(value)
        setattr(self, name, value)

    def missing_fields(self) -> List[str]:
        return [f for f in REQUIRED_FIELDS if not str(getattr(self, f) or "").strip()]

    def validate(self) -> None:
        missing = self.missing_fields()
        if missing:
            raise QuoteValidationError(missing)

    def to_quote(self) -> Quote:
        return Quote(
            id=self.quote_id,
            customer_id=self.customer_id,
            customer_name=self.customer_name.strip(),
            quote_number=self.quote_number.strip(),
            date=self.date,
            expiry_date=self.expiry_date,
            line_items=tuple(self.items),
            tax_rate=self.tax_rate,
            terms=self.terms,
            notes=self.notes,
            status=self.status,
            sales_rep=self.sales_rep,
            review_notes=self.review_notes,
            currency_precision=self.precision,
        )

    async def save(self, service) -> Quote:
        """
        Validate, then create or update through the quote service.
        Nothing is sent when validation fails.
        """
        self.validate()
        quote = self.to_quote()
        if self.is_new:
            saved = await service.create_quote(quote)
            _logger.info(f"Created quote {saved.quote_number} ({saved.id})")
        else:
            saved = await service.update_quote(self.quote_id, quote)
            _logger.info(f"Updated quote {saved.quote_number} ({saved.id})")
        self.quote_id = saved.id
        return saved

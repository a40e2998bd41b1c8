from datetime import date
from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label

import db.crud as crud
from db.models import Contract, Quote
from utils.contracts import approved_quotes, convert_to_contract, pending_review, review_quote
from utils.errors import NotFoundError, ServiceError, ValidationError
from utils.logger import get_logger
from utils.messages import ContractsChangedMessage, QuotesChangedMessage
from utils.pure import fmt_money, humanize_status
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal
from views.modal_quote_review import QuoteReviewModal

_logger = get_logger(__name__)

REVIEW_TOASTS = {
    "approve": "approved",
    "reject": "rejected",
    "request_changes": "sent back for changes",
}


class QuoteReviewScreen(BaseScreen):
    """
    Managers review quotes that were sent or are under review, and turn
    approved quotes into active contracts.
    """

    BINDINGS = [
        Binding("c", "convert", "Convert to Contract", show=True),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._quotes: List[Quote] = []
        self._contracts: List[Contract] = []
        self._pending: List[Quote] = []
        self._approved: List[Quote] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Label("Pending Review", classes="section-title")
            yield DataTable(id="table-pending")
            yield Label("Approved", classes="section-title")
            yield DataTable(id="table-approved")
            with Horizontal(id="hort-buttons"):
                yield Button("Refresh", id="btn-refresh")
                yield Button("Convert to Contract", id="btn-convert", variant="primary")

    def on_mount(self) -> None:
        for table in self.query("#table-pending, #table-approved").results(DataTable):
            table.cursor_type = "row"
            table.zebra_stripes = True
            table.add_columns("Quote", "Customer", "Sales Rep", "Amount", "Status")

    @on(Button.Pressed, "#btn-refresh")
    @on(QuotesChangedMessage)
    @on(ScreenResume)
    @work(exclusive=True, group="review")
    async def handle_reload(self) -> None:
        try:
            self._quotes = await crud.list_quotes()
            self._contracts = await crud.list_contracts()
        except ServiceError:
            self.notify("Failed to load quotes.", severity="error")
            self._quotes, self._contracts = [], []

        self._pending = pending_review(self._quotes)
        self._approved = approved_quotes(self._quotes)
        self._fill(self.query_one("#table-pending", DataTable), self._pending)
        self._fill(self.query_one("#table-approved", DataTable), self._approved)

    @staticmethod
    def _fill(table: DataTable, quotes: List[Quote]) -> None:
        table.clear()
        for q in quotes:
            table.add_row(
                q.quote_number,
                q.customer_name,
                q.sales_rep or "-",
                fmt_money(q.total),
                humanize_status(q.status),
                key=q.id,
            )

    @staticmethod
    def _selected(table: DataTable, quotes: List[Quote]) -> Optional[Quote]:
        if table.row_count == 0 or not 0 <= table.cursor_row < len(quotes):
            return None
        return quotes[table.cursor_row]

    @on(DataTable.RowSelected, "#table-pending")
    @work(exclusive=True, group="review-modal")
    async def handle_review(self) -> None:
        quote = self._selected(self.query_one("#table-pending", DataTable), self._pending)
        if quote is None:
            return
        decision = await self.app.push_screen_wait(QuoteReviewModal(quote))
        if decision is None:
            return
        action, notes = decision
        reviewed = review_quote(quote, action, notes)
        try:
            await crud.update_quote_status(reviewed.id, reviewed.status, reviewed.review_notes)
        except (ServiceError, NotFoundError) as e:
            _logger.error(f"Review of {quote.id} failed: {e}")
            self.notify("Failed to update quote.", severity="error")
            return
        self.notify(f"Quote {REVIEW_TOASTS[action]} successfully!")
        self.post_message(QuotesChangedMessage())

    @on(Button.Pressed, "#btn-convert")
    @on(DataTable.RowSelected, "#table-approved")
    @work(exclusive=True, group="review-modal")
    async def action_convert(self) -> None:
        quote = self._selected(self.query_one("#table-approved", DataTable), self._approved)
        if quote is None:
            self.notify("Select an approved quote first.", severity="warning")
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Convert quote #{quote.quote_number} ({fmt_money(quote.total)}) "
                "into an active contract?",
                primary_text="Convert",
                secondary_text="Cancel",
                tone="positive",
            )
        ):
            return

        contract, _ = convert_to_contract(
            quote,
            self._contracts,
            date.today(),
            self.app.state.settings.contract_term_days,
        )
        try:
            await crud.convert_quote_to_contract(contract)
        except (ServiceError, NotFoundError, ValidationError) as e:
            _logger.error(f"Contract conversion for {quote.id} failed: {e}")
            self.notify("Failed to convert quote.", severity="error")
            self.post_message(QuotesChangedMessage())
            return
        self.notify(
            f"Quote converted to active contract {contract.contract_number} successfully!"
        )
        self.post_message(ContractsChangedMessage(contract.contract_number, quote.id))
        self.post_message(QuotesChangedMessage())

from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Input, Label, MarkdownViewer, Select

import db.crud as crud
from db.models import Quote
from utils.errors import NotFoundError, ServiceError
from utils.messages import QuotesChangedMessage
from utils.pure import (
    count_by_status,
    filter_quotes,
    fmt_money,
    generate_markdown_table,
    humanize_status,
)
from views.base_screen import BaseScreen
from views.scr_quote_editor import QuoteEditorScreen

# the statuses a sales rep can filter on in the tracker
TRACKED_STATUSES = ("draft", "sent", "accepted", "rejected", "expired")


def render_quote_md(quote: Optional[Quote]) -> str:
    """Markdown detail block for one quote."""
    if quote is None:
        return "### Select a quote to view its details."
    header = (
        f"### Quote #{quote.quote_number}\n"
        f"Customer: **{quote.customer_name}**  \n"
        f"Date: {quote.date} | Expires: {quote.expiry_date}  \n"
        f"Status: {humanize_status(quote.status)}"
        + (f" | Sales rep: {quote.sales_rep}" if quote.sales_rep else "")
        + "\n\n"
    )
    rows = [
        [it.description or "-", f"{it.quantity:g}", fmt_money(it.unit_price), fmt_money(it.total)]
        for it in quote.line_items
    ]
    table = generate_markdown_table(
        ["Description", "Qty", "Unit Price", "Total"], rows, ["l", "r", "r", "r"]
    )
    footer = (
        f"\n\n- Subtotal: {fmt_money(quote.subtotal)}\n"
        f"- Tax ({quote.tax_rate:g}%): {fmt_money(quote.tax_amount)}\n"
        f"- **Total: {fmt_money(quote.total)}**\n"
    )
    extra = ""
    if quote.terms:
        extra += f"\n**Terms:** {quote.terms}\n"
    if quote.notes:
        extra += f"\n**Notes:** {quote.notes}\n"
    if quote.review_notes:
        extra += f"\n**Review notes:** {quote.review_notes}\n"
    return header + (table or "_No line items._") + footer + extra


class QuoteTrackingScreen(BaseScreen):
    """
    Sales reps browse their quotes, filter by status, search by quote number
    or customer, send quotes to customers and open the editor.
    """

    BINDINGS = [
        Binding("n", "new_quote", "New Quote", show=True),
        Binding("e", "edit_quote", "Edit", show=True),
        Binding("s", "send_quote", "Send to Customer", show=True),
    ]

    status_filter = reactive("all")
    search_term = reactive("")

    def __init__(self) -> None:
        super().__init__()
        self._quotes: List[Quote] = []
        self._visible: List[Quote] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-quote-filters"):
                yield Select(
                    [("All Status", "all")]
                    + [(humanize_status(s), s) for s in TRACKED_STATUSES],
                    value="all",
                    allow_blank=False,
                    id="select-status",
                )
                yield Input(
                    placeholder="Search by quote number or customer...",
                    id="input-search",
                )
                yield Label("0 of 0 quotes", id="label-quote-count")
            yield DataTable(id="table-quotes")
            yield MarkdownViewer(id="md-quote-detail", show_table_of_contents=False)
            with Horizontal(id="hort-buttons"):
                yield Button("Refresh", id="btn-refresh")
                yield Button("Edit", id="btn-edit")
                yield Button("Send to Customer", id="btn-send")
                yield Button("New Quote", id="btn-new", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one("#table-quotes", DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Quote", "Customer", "Date", "Amount", "Status")
        self.query_one("#input-search").focus()

    @on(Button.Pressed, "#btn-refresh")
    @on(QuotesChangedMessage)
    @on(ScreenResume)
    @work(exclusive=True, group="quotes")
    async def handle_reload(self) -> None:
        try:
            self._quotes = await crud.list_quotes()
        except ServiceError:
            self.notify("Failed to load quotes.", severity="error")
            self._quotes = []
        self.apply_filter()

    @on(Select.Changed, "#select-status")
    def handle_status_filter(self, event: Select.Changed) -> None:
        self.status_filter = str(event.value)

    @on(Input.Changed, "#input-search")
    def handle_search(self, event: Input.Changed) -> None:
        self.search_term = event.value

    def watch_status_filter(self) -> None:
        self.apply_filter()

    def watch_search_term(self) -> None:
        self.apply_filter()

    def apply_filter(self) -> None:
        """Recompute the visible rows from the loaded quotes; no refetch."""
        self._visible = filter_quotes(self._quotes, self.status_filter, self.search_term)

        table = self.query_one("#table-quotes", DataTable)
        table.clear()
        for q in self._visible:
            table.add_row(
                q.quote_number,
                q.customer_name,
                q.date,
                fmt_money(q.total),
                humanize_status(q.status),
                key=q.id,
            )

        counts = count_by_status(self._quotes)
        self.query_one("#label-quote-count", Label).update(
            f"{len(self._visible)} of {counts['all']} quotes"
        )
        self._render_detail(self.selected_quote())

    def selected_quote(self) -> Optional[Quote]:
        table = self.query_one("#table-quotes", DataTable)
        if table.row_count == 0 or table.cursor_row is None:
            return None
        if 0 <= table.cursor_row < len(self._visible):
            return self._visible[table.cursor_row]
        return None

    @on(DataTable.RowHighlighted, "#table-quotes")
    def handle_row_highlight(self) -> None:
        self._render_detail(self.selected_quote())

    def _render_detail(self, quote: Optional[Quote]) -> None:
        self.query_one("#md-quote-detail", MarkdownViewer).document.update(
            render_quote_md(quote)
        )

    @on(Button.Pressed, "#btn-new")
    def action_new_quote(self) -> None:
        self.open_editor(None)

    @on(Button.Pressed, "#btn-edit")
    @on(DataTable.RowSelected, "#table-quotes")
    def action_edit_quote(self) -> None:
        quote = self.selected_quote()
        if quote is None:
            self.notify("Select a quote first.", severity="warning")
            return
        self.open_editor(quote.id)

    @work()
    async def open_editor(self, quote_id: Optional[str]) -> None:
        self.app.state.editing_quote_id = quote_id
        if await self.app.push_screen_wait(QuoteEditorScreen(quote_id)):
            self.post_message(QuotesChangedMessage())

    @on(Button.Pressed, "#btn-send")
    @work(exclusive=True, group="quote-status")
    async def action_send_quote(self) -> None:
        quote = self.selected_quote()
        if quote is None:
            self.notify("Select a quote first.", severity="warning")
            return
        try:
            await crud.update_quote_status(quote.id, "sent")
        except (ServiceError, NotFoundError):
            self.notify("Failed to update quote status.", severity="error")
            return
        self.notify(f"Quote #{quote.quote_number} sent to {quote.customer_name}.")
        self.post_message(QuotesChangedMessage())

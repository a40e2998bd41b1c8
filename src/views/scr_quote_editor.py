from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import Screen
from textual.validation import Number
from textual.widgets import Button, DataTable, Footer, Header, Input, Label, Select

import db.crud as crud
from db.models import QUOTE_STATUSES, LineItem
from utils.errors import (
    InvalidLineItemError,
    NotFoundError,
    QuoteValidationError,
    ServiceError,
)
from utils.logger import get_logger
from utils.pricing import parse_amount
from utils.pure import fmt_money, humanize_status
from utils.quote_draft import QuoteDraft
from views.modal_dialog import DialogModal

_logger = get_logger(__name__)

TEXT_FIELDS = {
    "customer_name": "Customer Name *",
    "quote_number": "Quote Number *",
    "date": "Date (YYYY-MM-DD)",
    "expiry_date": "Expiry Date (YYYY-MM-DD)",
    "sales_rep": "Sales Rep",
    "terms": "Terms",
    "notes": "Notes",
}


class QuoteEditorScreen(Screen[bool]):
    """
    Create or edit a quote. Dismisses with True when the quote was saved.

    Every edit goes through QuoteDraft, which recomputes the line totals,
    subtotal, tax and grand total; the labels are refreshed from it.
    """

    BINDINGS = [
        Binding("ctrl+s", "save", "Save Quote", show=True),
        Binding("escape", "cancel", "Back to Quotes", show=True),
        Binding("ctrl+n", "add_item", "Add Item", show=True),
    ]

    def __init__(self, quote_id: Optional[str] = None) -> None:
        super().__init__()
        self.quote_id = quote_id
        self.draft = QuoteDraft(settings=self.app.state.settings)
        self._selected_item: Optional[str] = None

    def compose(self) -> ComposeResult:
        yield Header()
        with VerticalScroll(id="vs-editor"):
            with Horizontal(id="hort-editor-top"):
                with Vertical(id="div-customer"):
                    for name, caption in TEXT_FIELDS.items():
                        yield Label(caption)
                        yield Input(id=f"input-{name}")
                    yield Label("Status")
                    yield Select(
                        [(humanize_status(s), s) for s in QUOTE_STATUSES],
                        value="draft",
                        allow_blank=False,
                        id="select-quote-status",
                    )
                with Vertical(id="div-summary"):
                    yield Label("Subtotal: $0.00", id="label-subtotal")
                    yield Label("Tax Rate (%)")
                    yield Input(
                        "0",
                        id="input-tax-rate",
                        type="number",
                        validators=[Number(minimum=0)],
                    )
                    yield Label("Tax Amount: $0.00", id="label-tax-amount")
                    yield Label("Total: $0.00", id="label-total")
                    with Horizontal(classes="editor-buttons"):
                        yield Button("Cancel", id="btn-cancel")
                        yield Button("Save Quote", id="btn-save", variant="primary")
            yield Label("Line Items", classes="section-title")
            yield DataTable(id="table-line-items")
            with Horizontal(id="hort-item-edit"):
                yield Input(placeholder="Item description", id="input-item-description")
                yield Input(placeholder="Qty", id="input-item-quantity", type="number")
                yield Input(placeholder="Unit price", id="input-item-unit_price", type="number")
                yield Button("Add Item", id="btn-add-item", variant="success")
                yield Button("Remove", id="btn-remove-item", variant="error")
        yield Footer(show_command_palette=False)

    def on_mount(self) -> None:
        self.sub_title = "Edit Quote" if self.quote_id else "Create New Quote"
        table = self.query_one("#table-line-items", DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_column("Description", key="description")
        table.add_column("Qty", key="quantity")
        table.add_column("Unit Price", key="unit_price")
        table.add_column("Total", key="total")

        if self.quote_id:
            self.load_quote()
        else:
            self._fill_form()
        self.query_one("#input-customer_name").focus()

    @work(exclusive=True)
    async def load_quote(self) -> None:
        try:
            quote = await crud.get_quote(self.quote_id)
            if quote is None:
                raise NotFoundError(f"Quote {self.quote_id} not found.")
        except (ServiceError, NotFoundError) as e:
            _logger.error(f"Failed to load quote {self.quote_id}: {e}")
            self.notify("Failed to load quote", severity="error")
            self._fill_form()
            return
        self.draft = QuoteDraft(quote, settings=self.app.state.settings)
        self._fill_form()

    def _fill_form(self) -> None:
        for name in TEXT_FIELDS:
            self.query_one(f"#input-{name}", Input).value = str(getattr(self.draft, name) or "")
        self.query_one("#select-quote-status", Select).value = self.draft.status
        self.query_one("#input-tax-rate", Input).value = f"{self.draft.tax_rate:g}"
        self._rebuild_items()

    def _rebuild_items(self) -> None:
        table = self.query_one("#table-line-items", DataTable)
        table.clear()
        for item in self.draft.items:
            table.add_row(*self._item_cells(item), key=item.id)
        if self._selected_item and any(i.id == self._selected_item for i in self.draft.items):
            table.move_cursor(row=table.get_row_index(self._selected_item))
        self._refresh_totals()

    @staticmethod
    def _item_cells(item: LineItem):
        return (
            item.description or "-",
            f"{item.quantity:g}",
            fmt_money(item.unit_price),
            fmt_money(item.total),
        )

    def _refresh_totals(self) -> None:
        totals = self.draft.totals
        self.query_one("#label-subtotal", Label).update(f"Subtotal: {fmt_money(totals.subtotal)}")
        self.query_one("#label-tax-amount", Label).update(
            f"Tax Amount: {fmt_money(totals.tax_amount)}"
        )
        self.query_one("#label-total", Label).update(f"Total: {fmt_money(totals.total)}")

    # ---------------------------
    # Quote fields
    # ---------------------------

    @on(Input.Changed)
    def handle_field_changed(self, event: Input.Changed) -> None:
        field = (event.input.id or "").removeprefix("input-")
        if field in TEXT_FIELDS:
            if field in ("date", "expiry_date"):
                # keep the last valid date until the user finishes typing
                try:
                    self.draft.set_field(field, event.value)
                except ValueError:
                    return
            else:
                self.draft.set_field(field, event.value)
            event.input.remove_class("-invalid")
        elif field == "tax-rate":
            self.draft.set_tax_rate(parse_amount(event.value))
            self._refresh_totals()
        elif field.startswith("item-"):
            self._edit_selected_item(field.removeprefix("item-"), event)

    @on(Select.Changed, "#select-quote-status")
    def handle_status_changed(self, event: Select.Changed) -> None:
        self.draft.set_field("status", str(event.value))

    # ---------------------------
    # Line items
    # ---------------------------

    @on(DataTable.RowHighlighted, "#table-line-items")
    def handle_item_highlight(self, event: DataTable.RowHighlighted) -> None:
        self._selected_item = event.row_key.value if event.row_key else None
        item = next((i for i in self.draft.items if i.id == self._selected_item), None)
        if item is None:
            return
        self.query_one("#input-item-description", Input).value = item.description
        self.query_one("#input-item-quantity", Input).value = f"{item.quantity:g}"
        self.query_one("#input-item-unit_price", Input).value = f"{item.unit_price:g}"

    def _edit_selected_item(self, attr: str, event: Input.Changed) -> None:
        if self._selected_item is None:
            return
        kwargs = {}
        if attr == "description":
            kwargs["description"] = event.value
        else:
            if not event.value.strip():
                return
            kwargs[attr] = parse_amount(event.value)
        try:
            item = self.draft.update_item(self._selected_item, **kwargs)
        except InvalidLineItemError as e:
            event.input.add_class("-invalid")
            self.notify(str(e), severity="error")
            return
        except NotFoundError:
            return
        event.input.remove_class("-invalid")

        table = self.query_one("#table-line-items", DataTable)
        for key, value in zip(
            ("description", "quantity", "unit_price", "total"), self._item_cells(item)
        ):
            table.update_cell(item.id, key, value)
        self._refresh_totals()

    @on(Button.Pressed, "#btn-add-item")
    def action_add_item(self) -> None:
        item = self.draft.add_item()
        self._selected_item = item.id
        self._rebuild_items()
        self.query_one("#input-item-description").focus()

    @on(Button.Pressed, "#btn-remove-item")
    def handle_remove_item(self) -> None:
        if self._selected_item is None:
            self.notify("Select a line item first.", severity="warning")
            return
        try:
            self.draft.remove_item(self._selected_item)
        except NotFoundError:
            pass
        self._selected_item = None
        self._rebuild_items()

    # ---------------------------
    # Save / cancel
    # ---------------------------

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True, group="save-quote")
    async def action_save(self) -> None:
        save_btn = self.query_one("#btn-save", Button)
        try:
            save_btn.disabled = True
            save_btn.label = "Saving..."
            await self.draft.save(crud)
        except QuoteValidationError as e:
            for name in e.fields:
                self.query_one(f"#input-{name}", Input).add_class("-invalid")
            self.query_one(f"#input-{e.fields[0]}", Input).focus()
            self.notify("Please fill in all required fields", severity="error")
            return
        except (ServiceError, NotFoundError) as e:
            _logger.error(f"Error saving quote: {e}")
            self.notify("Failed to save quote", severity="error")
            return
        finally:
            save_btn.disabled = False
            save_btn.label = "Save Quote"

        self.notify(
            "Quote created successfully" if self.quote_id is None else "Quote updated successfully"
        )
        self.dismiss(True)

    @on(Button.Pressed, "#btn-cancel")
    @work()
    async def action_cancel(self) -> None:
        if await self.app.push_screen_wait(
            DialogModal(
                "Discard changes to this quote?",
                primary_text="Discard",
                secondary_text="Keep editing",
                tone="warning",
            )
        ):
            self.dismiss(False)

from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import (
    Button,
    DataTable,
    Input,
    Label,
    MarkdownViewer,
    Select,
    TabbedContent,
    TabPane,
)

import db.crud as crud
from db.models import ORDER_STATUSES, Order
from utils.errors import (
    FetchError,
    NotFoundError,
    OrderLockedError,
    PersistError,
    SaveInProgressError,
    ServiceError,
    ValidationError,
)
from utils.fulfillment import FulfillmentBoard, filter_orders, is_locked, target_status
from utils.logger import get_logger
from utils.messages import OrdersChangedMessage
from utils.pure import fmt_money, generate_markdown_table, humanize_status, normalize_date
from views.base_screen import BaseScreen
from views.modal_dialog import ChoiceModal, PromptModal

_logger = get_logger(__name__)

ORDER_TABLES = ("#table-new-orders", "#table-delivered-orders", "#table-all-orders")


def render_order_md(order: Optional[Order]) -> str:
    if order is None:
        return "### Select an order to view its details."
    rows = [
        ["Customer", order.customer_name],
        ["Email", order.customer_email or "-"],
        ["Ship to", order.shipping_address or "-"],
        ["Ordered", order.order_date or "-"],
        ["Expected delivery", order.expected_delivery or "-"],
        ["Payment", order.payment_method or "-"],
        ["Status", humanize_status(order.status)],
        ["Total", fmt_money(order.total_amount)],
    ]
    md = f"### Order {order.order_number}\n\n"
    md += generate_markdown_table(None, rows, ["l", "l"])
    if order.notes:
        md += f"\n\n**Notes:** {order.notes}\n"
    return md


class WarehouseScreen(BaseScreen):
    """
    Fulfillment dashboard for warehouse staff.

    Tick the items that went out with space or enter, then save: the order
    moves to shipped once every item is ticked. Every save re-reads the
    orders, so a failed save drops the unsaved ticks. The All Orders tab
    lists every order with per-status counts, and Set Status moves the
    selected order to any status by hand.
    """

    BINDINGS = [
        Binding("ctrl+s", "save_order", "Save Order", show=True),
        Binding("d", "set_delivery", "Expected Delivery", show=True),
        Binding("t", "set_status", "Set Status", show=True),
        Binding("space", "toggle_item", "Toggle Shipped", show=True, key_display="␣"),
    ]

    def __init__(self) -> None:
        super().__init__()
        self.board = FulfillmentBoard(crud)
        self._selected_order: Optional[str] = None
        self._status_filter = "all"

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Label("", id="label-error")
            with Horizontal(id="hort-order-search"):
                yield Input(
                    placeholder="Filter by customer, order number, email or status...",
                    id="input-order-search",
                )
                yield Button("Refresh", id="btn-refresh")
            with TabbedContent(id="tabs-orders"):
                with TabPane("New Orders", id="tab-new"):
                    yield DataTable(id="table-new-orders")
                with TabPane("Orders Delivered", id="tab-delivered"):
                    yield DataTable(id="table-delivered-orders")
                with TabPane("All Orders", id="tab-all"):
                    with Horizontal(id="hort-order-filters"):
                        yield Select(
                            [("All Status", "all")]
                            + [(humanize_status(s), s) for s in ORDER_STATUSES],
                            value="all",
                            allow_blank=False,
                            id="select-order-status",
                        )
                        yield Label("", id="label-order-counts")
                    yield DataTable(id="table-all-orders")
            with Horizontal(id="hort-order-detail"):
                yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
                with Vertical(id="div-order-items"):
                    yield DataTable(id="table-order-items")
                    yield Label("", id="label-order-progress")
            with Horizontal(id="hort-buttons"):
                yield Button("Expected Delivery", id="btn-delivery")
                yield Button("Set Status", id="btn-set-status")
                yield Button("Save Order", id="btn-save-order", variant="primary")

    def on_mount(self) -> None:
        for table_id in ORDER_TABLES:
            table = self.query_one(table_id, DataTable)
            table.cursor_type = "row"
            table.zebra_stripes = True
            table.add_columns("Order", "Customer", "Date")
            table.add_column("Items", key="items")
            table.add_columns("Total", "Status")

        items = self.query_one("#table-order-items", DataTable)
        items.cursor_type = "row"
        items.add_column("Shipped", key="shipped")
        items.add_columns("Item", "Category", "Qty", "Price")
        self.query_one("#label-error").display = False

    # ---------------------------
    # Loading
    # ---------------------------

    @on(Button.Pressed, "#btn-refresh")
    @on(ScreenResume)
    @work(exclusive=True, group="orders")
    async def handle_reload(self) -> None:
        try:
            await self.board.reconcile()
        except FetchError:
            pass
        self.render_board()

    @on(Input.Changed, "#input-order-search")
    def handle_search(self, event: Input.Changed) -> None:
        # the store does the matching
        self.board.search = event.value.strip() or None
        self.handle_reload()

    @on(Select.Changed, "#select-order-status")
    def handle_status_filter(self, event: Select.Changed) -> None:
        if str(event.value) == self._status_filter:
            return
        self._status_filter = str(event.value)
        self.render_board()

    def render_board(self) -> None:
        banner = self.query_one("#label-error", Label)
        banner.update(self.board.last_error or "")
        banner.display = self.board.last_error is not None

        self._fill_orders("#table-new-orders", self.board.new_orders)
        self._fill_orders("#table-delivered-orders", self.board.delivered_orders)
        self._fill_orders(
            "#table-all-orders", filter_orders(self.board.orders, self._status_filter)
        )
        counts = self.board.counts()
        self.query_one("#label-order-counts", Label).update(
            " | ".join(
                f"{humanize_status(s)}: {counts.get(s, 0)}"
                for s in ("all",) + ORDER_STATUSES
            )
        )
        self.render_order()

    def _fill_orders(self, table_id: str, orders: List[Order]) -> None:
        table = self.query_one(table_id, DataTable)
        table.clear()
        for o in orders:
            shipped = sum(1 for it in o.items if it.is_shipped)
            table.add_row(
                o.order_number,
                o.customer_name,
                o.order_date,
                f"{shipped}/{len(o.items)}",
                fmt_money(o.total_amount),
                humanize_status(o.status),
                key=o.id,
            )

    def _current_order(self) -> Optional[Order]:
        if self._selected_order is None:
            return None
        return self.board.get(self._selected_order)

    @on(DataTable.RowHighlighted, "#table-new-orders")
    @on(DataTable.RowHighlighted, "#table-delivered-orders")
    @on(DataTable.RowHighlighted, "#table-all-orders")
    def handle_order_highlight(self, event: DataTable.RowHighlighted) -> None:
        self._selected_order = event.row_key.value if event.row_key else None
        self.render_order()

    @on(TabbedContent.TabActivated)
    def handle_tab_switch(self) -> None:
        pane = self.query_one(TabbedContent).active_pane
        table = pane.query_one(DataTable) if pane else None
        self._selected_order = None
        if table is not None and table.row_count:
            self._selected_order = table.coordinate_to_cell_key(
                table.cursor_coordinate
            ).row_key.value
        self.render_order()

    def render_order(self) -> None:
        order = self._current_order()
        self.query_one("#md-order-detail", MarkdownViewer).document.update(
            render_order_md(order)
        )

        items = self.query_one("#table-order-items", DataTable)
        cursor = items.cursor_row
        items.clear()
        progress = self.query_one("#label-order-progress", Label)
        # only processing orders are packed item by item
        packing = order is not None and self.board.find(order.id) is not None
        saving = order is not None and self.board.is_saving(order.id)
        self.query_one("#btn-save-order", Button).disabled = not packing or saving
        self.query_one("#btn-set-status", Button).disabled = order is None or saving
        if order is None:
            progress.update("")
            return

        for it in order.items:
            items.add_row(
                "✓" if it.is_shipped else "-",
                it.name,
                it.category,
                str(it.quantity),
                fmt_money(it.price),
                key=it.id,
            )
        if items.row_count:
            items.move_cursor(row=min(cursor, items.row_count - 1))
        shipped = sum(1 for it in order.items if it.is_shipped)
        progress.update(
            f"{shipped} of {len(order.items)} items shipped"
            + (f" | saving sets: {humanize_status(target_status(order))}" if packing else "")
        )

    # ---------------------------
    # Item toggles and save
    # ---------------------------

    @on(DataTable.RowSelected, "#table-order-items")
    def handle_item_toggle(self, event: DataTable.RowSelected) -> None:
        order = self._current_order()
        if order is None or event.row_key is None:
            return
        if is_locked(order):
            self.notify(f"Order {order.order_number} is already {order.status}.", severity="warning")
            return
        try:
            updated = self.board.apply(order.id, event.row_key.value)
        except OrderLockedError as e:
            self.notify(str(e), severity="warning")
            return
        except NotFoundError:
            self.notify(
                f"Order {order.order_number} is {order.status}, not processing.",
                severity="warning",
            )
            return
        shipped = sum(1 for it in updated.items if it.is_shipped)
        for table_id in ORDER_TABLES:
            table = self.query_one(table_id, DataTable)
            if updated.id in table.rows:
                table.update_cell(updated.id, "items", f"{shipped}/{len(updated.items)}")
        self.render_order()

    def action_toggle_item(self) -> None:
        items = self.query_one("#table-order-items", DataTable)
        if items.row_count:
            items.action_select_cursor()

    @on(Button.Pressed, "#btn-save-order")
    @work(exclusive=False, group="save-order")
    async def action_save_order(self) -> None:
        order = self._current_order()
        if order is None:
            self.notify("Select an order first.", severity="warning")
            return
        save_btn = self.query_one("#btn-save-order", Button)
        save_btn.disabled = True
        try:
            status = await self.board.commit(order.id)
        except SaveInProgressError:
            return
        except OrderLockedError as e:
            self.notify(str(e), severity="warning")
            return
        except NotFoundError:
            self.notify(
                f"Order {order.order_number} is {order.status}, not processing.",
                severity="warning",
            )
            self.render_board()
            return
        except (PersistError, FetchError):
            self.notify("Failed to update order. Please try again.", severity="error")
            self.render_board()
            return
        self.notify(f"Order {order.order_number} has been updated successfully!")
        self.post_message(OrdersChangedMessage(order.id, status))
        self.render_board()

    # ---------------------------
    # Manual status and expected delivery
    # ---------------------------

    @on(Button.Pressed, "#btn-set-status")
    @work(exclusive=True, group="order-status")
    async def action_set_status(self) -> None:
        order = self._current_order()
        if order is None:
            self.notify("Select an order first.", severity="warning")
            return
        status = await self.app.push_screen_wait(
            ChoiceModal(
                f"New status for order {order.order_number}",
                [(humanize_status(s), s) for s in ORDER_STATUSES],
                value=order.status,
                submit_text="Update",
            )
        )
        if status is None or status == order.status:
            return
        try:
            await self.board.set_status(order.id, status)
        except SaveInProgressError:
            self.notify(f"Order {order.order_number} is already being saved.", severity="warning")
            return
        except (PersistError, FetchError, NotFoundError, ValidationError):
            self.notify("Failed to update order. Please try again.", severity="error")
            self.render_board()
            return
        self.notify(f"Order {order.order_number} has been updated successfully!")
        self.post_message(OrdersChangedMessage(order.id, status))
        self.render_board()

    @on(Button.Pressed, "#btn-delivery")
    @work(exclusive=True, group="delivery")
    async def action_set_delivery(self) -> None:
        order = self._current_order()
        if order is None:
            self.notify("Select an order first.", severity="warning")
            return
        when = await self.app.push_screen_wait(
            PromptModal(
                f"Expected delivery for order {order.order_number} (YYYY-MM-DD)",
                value=order.expected_delivery or "",
                placeholder="YYYY-MM-DD",
                submit_text="Save",
            )
        )
        if not when:
            return
        try:
            normalize_date(when)
        except ValueError:
            self.notify(f"Not a valid date: {when}", severity="error")
            return
        try:
            await crud.update_expected_delivery(order.id, when)
        except (ServiceError, NotFoundError) as e:
            _logger.error(f"Setting delivery date on {order.order_number} failed: {e}")
            self.notify("Failed to update order. Please try again.", severity="error")
            return
        self.notify(f"Order {order.order_number} has been updated successfully!")
        self.handle_reload()

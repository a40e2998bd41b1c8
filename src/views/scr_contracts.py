from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, MarkdownViewer

import db.crud as crud
from db.models import Contract, Quote
from utils.contracts import active_contracts, quote_for_contract
from utils.errors import ServiceError
from utils.pure import fmt_money, generate_markdown_table, humanize_status
from views.base_screen import BaseScreen
from views.scr_quote_tracking import render_quote_md


def render_contract_md(contract: Optional[Contract], quote: Optional[Quote]) -> str:
    if contract is None:
        return "### Select a contract to view its details."
    summary = generate_markdown_table(
        None,
        [
            ["Customer", contract.customer_name],
            ["Value", fmt_money(contract.value)],
            ["Start", contract.start_date],
            ["End", contract.end_date],
            ["Signed", contract.signed_date],
            ["Status", humanize_status(contract.status)],
        ],
        ["l", "l"],
    )
    body = f"## Contract {contract.contract_number}\n\n{summary}\n\n"
    if quote is None:
        return body + f"_Source quote {contract.quote_id} is no longer available._"
    return body + render_quote_md(quote)


class ContractsScreen(BaseScreen):
    """
    Active contracts, each shown with the quote it was converted from.
    """

    def __init__(self) -> None:
        super().__init__()
        self._contracts: List[Contract] = []
        self._quotes: List[Quote] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield DataTable(id="table-contracts")
            yield MarkdownViewer(id="md-contract-detail", show_table_of_contents=False)
            with Horizontal(id="hort-buttons"):
                yield Label("0 active contracts", id="label-contract-count")
                yield Button("Refresh", id="btn-refresh")

    def on_mount(self) -> None:
        table = self.query_one("#table-contracts", DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Contract", "Customer", "Start", "End", "Value")

    @on(Button.Pressed, "#btn-refresh")
    @on(ScreenResume)
    @work(exclusive=True, group="contracts")
    async def handle_reload(self) -> None:
        try:
            self._contracts = active_contracts(await crud.list_contracts())
            self._quotes = await crud.list_quotes()
        except ServiceError:
            self.notify("Failed to load contracts.", severity="error")
            self._contracts, self._quotes = [], []

        table = self.query_one("#table-contracts", DataTable)
        table.clear()
        for c in self._contracts:
            table.add_row(
                c.contract_number,
                c.customer_name,
                c.start_date,
                c.end_date,
                fmt_money(c.value),
                key=c.id,
            )
        self.query_one("#label-contract-count", Label).update(
            f"{len(self._contracts)} active contracts"
        )
        self._render_detail()

    @on(DataTable.RowHighlighted, "#table-contracts")
    def _render_detail(self) -> None:
        table = self.query_one("#table-contracts", DataTable)
        contract = None
        if table.row_count and 0 <= table.cursor_row < len(self._contracts):
            contract = self._contracts[table.cursor_row]
        quote = quote_for_contract(contract, self._quotes) if contract else None
        self.query_one("#md-contract-detail", MarkdownViewer).document.update(
            render_contract_md(contract, quote)
        )

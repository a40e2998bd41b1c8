from typing import Optional, Tuple

from textual import on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer

from db.models import Quote
from views.scr_quote_tracking import render_quote_md


class QuoteReviewModal(ModalScreen[Optional[Tuple[str, str]]]):
    """
    Show a quote and let the reviewer approve, reject or send it back.
    Dismisses with (action, notes), or None if the reviewer backs out.
    """

    def __init__(self, quote: Quote) -> None:
        super().__init__()
        self.quote = quote

    def compose(self) -> ComposeResult:
        with Vertical(id="div-review"):
            yield MarkdownViewer(render_quote_md(self.quote), show_table_of_contents=False)
            yield Label("Review Notes")
            yield Input(
                self.quote.review_notes,
                placeholder="Add notes for the sales rep...",
                id="input-review-notes",
            )
            with Horizontal(id="hort-review-buttons"):
                yield Button("Go Back", id="btn-quit")
                yield Button("Request Changes", id="btn-request_changes", variant="warning")
                yield Button("Reject", id="btn-reject", variant="error")
                yield Button("Approve", id="btn-approve", variant="success")

    def on_mount(self) -> None:
        self.query_one("#input-review-notes").focus()

    def on_key(self, event) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed)
    def handle_decision(self, event: Button.Pressed) -> None:
        action = (event.button.id or "").removeprefix("btn-")
        if action == "quit":
            self.dismiss(None)
            return
        notes = self.query_one("#input-review-notes", Input).value
        self.dismiss((action, notes))

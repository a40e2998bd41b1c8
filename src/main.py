from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from utils.logger import get_logger
from utils.messages import (
    ContractsChangedMessage,
    ModeSwitchedMessage,
    OrdersChangedMessage,
    QuitRequestedMessage,
)
from utils.state import GlobalState
from views.scr_contracts import ContractsScreen
from views.scr_quote_review import QuoteReviewScreen
from views.scr_quote_tracking import QuoteTrackingScreen
from views.scr_warehouse import WarehouseScreen

_logger = get_logger(__name__)


class OfficeOpsApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "quotes": QuoteTrackingScreen,
        "review": QuoteReviewScreen,
        "contracts": ContractsScreen,
        "warehouse": WarehouseScreen,
    }

    MODE_LABELS = {
        "quotes": "Quote Tracking",
        "review": "Quote Review",
        "contracts": "Contracts",
        "warehouse": "Order Fulfillment",
    }

    CSS_PATH = "views/styles/app.tcss"

    state: GlobalState

    def __init__(self, state: GlobalState = None):
        super().__init__()
        self.state = state or GlobalState()

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        _logger.info(f"Starting Office Ops Desk, store at {self.state.settings.db_path}")
        self.post_message(ModeSwitchedMessage(self.current_mode, "quotes"))
        await self.switch_mode("quotes")

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(ModeSwitchedMessage)
    def handle_mode_switch(self, message: ModeSwitchedMessage) -> None:
        _logger.debug(f"Mode {message.old_mode or '-'} -> {message.new_mode}")

    @on(ContractsChangedMessage)
    def handle_contract_created(self, message: ContractsChangedMessage) -> None:
        _logger.info(
            f"{self.state.operator}: quote {message.quote_id} "
            f"converted to contract {message.contract_number}"
        )

    @on(OrdersChangedMessage)
    def handle_order_saved(self, message: OrdersChangedMessage) -> None:
        _logger.info(f"{self.state.operator}: order {message.order_id} -> {message.status}")

    @on(QuitRequestedMessage)
    @work
    async def handle_quit(self):
        _logger.info("Quit requested")
        self.exit()


def main() -> None:
    app = OfficeOpsApp()
    app.run()


if __name__ == "__main__":
    main()

from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class QuotesChangedMessage(Message):
    """
    Fired after a quote is created, edited, reviewed or changes status.
    The quote tracking and review screens reload on it.
    """

    bubble = True


class ContractsChangedMessage(Message):
    """
    Fired when a quote is converted into a contract.
    The app writes it to the activity log.
    """

    bubble = True

    def __init__(self, contract_number: str, quote_id: str) -> None:
        super().__init__()
        self.contract_number = contract_number
        self.quote_id = quote_id


class OrdersChangedMessage(Message):
    """
    Fired after an order status is persisted from the warehouse board.
    The app writes it to the activity log.
    """

    bubble = True

    def __init__(self, order_id: str, status: str) -> None:
        super().__init__()
        self.order_id = order_id
        self.status = status


class ModeSwitchedMessage(Message):
    """
    fired whenever switch_mode is called
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode

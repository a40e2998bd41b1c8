# error types shared by the store, the pure helpers and the screens
from typing import Iterable


class OfficeOpsError(Exception):
    """Base class for every error raised by this app."""


class ServiceError(OfficeOpsError):
    """The backing store failed to answer a request."""


class FetchError(ServiceError):
    """A read (orders, quotes, contracts) failed."""


class PersistError(ServiceError):
    """A write failed; local state must be re-synced from the store."""


class NotFoundError(OfficeOpsError, LookupError):
    pass


class ValidationError(OfficeOpsError, ValueError):
    pass


class QuoteValidationError(ValidationError):
    """
    Raised when a quote is saved with required fields missing.
    `fields` lists the attribute names that failed, so screens can mark them.
    """

    def __init__(self, fields: Iterable[str]):
        self.fields = tuple(fields)
        super().__init__(
            "Please fill in all required fields: " + ", ".join(self.fields)
        )


class InvalidLineItemError(ValidationError):
    pass


class OrderLockedError(OfficeOpsError):
    """Shipped and delivered orders can no longer be edited."""


class SaveInProgressError(OfficeOpsError):
    """A commit for the same order is still waiting on the store."""

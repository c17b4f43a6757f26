"""Exceptions raised by the print service."""


class PrintServiceError(Exception):
    """Base class for print service failures."""


class PrinterConnectionError(PrintServiceError, ConnectionError):
    """The receipt printer is not reachable."""


class PrintTimeoutError(PrintServiceError, TimeoutError):
    """A ticket did not finish printing within the configured timeout."""


class PersistenceError(PrintServiceError):
    """A read, update or delete against the order store failed."""


class FeedSubscriptionError(PrintServiceError):
    """The print queue change feed could not be opened or was dropped."""


class MalformedJobError(PrintServiceError):
    """A print queue document could not be decoded into an order."""

    def __init__(self, message: str, print_id: str | None = None):
        super().__init__(message)
        self.print_id = print_id

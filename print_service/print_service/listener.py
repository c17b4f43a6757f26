"""Change feed listener that turns print queue documents into dispatch jobs."""

import threading
from enum import Enum

from logging_utils.config import get_component_logger

from .dispatcher import DispatchJob, DispatchQueue
from .errors import FeedSubscriptionError, MalformedJobError
from .schemas import Order, decode_order
from .store import OrderStore, QueueChange, Subscription

logger = get_component_logger("print-service", "feed")

ENQUEUED_CHANGE_KINDS = frozenset({"ADDED", "MODIFIED"})


class FeedState(str, Enum):
    """Connection state of the change feed listener."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    LISTENING = "listening"
    STOPPED = "stopped"


class ChangeFeedListener:
    """Keeps a subscription to the print queue open and feeds the dispatch queue.

    The subscription is supervised from a background thread. When it cannot
    be opened or drops, the listener goes back to ``DISCONNECTED`` and tries
    again after ``retry_delay_ms``, for as long as the service runs.
    """

    def __init__(
        self,
        store: OrderStore,
        dispatcher: DispatchQueue,
        retry_delay_ms: int = 5000,
        check_interval: float = 1.0,
    ):
        """Initialize the listener.

        Args:
            store: Provides the print queue subscription
            dispatcher: Receives decoded orders
            retry_delay_ms: Delay before each reconnect attempt
            check_interval: Seconds between subscription health checks
        """
        self.store = store
        self.dispatcher = dispatcher
        self.retry_delay_ms = retry_delay_ms
        self.check_interval = check_interval

        self.state = FeedState.DISCONNECTED
        self.stats = {"connect_attempts": 0, "changes_seen": 0, "jobs_enqueued": 0, "malformed": 0}
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._subscription: Subscription | None = None

    def start(self) -> None:
        """Run the listener in a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="print-queue-feed", daemon=True)
        self._thread.start()
        logger.info("Change feed listener thread started")

    def stop(self, timeout: float | None = None) -> None:
        """Stop listening and wait for the listener thread to exit."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self.state = FeedState.STOPPED
        logger.info("Change feed listener stopped")

    def run(self) -> None:
        """Connect, listen and reconnect until stopped."""
        while not self._stop.is_set():
            try:
                self._connect()
                self._listen()
            except FeedSubscriptionError as e:
                logger.error(f"Change feed error: {e}")
            except Exception:
                logger.exception("Unexpected change feed failure")
            finally:
                self._close_subscription()

            if self._stop.is_set():
                break
            self.state = FeedState.DISCONNECTED
            logger.info(f"Retrying change feed in {self.retry_delay_ms / 1000:g}s...")
            if self._stop.wait(self.retry_delay_ms / 1000):
                break
        self.state = FeedState.STOPPED

    def _connect(self) -> None:
        self.state = FeedState.CONNECTING
        self.stats["connect_attempts"] += 1
        logger.info("Attempting change feed connection...")
        self._subscription = self.store.watch_queue(self.handle_changes)
        self.state = FeedState.LISTENING
        logger.info("Change feed listener connected")

    def _listen(self) -> None:
        while not self._stop.wait(self.check_interval):
            if not self._subscription.is_active:
                raise FeedSubscriptionError("Print queue subscription dropped")

    def _close_subscription(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is None:
            return
        try:
            subscription.unsubscribe()
        except Exception as e:
            logger.warning(f"Error closing print queue subscription: {e}")

    def handle_changes(self, changes: list[QueueChange]) -> int:
        """Enqueue every added or modified print queue document.

        Removed documents, including the ones the dispatcher deletes after
        printing, are ignored. Documents that do not decode into an order are
        logged and skipped. Entries the dispatcher already holds, as
        redelivered after a reconnect, are not counted.

        Args:
            changes: One batch of document changes

        Returns:
            int: Number of jobs enqueued
        """
        if not changes:
            logger.debug("No print queue changes in snapshot")
            return 0

        enqueued = 0
        for change in changes:
            self.stats["changes_seen"] += 1
            if change.kind not in ENQUEUED_CHANGE_KINDS:
                continue
            try:
                order = self.decode(change)
            except MalformedJobError as e:
                self.stats["malformed"] += 1
                logger.warning(f"Skipping print queue entry {change.print_id}: {e}")
                continue
            logger.info(f"New order detected: {order.id or order.print_id}")
            if self.dispatcher.enqueue(DispatchJob(order)):
                enqueued += 1

        self.stats["jobs_enqueued"] += enqueued
        return enqueued

    def decode(self, change: QueueChange) -> Order:
        """Decode a print queue document, attaching its id as the print id."""
        return decode_order(change.data, print_id=change.print_id)

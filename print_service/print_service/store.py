"""Firestore access: the print queue and the order collections."""

from collections.abc import Callable
from typing import Any, NamedTuple, Protocol

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from logging_utils.config import get_component_logger

from .config import FirestoreSettings
from .errors import FeedSubscriptionError, PersistenceError
from .schemas import Order, OrderType

logger = get_component_logger("print-service", "store")


class QueueChange(NamedTuple):
    """One document change reported by the print queue feed.

    Attributes:
        kind: ``ADDED``, ``MODIFIED`` or ``REMOVED``.
        print_id: Id of the print queue document.
        data: Document fields, ``None`` when unavailable.
    """

    kind: str
    print_id: str
    data: dict[str, Any] | None


class Subscription(Protocol):
    """Handle of a live change feed subscription."""

    @property
    def is_active(self) -> bool:
        ...

    def unsubscribe(self) -> None:
        ...


class OrderStore(Protocol):
    """Persistence operations the dispatcher and listener rely on."""

    def mark_printed(self, order: Order, printed: bool = True) -> bool:
        """Set the printed flag of an order; return False if the order does not exist."""
        ...

    def delete_queue_entry(self, print_id: str) -> None:
        ...

    def watch_queue(self, on_changes: Callable[[list[QueueChange]], None]) -> Subscription:
        ...


class FirestoreOrderStore:
    """Order store backed by Firestore collections."""

    def __init__(self, client: firestore.Client, settings: FirestoreSettings):
        """Initialize the store.

        Args:
            client: Firestore client
            settings: Collection names
        """
        self._client = client
        self.settings = settings

    @classmethod
    def from_settings(cls, settings: FirestoreSettings) -> "FirestoreOrderStore":
        """Create a store with a client built from the Firestore settings.

        Uses the service account file when one is configured, and the
        application default credentials otherwise.
        """
        if settings.credentials_path:
            client = firestore.Client.from_service_account_json(settings.credentials_path, project=settings.project)
        else:
            client = firestore.Client(project=settings.project)
        logger.info(f"Firestore client ready | project={client.project} | queue={settings.queue_collection}")
        return cls(client, settings)

    def collection_for(self, order_type: OrderType | str) -> str:
        """Return the collection holding orders of the given type."""
        if order_type == OrderType.DINE_IN:
            return self.settings.dine_in_collection
        return self.settings.take_out_collection

    def mark_printed(self, order: Order, printed: bool = True) -> bool:
        """Set ``printed`` on the order's document if it still exists.

        Args:
            order: The order to update
            printed: Flag value to store

        Returns:
            bool: False if the document does not exist

        Raises:
            PersistenceError: If Firestore rejects the read or the update
        """
        collection = self.collection_for(order.order_type)
        if not order.id:
            return False
        ref = self._client.collection(collection).document(order.id)
        try:
            if not ref.get().exists:
                return False
            ref.update({"printed": printed})
        except google_exceptions.NotFound:
            # Deleted between the read and the update
            return False
        except google_exceptions.GoogleAPIError as e:
            raise PersistenceError(f"Failed to update {collection}/{order.id}: {e}") from e
        return True

    def delete_queue_entry(self, print_id: str) -> None:
        """Delete a print queue document.

        Raises:
            PersistenceError: If Firestore rejects the delete
        """
        collection = self.settings.queue_collection
        try:
            self._client.collection(collection).document(print_id).delete()
        except google_exceptions.GoogleAPIError as e:
            raise PersistenceError(f"Failed to delete {collection}/{print_id}: {e}") from e

    def watch_queue(self, on_changes: Callable[[list[QueueChange]], None]) -> Subscription:
        """Subscribe to changes of the print queue collection.

        The first batch lists every document already in the queue as added.

        Args:
            on_changes: Called with each batch of changes, on Firestore's thread

        Returns:
            Subscription: The Firestore watch

        Raises:
            FeedSubscriptionError: If the subscription cannot be opened
        """

        def _on_snapshot(docs, changes, read_time):
            on_changes([QueueChange(change.type.name, change.document.id, change.document.to_dict()) for change in changes])

        try:
            return self._client.collection(self.settings.queue_collection).on_snapshot(_on_snapshot)
        except google_exceptions.GoogleAPIError as e:
            raise FeedSubscriptionError(f"Failed to watch {self.settings.queue_collection}: {e}") from e

"""Test fixtures for the print service tests."""

import threading
import time
from datetime import datetime, timezone

import pytest
from loguru import logger

from print_service.config import Settings
from print_service.dispatcher import DispatchQueue
from print_service.emitter import TicketEmitter
from print_service.errors import PrinterConnectionError
from print_service.schemas import Order


class RecordingSurface:
    """Printable surface that records every command instead of printing."""

    def __init__(self, connected: bool = True, name: str = ""):
        self.connected = connected
        self.name = name
        self.commands: list[tuple] = []
        self.flushed = False

    def is_connected(self) -> bool:
        return self.connected

    def __getattr__(self, command):
        # Formatting commands without a dedicated recorder
        if command in {"align_left", "align_center", "align_right", "bold", "underline", "set_text_normal",
                       "set_text_quad_area", "set_text_size", "new_line", "cut"}:
            return lambda *args: self.commands.append((command, *args))
        raise AttributeError(command)

    def println(self, text: str) -> None:
        self.commands.append(("println", text))

    def left_right(self, left: str, right: str) -> None:
        self.commands.append(("left_right", left, right))

    def flush(self) -> None:
        if not self.connected:
            raise PrinterConnectionError("Printer not connected")
        self.commands.append(("flush",))
        self.flushed = True

    @property
    def lines(self) -> list[str]:
        """Printed text, one entry per println or left/right pair."""
        out = []
        for command in self.commands:
            if command[0] == "println":
                out.append(command[1])
            elif command[0] == "left_right":
                out.append(f"{command[1]}|{command[2]}")
        return out

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


class FakeStore:
    """In-memory order store."""

    def __init__(self, existing: set[str] | None = None):
        self.existing = set(existing or ())
        self.printed: list[tuple[str, bool]] = []
        self.deleted: list[str] = []
        self.mark_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.events: list[tuple] = []
        self.subscriptions: list["FakeSubscription"] = []
        self.watch_errors: list[Exception] = []

    def mark_printed(self, order, printed=True):
        self.events.append(("mark_printed", order.id, printed))
        if self.mark_error:
            raise self.mark_error
        if order.id not in self.existing:
            return False
        self.printed.append((order.id, printed))
        return True

    def delete_queue_entry(self, print_id):
        self.events.append(("delete", print_id))
        if self.delete_error:
            raise self.delete_error
        self.deleted.append(print_id)

    def watch_queue(self, on_changes):
        if self.watch_errors:
            raise self.watch_errors.pop(0)
        subscription = FakeSubscription(on_changes)
        self.subscriptions.append(subscription)
        return subscription


class FakeSubscription:
    """Change feed subscription controlled by the test."""

    def __init__(self, on_changes):
        self.on_changes = on_changes
        self.is_active = True
        self.unsubscribed = False

    def unsubscribe(self):
        self.unsubscribed = True
        self.is_active = False


def wait_for(predicate, timeout: float = 2.0) -> bool:
    """Poll until ``predicate`` is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def settings():
    """Default settings, ignoring any local environment file."""
    return Settings(_env_file=None, timezone="UTC")


@pytest.fixture
def emitter(settings):
    """Ticket emitter using the default settings."""
    return TicketEmitter(settings)


@pytest.fixture
def surface():
    """A connected recording surface."""
    return RecordingSurface()


@pytest.fixture
def fake_store():
    """An empty in-memory store."""
    return FakeStore()


@pytest.fixture
def surfaces():
    """Every surface handed out by ``surface_factory``, in order."""
    return []


@pytest.fixture
def surface_factory(surfaces):
    """Factory creating connected recording surfaces."""

    def factory():
        created = RecordingSurface()
        surfaces.append(created)
        return created

    return factory


@pytest.fixture
def dispatcher(emitter, fake_store, surface_factory):
    """Dispatch queue wired to the recording surfaces and the fake store."""
    queue = DispatchQueue(emitter, fake_store, surface_factory, print_timeout=5)
    yield queue
    queue.shutdown(wait=True)


@pytest.fixture
def log_messages():
    """Collect log messages emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def created_at():
    return datetime(2026, 3, 14, 18, 5, tzinfo=timezone.utc)


@pytest.fixture
def take_out_data(created_at):
    """Raw print queue document for a take-out order."""
    return {
        "id": "order-takeout-1",
        "orderType": "Take Out",
        "isPreorder": False,
        "name": "Jane",
        "phoneNumber": "3067647799",
        "createdAt": created_at,
        "readyTime": 20,
        "paid": True,
        "orderItems": [
            {"name": "Pho", "price": 14.5, "quantity": 1, "kitchenType": "B"},
            {"name": "Spring Roll", "price": 3.0, "quantity": 2, "kitchenType": "A", "appetizer": True},
        ],
        "total": 20.5,
    }


@pytest.fixture
def dine_in_data(created_at):
    """Raw print queue document for a dine-in order."""
    return {
        "id": "order-dinein-1",
        "orderType": "Dine In",
        "tableNumber": 7,
        "guests": 3,
        "staff": {"name": "Linh"},
        "createdAt": {"seconds": int(created_at.timestamp()), "nanoseconds": 0},
        "orderItems": [
            {"name": "Curry", "price": 15.0, "kitchenType": "A"},
            {"name": "Fried Rice", "price": 12.0, "kitchenType": "Z", "togo": True},
        ],
        "total": 27.0,
    }


@pytest.fixture
def take_out_order(take_out_data):
    return Order.model_validate({**take_out_data, "printId": "pq-1"})


@pytest.fixture
def dine_in_order(dine_in_data):
    return Order.model_validate({**dine_in_data, "printId": "pq-2"})


@pytest.fixture
def gate():
    """Event tests use to hold a print in flight."""
    return threading.Event()

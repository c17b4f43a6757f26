"""In-process print queue: one job at a time, strictly in arrival order."""

import threading
import time
from collections import deque
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from enum import Enum

from logging_utils.config import get_component_logger

from .config import get_settings
from .emitter import TicketEmitter
from .errors import PersistenceError, PrintTimeoutError
from .schemas import KitchenType, Order
from .store import OrderStore
from .surface import PrintableSurface

logger = get_component_logger("print-service", "dispatcher")

# Take-out tickets go to both stations, B first
TAKE_OUT_DESTINATIONS = (KitchenType.B.value, KitchenType.A.value)


class TicketKind(str, Enum):
    """What a job prints."""

    FULL = "full"
    TOGO = "togo"


@dataclass
class DispatchJob:
    """An order owned by the print queue until it has been printed or has failed."""

    order: Order
    ticket: TicketKind = TicketKind.FULL

    @property
    def label(self) -> str:
        return self.order.id or self.order.print_id or "<unknown>"

    def destinations(self) -> tuple[str, ...]:
        """Return the destination tag of each ticket to print, in order."""
        if self.ticket == TicketKind.FULL and self.order.is_take_out:
            return TAKE_OUT_DESTINATIONS
        return ("",)


class DispatchQueue:
    """FIFO print queue drained by a single worker.

    ``enqueue`` never waits for printing: it appends the job and, unless a
    drain is already running, starts one on the worker thread. A drain keeps
    taking jobs from the head of the buffer until it is empty, so no two jobs
    are ever printed at the same time. Printer I/O runs on its own single
    thread, which bounds each ticket by the print timeout without ever letting
    two tickets reach the device at once.
    """

    def __init__(
        self,
        emitter: TicketEmitter,
        store: OrderStore,
        surface_factory: Callable[[], PrintableSurface],
        print_timeout: float | None = None,
    ):
        """Initialize the queue.

        Args:
            emitter: Renders tickets
            store: Updates the printed flag and deletes print queue entries
            surface_factory: Creates a fresh surface for each ticket
            print_timeout: Seconds allowed for one ticket, None for no limit
        """
        self.emitter = emitter
        self.store = store
        self.surface_factory = surface_factory
        self.print_timeout = print_timeout

        self._buffer: deque[DispatchJob] = deque()
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._busy = False
        # Print ids buffered or in flight
        self._tracked: set[str] = set()
        self._worker =ThreadPoolExecutor(max_workers=1, thread_name_prefix="print-dispatch")
        self._device = ThreadPoolExecutor(max_workers=1, thread_name_prefix="printer-io")

        self.stats = {"jobs_enqueued": 0, "jobs_printed": 0, "jobs_failed": 0, "start_time": time.time()}

    @classmethod
    def from_settings(cls, store: OrderStore, surface_factory: Callable[[], PrintableSurface]) -> "DispatchQueue":
        settings = get_settings()
        return cls(TicketEmitter(settings), store, surface_factory, print_timeout=settings.printer.timeout_seconds)

    @property
    def pending(self) -> int:
        """Number of jobs waiting in the buffer (the job being printed excluded)."""
        with self._lock:
            return len(self._buffer)

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._busy

    def enqueue(self, job: DispatchJob) -> bool:
        """Append a job to the buffer and make sure a drain is running.

        A job whose print queue entry is already buffered or being printed is
        dropped. The feed redelivers every remaining entry after a reconnect.

        Args:
            job: The job to queue

        Returns:
            bool: False if the job was a duplicate
        """
        print_id = job.order.print_id
        with self._lock:
            if print_id and print_id in self._tracked:
                duplicate = True
            else:
                duplicate = False
                if print_id:
                    self._tracked.add(print_id)
                self._buffer.append(job)
                self.stats["jobs_enqueued"] += 1
                depth = len(self._buffer)
        if duplicate:
            logger.info(f"Ignoring print queue entry {print_id}: already queued")
            return False
        logger.info(f"Queued order {job.label} | ticket={job.ticket.value} | pending={depth}")
        self.drain()
        return True

    def drain(self) -> bool:
        """Start draining the buffer unless a drain is running or there is nothing to do.

        Returns:
            bool: True if this call started a drain
        """
        with self._lock:
            if self._busy or not self._buffer:
                return False
            self._busy = True
        try:
            self._worker.submit(self._drain_loop)
        except RuntimeError:
            # Worker already shut down; nothing will ever drain the buffer
            dropped = self._drop_buffered()
            logger.warning(f"Dispatch queue is shut down, dropping {dropped} queued job(s)")
            return False
        return True

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until the buffer is empty and no job is in flight.

        Returns:
            bool: False if the timeout expired first
        """
        with self._idle:
            return self._idle.wait_for(lambda: not self._busy and not self._buffer, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker threads. Jobs still buffered are dropped."""
        with self._lock:
            dropped = len(self._buffer)
            for job in self._buffer:
                self._tracked.discard(job.order.print_id)
            self._buffer.clear()
        if dropped:
            logger.warning(f"Dropping {dropped} queued job(s) on shutdown")
        self._worker.shutdown(wait=wait)
        self._device.shutdown(wait=wait)
        self._log_status()

    def _drain_loop(self) -> None:
        while True:
            with self._lock:
                if not self._buffer:
                    self._busy = False
                    self._idle.notify_all()
                    return
                job = self._buffer.popleft()
            try:
                self.process(job)
            except Exception:
                logger.exception(f"Unexpected error while processing order {job.label}")
            finally:
                with self._lock:
                    self._tracked.discard(job.order.print_id)

    def _drop_buffered(self) -> int:
        with self._lock:
            dropped = len(self._buffer)
            for job in self._buffer:
                self._tracked.discard(job.order.print_id)
            self._buffer.clear()
            self._busy = False
            self._idle.notify_all()
        return dropped

    def process(self, job: DispatchJob) -> bool:
        """Print one job and reconcile the outcome with the store.

        The printed flag is written whatever the outcome, and the print queue
        entry is always deleted, so a job is never printed twice from the
        durable queue. Store failures are logged and do not change the
        outcome.

        Args:
            job: The job to print

        Returns:
            bool: True if every ticket printed
        """
        logger.info(f"Printing order {job.label} | ticket={job.ticket.value}")
        succeeded = False
        try:
            for destination in job.destinations():
                self._print_ticket(job, destination)
            succeeded = True
            self.stats["jobs_printed"] += 1
            logger.info(f"Print completed for order {job.label}")
        except Exception as e:
            self.stats["jobs_failed"] += 1
            logger.error(f"Print failed for order {job.label}: {e}")

        try:
            if job.ticket == TicketKind.FULL:
                self._mark_printed(job.order, succeeded)
        finally:
            self._remove_from_queue(job.order, succeeded)
        return succeeded

    def _print_ticket(self, job: DispatchJob, destination: str) -> None:
        future = self._device.submit(self._emit, job, destination)
        try:
            future.result(timeout=self.print_timeout)
        except FutureTimeoutError as e:
            raise PrintTimeoutError(
                f"Ticket {destination or '-'} for order {job.label} did not finish within {self.print_timeout}s"
            ) from e

    def _emit(self, job: DispatchJob, destination: str) -> None:
        surface = self.surface_factory()
        if job.ticket == TicketKind.TOGO:
            self.emitter.emit_togo_ticket(surface, job.order)
        else:
            self.emitter.emit(surface, job.order, destination)

    def _mark_printed(self, order: Order, printed: bool) -> None:
        try:
            if self.store.mark_printed(order, printed):
                logger.info(f"Marked order {order.id} printed={printed}")
            else:
                logger.warning(f"Order {order.id or '<no id>'} not found (may be from order history), printed flag not set")
        except PersistenceError as e:
            logger.error(f"Error updating printed flag for order {order.id}: {e}")
        except Exception:
            logger.exception(f"Unexpected error updating printed flag for order {order.id}")

    def _remove_from_queue(self, order: Order, succeeded: bool) -> None:
        if not order.print_id:
            return
        try:
            self.store.delete_queue_entry(order.print_id)
        except PersistenceError as e:
            logger.error(f"Error deleting print queue entry {order.print_id}: {e}")
            return
        if succeeded:
            logger.info(f"Removed order {order.id} from print queue (printed successfully)")
        else:
            logger.warning(f"Removed order {order.id} from print queue (print failed)")

    def _log_status(self) -> None:
        runtime = time.time() - self.stats["start_time"]
        logger.info(
            f"Queue status | enqueued={self.stats['jobs_enqueued']} | printed={self.stats['jobs_printed']} | failed={self.stats['jobs_failed']} | runtime_seconds={runtime:.2f}"
        )

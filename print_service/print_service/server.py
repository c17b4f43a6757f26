"""FastAPI front door for the print service."""

import hmac
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from logging_utils.config import setup_service_logger

from .config import get_settings
from .dispatcher import DispatchJob, DispatchQueue, TicketKind
from .listener import ChangeFeedListener
from .schemas import Order
from .store import FirestoreOrderStore
from .surface import EscposSurface

AUTH_HEADER = "x-auth-token"

settings = get_settings()
logger = setup_service_logger("print-service", log_level=settings.log_level, log_file=settings.log_file)


class PrintServiceState:
    """Components owned by the running service."""

    def __init__(self) -> None:
        """Initialize empty state; components are created on startup."""
        self.dispatcher: DispatchQueue | None = None
        self.listener: ChangeFeedListener | None = None

    def new_surface(self) -> EscposSurface:
        printer = get_settings().printer
        return EscposSurface(printer.device, width=printer.width, profile=printer.profile)

    def printer_connected(self) -> bool:
        return self.new_surface().is_connected()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage the lifecycle of the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    current = get_settings()
    store = FirestoreOrderStore.from_settings(current.firestore)
    state.dispatcher = DispatchQueue.from_settings(store, state.new_surface)
    state.listener = ChangeFeedListener(store, state.dispatcher, retry_delay_ms=current.feed_retry_delay_ms)
    state.listener.start()
    logger.info(f"Print server running on {current.server.host}:{current.server.port}")

    yield  # FastAPI will run the application here

    logger.info("Shutting down print service...")
    state.listener.stop(timeout=5)
    state.dispatcher.shutdown(wait=False)
    logger.info("Shutdown complete")


app = FastAPI(title="Print Service", lifespan=lifespan)
state = PrintServiceState()


@app.middleware("http")
async def require_auth_token(request: Request, call_next):
    """Reject every request that does not carry the shared secret."""
    token = request.headers.get(AUTH_HEADER, "")
    if not hmac.compare_digest(token.encode(), get_settings().auth_token.encode()):
        logger.warning(f"Rejected unauthenticated request {request.method} {request.url.path}")
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})
    return await call_next(request)


def _require_dispatcher() -> DispatchQueue:
    if state.dispatcher is None:
        raise HTTPException(status_code=503, detail="Service unavailable")
    return state.dispatcher


@app.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy"}


@app.get("/health/ready")
async def readiness_check():
    """Report change feed, printer and queue status."""
    feed = state.listener.state.value if state.listener else "stopped"
    printer_ok = state.printer_connected()
    ready = feed == "listening" and printer_ok
    queue = {"pending": state.dispatcher.pending, "busy": state.dispatcher.busy} if state.dispatcher else None
    return {"status": "ready" if ready else "not_ready", "feed": feed, "printer": printer_ok, "queue": queue}


def _enqueue(order: Order, ticket: TicketKind) -> JSONResponse:
    dispatcher = _require_dispatcher()
    # Submitted orders are reprints: they never own a print queue document
    order = order.model_copy(update={"print_id": None})
    dispatcher.enqueue(DispatchJob(order, ticket))
    return JSONResponse(
        status_code=202,
        content={"status": "queued", "order_id": order.id, "ticket": ticket.value, "pending": dispatcher.pending},
    )


@app.post("/orders/print", status_code=202)
async def print_order(order: Order):
    """Queue a full reprint of an order.

    Args:
        order (Order): The order to print

    Returns:
        dict: Queue status and order ID
    """
    logger.info(f"Received print request for order {order.id}")
    return _enqueue(order, TicketKind.FULL)


@app.post("/orders/print/togo", status_code=202)
async def print_togo_ticket(order: Order):
    """Queue a togo-only ticket for an order.

    Args:
        order (Order): The order whose togo items are printed

    Returns:
        dict: Queue status and order ID
    """
    logger.info(f"Received togo ticket request for order {order.id}")
    return _enqueue(order, TicketKind.TOGO)

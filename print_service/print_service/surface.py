"""Printable surfaces the ticket emitter draws on."""

import os
from typing import Protocol

from escpos.printer import Dummy
from logging_utils.config import get_component_logger

from .errors import PrinterConnectionError

logger = get_component_logger("print-service", "printer")


class PrintableSurface(Protocol):
    """Sequential, append-only formatting target for one ticket."""

    def is_connected(self) -> bool:
        ...

    def align_left(self) -> None:
        ...

    def align_center(self) -> None:
        ...

    def align_right(self) -> None:
        ...

    def bold(self, enabled: bool = True) -> None:
        ...

    def underline(self, enabled: bool = True) -> None:
        ...

    def set_text_normal(self) -> None:
        ...

    def set_text_quad_area(self) -> None:
        ...

    def set_text_size(self, width: int, height: int) -> None:
        ...

    def println(self, text: str) -> None:
        ...

    def left_right(self, left: str, right: str) -> None:
        ...

    def new_line(self) -> None:
        ...

    def cut(self) -> None:
        ...

    def flush(self) -> None:
        """Send everything buffered so far to the device."""
        ...


class EscposSurface:
    """ESC/POS surface for a printer exposed as a device file.

    Commands are rendered by python-escpos into an in-memory ``Dummy``
    printer and written to the device in one go on ``flush``, so a ticket is
    either sent whole or fails before any byte reaches the printer.

    Attributes:
        device: Path of the printer device, e.g. ``/dev/usb/lp0``.
        width: Characters per line at normal text size.
    """

    def __init__(self, device: str, width: int = 48, profile: str | None = None):
        """Initialize the surface.

        Args:
            device: Path of the printer device
            width: Characters per line at normal text size
            profile: Optional python-escpos capability profile
        """
        self.device = device
        self.width = width
        self._buffer = Dummy(profile=profile) if profile else Dummy()
        self._columns = width

    def is_connected(self) -> bool:
        return os.path.exists(self.device) and os.access(self.device, os.W_OK)

    def align_left(self) -> None:
        self._buffer.set(align="left")

    def align_center(self) -> None:
        self._buffer.set(align="center")

    def align_right(self) -> None:
        self._buffer.set(align="right")

    def bold(self, enabled: bool = True) -> None:
        self._buffer.set(bold=enabled)

    def underline(self, enabled: bool = True) -> None:
        self._buffer.set(underline=1 if enabled else 0)

    def set_text_normal(self) -> None:
        self._buffer.set(normal_textsize=True)
        self._columns = self.width

    def set_text_quad_area(self) -> None:
        self._buffer.set(double_width=True, double_height=True)
        self._columns = self.width // 2

    def set_text_size(self, width: int, height: int) -> None:
        self._buffer.set(custom_size=True, width=width, height=height)
        self._columns = self.width // width

    def println(self, text: str) -> None:
        self._buffer.textln(text)

    def left_right(self, left: str, right: str) -> None:
        gap = self._columns - len(left) - len(right)
        self._buffer.textln(f"{left}{' ' * max(gap, 1)}{right}")

    def new_line(self) -> None:
        self._buffer.ln()

    def cut(self) -> None:
        self._buffer.cut()

    @property
    def output(self) -> bytes:
        """Bytes buffered and not yet flushed."""
        return self._buffer.output

    def flush(self) -> None:
        data = self._buffer.output
        try:
            with open(self.device, "wb") as printer:
                printer.write(data)
        except OSError as e:
            raise PrinterConnectionError(f"Failed to write to printer {self.device}: {e}") from e
        logger.debug(f"Sent {len(data)} bytes to {self.device}")
        self._buffer.clear()

"""Render orders onto a printable surface, one ticket per call."""

from logging_utils.config import get_component_logger

from .config import Settings, get_settings
from .errors import PrinterConnectionError
from .formatter import (
    APPETIZERS,
    TOGO_ITEMS,
    Totals,
    compute_totals,
    format_date,
    format_money,
    format_phone,
    format_timestamp,
    format_weekday_time,
    get_togo_items,
    group_by_destination,
    normalize_items,
    sum_togo_total,
)
from .schemas import ItemOption, NormalizedItem, Order
from .surface import PrintableSurface

logger = get_component_logger("print-service", "emitter")

RULE = "-" * 32
TOTALS_RULE = "-" * 28

SECTION_BANNERS = {
    APPETIZERS: "Appetizers",
    TOGO_ITEMS: "TO GO",
}


def _percent(rate: float) -> str:
    return f"{rate * 100:g}%"


def _option_label(option: ItemOption) -> str:
    return f"{option.quantity}x {option.name}" if option.quantity and option.quantity > 1 else option.name


def _option_price(option: ItemOption) -> str:
    if not option.price or option.price <= 0:
        return ""
    amount = option.price * option.quantity if option.quantity else option.price
    return f"+{format_money(amount)}"


def _surcharge(price: float) -> str:
    return f"+{format_money(price)}" if price > 0 else ""


class TicketEmitter:
    """Drives a printable surface through the sections of a receipt ticket."""

    def __init__(self, settings: Settings | None = None):
        """Initialize the emitter.

        Args:
            settings: Restaurant details, tax rates and option labels
        """
        self.settings = settings or get_settings()

    def emit(self, surface: PrintableSurface, order: Order, destination: str = "") -> None:
        """Print one full ticket for an order.

        Args:
            surface: Where the ticket is drawn
            order: The order to print
            destination: Ticket copy label ("A", "B" or empty)

        Raises:
            PrinterConnectionError: If the surface is not connected; nothing is printed
        """
        self._ensure_connected(surface)

        sections = group_by_destination(normalize_items(order.items, self.settings))

        self._print_restaurant_header(surface, order)
        self._print_order_type_header(surface, order, destination)
        self._print_preorder_info(surface, order, destination)
        self._print_order_details(surface, order)
        self._print_sections(surface, sections)
        self._print_totals(surface, compute_totals(order, tax=self.settings.tax))
        self._print_footer(surface, order, destination)

        surface.cut()
        surface.flush()
        logger.debug(f"Emitted ticket for order {order.id} destination={destination or '-'}")

    def emit_togo_ticket(self, surface: PrintableSurface, order: Order) -> None:
        """Print a short ticket listing only the togo items of an order.

        Totals are computed from the togo items themselves; a tax breakdown
        carried by the order covers the whole order and is not used here.

        Args:
            surface: Where the ticket is drawn
            order: The order whose togo items are printed

        Raises:
            PrinterConnectionError: If the surface is not connected; nothing is printed
        """
        self._ensure_connected(surface)

        togo_items = get_togo_items(normalize_items(order.items, self.settings))
        # Priced from the raw items so that options folded into names still count
        subtotal = sum_togo_total(get_togo_items(order.items))

        surface.align_center()
        surface.set_text_quad_area()
        surface.bold(True)
        surface.println(self.settings.restaurant.name)
        surface.new_line()

        if order.table_number:
            surface.set_text_size(2, 2)
            surface.bold(False)
            surface.println(f"TO GO: {order.table_number}")
            surface.new_line()

        surface.set_text_normal()
        surface.println(RULE)

        surface.align_left()
        for item in togo_items:
            self._print_item(surface, item)

        self._print_totals(surface, compute_totals(None, subtotal, tax=self.settings.tax))
        surface.new_line()

        surface.cut()
        surface.flush()
        logger.debug(f"Emitted togo ticket for order {order.id} with {len(togo_items)} item(s)")

    def _ensure_connected(self, surface: PrintableSurface) -> None:
        if not surface.is_connected():
            raise PrinterConnectionError("Printer not connected")

    def _print_section_banner(self, surface: PrintableSurface, title: str) -> None:
        surface.align_center()
        surface.set_text_quad_area()
        surface.bold(True)
        surface.println(f"---- {title} ----")
        surface.align_left()
        surface.set_text_normal()
        surface.new_line()

    def _print_restaurant_header(self, surface: PrintableSurface, order: Order) -> None:
        if order.paid:
            surface.align_center()
            surface.set_text_size(2, 2)
            surface.println("Paid")
            surface.new_line()
        surface.align_center()
        surface.set_text_quad_area()
        surface.bold(True)
        surface.println(self.settings.restaurant.name)
        surface.new_line()

    def _print_order_type_header(self, surface: PrintableSurface, order: Order, destination: str) -> None:
        surface.set_text_size(2, 2)
        surface.bold(False)

        if order.is_take_out and not order.is_preorder:
            surface.println(f"*Take Out {destination}*")
            surface.new_line()
        elif order.table_number:
            surface.println(f"Table: {order.table_number}")

    def _print_preorder_info(self, surface: PrintableSurface, order: Order, destination: str) -> None:
        if not order.is_preorder:
            return

        surface.set_text_quad_area()
        surface.println(f"***Pre-Order {destination}***")

        if order.preorder_time is not None:
            surface.println(format_date(order.preorder_time, self.settings.timezone))
            surface.println(format_weekday_time(order.preorder_time, self.settings.timezone))
        else:
            surface.new_line()
            surface.new_line()

        surface.set_text_normal()

    def _print_order_details(self, surface: PrintableSurface, order: Order) -> None:
        surface.set_text_normal()
        surface.align_left()

        if order.staff_name:
            surface.println(f"Staff: {order.staff_name}")
        if order.is_dine_in and order.guests:
            surface.println(f"Guests: {order.guests}")
        if order.created_at is not None:
            surface.println(f"Ordered At: {format_timestamp(order.created_at, self.settings.timezone)}")
        if not order.is_preorder and order.ready_time and not order.is_dine_in:
            surface.println(f"Ready in: {order.ready_time} mins")

        surface.set_text_quad_area()
        surface.bold(False)

        if order.is_take_out:
            if order.name:
                surface.println(f"Customer: {order.name}")
            if order.phone_number:
                surface.println(f"Phone: {format_phone(order.phone_number)}")

        surface.set_text_normal()
        surface.println(RULE)

    def _print_item(self, surface: PrintableSurface, item: NormalizedItem) -> None:
        item_total = item.price * item.quantity

        surface.align_left()
        surface.bold(True)
        surface.set_text_quad_area()
        surface.println(item.display_name)
        surface.new_line()
        surface.set_text_normal()
        surface.bold(True)

        for option in item.options:
            surface.left_right(f"   • {_option_label(option)}", _option_price(option))
            surface.new_line()

        for extra in item.extras:
            surface.left_right(f"   + Add Extra: {extra.description.upper()}", _surcharge(extra.price))
            surface.new_line()

        for change in item.changes:
            surface.left_right(
                f"   + Change: {change.from_.upper()} -->> {change.to.upper()}", _surcharge(change.price)
            )
            surface.new_line()

        if item.instructions:
            surface.println(f'   * Note: "{item.instructions}"'.upper())

        surface.align_right()
        surface.set_text_normal()
        surface.bold(True)
        surface.println(format_money(item_total) if item_total > 0 else "")
        surface.set_text_normal()

    def _print_sections(self, surface: PrintableSurface, sections: list) -> None:
        for section in sections:
            banner = SECTION_BANNERS.get(section.label)
            if banner:
                self._print_section_banner(surface, banner)

            for item in section.items:
                self._print_item(surface, item)

            if section.label == APPETIZERS:
                surface.set_text_normal()
                surface.align_left()
                surface.bold(True)
                surface.println(RULE)

    def _print_totals(self, surface: PrintableSurface, totals: Totals) -> None:
        tax = self.settings.tax
        surface.println(RULE)
        surface.align_right()
        surface.bold(False)
        surface.println(f"Subtotal: {format_money(totals.subtotal)}")
        surface.println(f"PST ({_percent(tax.pst_rate)}): {format_money(totals.pst)}")
        surface.println(f"GST ({_percent(tax.gst_rate)}): {format_money(totals.gst)}")
        surface.println(TOTALS_RULE)
        surface.set_text_quad_area()
        surface.println(f"TOTAL: {format_money(totals.grand_total)}")
        surface.set_text_normal()
        surface.new_line()

    def _print_footer(self, surface: PrintableSurface, order: Order, destination: str) -> None:
        restaurant = self.settings.restaurant
        surface.align_center()
        surface.underline(True)
        surface.println("Thank you! Please come again!")
        surface.println(restaurant.address)
        surface.println(restaurant.phone)
        surface.underline(False)
        surface.new_line()

        surface.set_text_size(2, 2)
        surface.bold(False)

        if order.is_take_out:
            label = "Pre-Order" if order.is_preorder else "Take Out"
            surface.println(f"*{label} {destination}*")
        elif order.table_number:
            surface.println(f"Table: {order.table_number}")

        surface.new_line()

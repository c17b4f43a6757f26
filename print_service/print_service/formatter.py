"""Pure helpers that turn a raw order into printable pieces."""

import re
from datetime import datetime
from typing import Any, Callable, NamedTuple
from zoneinfo import ZoneInfo

from .config import Settings, TaxSettings, get_settings
from .schemas import ItemOption, KitchenType, NormalizedItem, Order, OrderItem, TaxBreakdown

APPETIZERS = "Appetizers"
TOGO_ITEMS = "Togo Items"
OTHER_ITEMS = "Other Items"

# Kitchen sections are printed in this order, not alphabetically
KITCHEN_SECTION_ORDER = (KitchenType.A, KitchenType.Z, KitchenType.B, KitchenType.C)


class Section(NamedTuple):
    """A labelled group of items printed together."""

    label: str
    items: list[NormalizedItem]


class Totals(NamedTuple):
    """Subtotal and taxes for a ticket."""

    subtotal: float
    pst: float
    gst: float
    grand_total: float

    def as_breakdown(self) -> TaxBreakdown:
        """Return these totals in the shape of an upstream tax breakdown."""
        return TaxBreakdown(total=self.subtotal, pst=self.pst, gst=self.gst, grand_total=self.grand_total)


def _first(options: list[ItemOption], predicate: Callable[[ItemOption], bool]) -> ItemOption | None:
    return next((opt for opt in options if predicate(opt)), None)


def _without(options: list[ItemOption], consumed: ItemOption) -> list[ItemOption]:
    return [opt for opt in options if opt is not consumed]


def display_name(name: str, quantity: int) -> str:
    return f"{quantity}x {name}" if quantity > 1 else name


def normalize_item(item: OrderItem, settings: Settings | None = None) -> NormalizedItem:
    """Fold well-known options into the item name and compute its display name.

    Up to three rules run in order, each consuming the first matching option
    still left on the item:

    1. Special item: the first option that is not an egg roll or spring roll
       is appended as ``/{option}``.
    2. An egg roll or spring roll with quantity unset or 1 becomes ``/ER`` or ``/SP``.
    3. Rice or noodles become ``/Rice`` or ``/ND``.

    Unconsumed options stay on the item and are printed beneath it. The
    source item is not modified.

    Args:
        item: The ordered item
        settings: Settings holding the option labels and special item marker

    Returns:
        NormalizedItem: Copy of the item with rewritten name and display name
    """
    settings = settings or get_settings()
    labels = settings.option_names
    name = item.name
    options = list(item.options)

    if options and name == settings.special_item:
        main_option = _first(options, lambda opt: opt.name not in (labels.egg_roll, labels.spring_roll))
        if main_option is not None:
            name = f"{name}/{main_option.name}"
            options = _without(options, main_option)

    roll_option = _first(
        options,
        lambda opt: opt.name in (labels.egg_roll, labels.spring_roll) and (not opt.quantity or opt.quantity <= 1),
    )
    if roll_option is not None:
        name = f"{name}/{'ER' if roll_option.name == labels.egg_roll else 'SP'}"
        options = _without(options, roll_option)

    starch_option = _first(options, lambda opt: opt.name in (labels.rice, labels.noodles))
    if starch_option is not None:
        name = f"{name}/{'Rice' if starch_option.name == labels.rice else 'ND'}"
        options = _without(options, starch_option)

    return NormalizedItem(
        **{**dict(item), "name": name, "options": options, "display_name": display_name(name, item.quantity)}
    )


def normalize_items(items: Any, settings: Settings | None = None) -> list[NormalizedItem]:
    """Normalize every item of an order. Anything but a list yields no items."""
    if not isinstance(items, list):
        return []
    return [normalize_item(item, settings) for item in items]


def _kitchen_of(item: OrderItem) -> KitchenType | None:
    try:
        return KitchenType(item.kitchen_type)
    except ValueError:
        return None


def is_togo(item: OrderItem) -> bool:
    return item.togo and not item.appetizer


def get_togo_items(items: list) -> list:
    """Return the items boxed separately, in order."""
    return [item for item in items if is_togo(item)]


def group_by_destination(items: list[NormalizedItem], exclude_togo: bool = False) -> list[Section]:
    """Partition items into the ticket sections they are printed under.

    Sections come out in a fixed order: Appetizers, Kitchen A, Kitchen Z,
    Kitchen B, Kitchen C, then Togo Items unless ``exclude_togo``. An
    appetizer always lands in Appetizers; otherwise a togo item lands in Togo
    Items and anything else under its kitchen. Non-togo items without a known
    kitchen are collected under Other Items, right after Kitchen C. Empty
    sections are dropped.

    Args:
        items: Normalized items
        exclude_togo: Leave togo items out entirely

    Returns:
        list[Section]: Non-empty sections in print order
    """
    sections = [Section(APPETIZERS, [item for item in items if item.appetizer])]

    course = [item for item in items if not item.appetizer and not item.togo]
    for kitchen in KITCHEN_SECTION_ORDER:
        sections.append(Section(f"Kitchen {kitchen.value}", [item for item in course if _kitchen_of(item) == kitchen]))
    sections.append(Section(OTHER_ITEMS, [item for item in course if _kitchen_of(item) is None]))

    if not exclude_togo:
        sections.append(Section(TOGO_ITEMS, get_togo_items(items)))

    return [section for section in sections if section.items]


def compute_totals(
    order: Order | None, explicit_subtotal: float | None = None, tax: TaxSettings | None = None
) -> Totals:
    """Work out subtotal, PST, GST and grand total for a ticket.

    A tax breakdown carried by the order wins when its grand total is a
    number; missing parts of it fall back to ``explicit_subtotal`` (or 0) for
    the subtotal and 0 for the taxes. Otherwise taxes are computed from
    ``explicit_subtotal``, then ``order.total``, then 0.

    Args:
        order: Order whose breakdown or total is used, if any
        explicit_subtotal: Subtotal to use instead of the order total
        tax: Tax rates, defaulting to the configured ones

    Returns:
        Totals: The ticket totals
    """
    breakdown = order.tax_breakdown if order is not None else None
    if breakdown is not None and breakdown.grand_total is not None:
        if breakdown.total is not None:
            subtotal = breakdown.total
        else:
            subtotal = explicit_subtotal if explicit_subtotal is not None else 0.0
        return Totals(subtotal, breakdown.pst or 0.0, breakdown.gst or 0.0, breakdown.grand_total)

    tax = tax or get_settings().tax
    if explicit_subtotal is not None:
        subtotal = explicit_subtotal
    elif order is not None and order.total is not None:
        subtotal = order.total
    else:
        subtotal = 0.0
    pst = subtotal * tax.pst_rate
    gst = subtotal * tax.gst_rate
    return Totals(subtotal, pst, gst, subtotal + pst + gst)


def sum_togo_total(togo_items: Any) -> float:
    """Sum the prices of togo items including options, extras and changes.

    Option prices are added once each, regardless of the option quantity.
    """
    if not isinstance(togo_items, list):
        return 0.0

    total = 0.0
    for item in togo_items:
        item_total = (item.price or 0) * (item.quantity or 1)
        item_total += sum(opt.price or 0 for opt in item.options)
        item_total += sum(extra.price or 0 for extra in item.extras)
        item_total += sum(chg.price or 0 for chg in item.changes)
        total += item_total
    return total


def format_money(amount: float) -> str:
    return f"${amount:.2f}"


def format_phone(phone: str | None) -> str:
    """Format a phone number as ``306 764-7799`` (or ``764-7799`` without area code)."""
    digits = re.sub(r"\D", "", phone or "")
    if not digits:
        return ""
    if len(digits) > 7:
        return f"{digits[:-7]} {digits[-7:-4]}-{digits[-4:]}"
    return f"{digits[:-4]}-{digits[-4:]}"


def local_time(moment: datetime, tz_name: str | None = None) -> datetime:
    return moment.astimezone(ZoneInfo(tz_name or get_settings().timezone))


def _clock(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    return f"{hour:02d}:{moment.minute:02d} {'a.m.' if moment.hour < 12 else 'p.m.'}"


def format_date(moment: datetime | None, tz_name: str | None = None) -> str:
    """``Oct 18, 2026``"""
    if moment is None:
        return ""
    moment = local_time(moment, tz_name)
    return f"{moment:%b} {moment.day}, {moment.year}"


def format_weekday_time(moment: datetime | None, tz_name: str | None = None) -> str:
    """``Sun 07:30 p.m.``"""
    if moment is None:
        return ""
    moment = local_time(moment, tz_name)
    return f"{moment:%a} {_clock(moment)}"


def format_timestamp(moment: datetime | None, tz_name: str | None = None) -> str:
    """``Oct 18, 2026, 07:30 p.m.``"""
    if moment is None:
        return ""
    return f"{format_date(moment, tz_name)}, {_clock(local_time(moment, tz_name))}"

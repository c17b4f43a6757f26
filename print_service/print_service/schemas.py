"""Pydantic models for orders read from the print queue."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, model_validator

from .errors import MalformedJobError


class OrderType(str, Enum):
    """Order types as labelled in the order collections."""

    DINE_IN = "Dine In"
    TAKE_OUT = "Take Out"

    @classmethod
    def _missing_(cls, value):
        # "DineIn", "dine_in" and "TAKE-OUT" name the same types
        if isinstance(value, str):
            key = "".join(ch for ch in value.lower() if ch.isalnum())
            for member in cls:
                if member.value.replace(" ", "").lower() == key:
                    return member
        return None


class KitchenType(str, Enum):
    """Preparation stations an item can be routed to."""

    A = "A"
    B = "B"
    C = "C"
    Z = "Z"


class EpochTimestamp(BaseModel):
    """Plain ``{seconds, nanoseconds}`` timestamp.

    This is how a Firestore timestamp looks once it has been through JSON,
    either with or without the leading underscores of the admin SDK.
    """

    seconds: int = Field(validation_alias=AliasChoices("seconds", "_seconds"))
    nanoseconds: int = Field(0, validation_alias=AliasChoices("nanoseconds", "_nanoseconds"))

    def to_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.seconds, tz=timezone.utc) + timedelta(
            microseconds=self.nanoseconds // 1000
        )


def to_datetime(value: Any) -> datetime | None:
    """Normalize any accepted timestamp representation to an aware datetime.

    Accepts a ``datetime`` (the Firestore client returns a subclass of it),
    an ISO-8601 string, an ``EpochTimestamp`` or a mapping with ``seconds``
    and ``nanoseconds``. Anything unrecognised yields ``None`` so that a bad
    timestamp only blanks one ticket line.

    Args:
        value: Raw timestamp value

    Returns:
        datetime | None: Timezone-aware datetime, naive values taken as UTC
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, EpochTimestamp):
        return value.to_datetime()
    if isinstance(value, dict):
        try:
            return EpochTimestamp.model_validate(value).to_datetime()
        except ValidationError:
            return None
    if isinstance(value, str) and value:
        try:
            return to_datetime(datetime.fromisoformat(value))
        except ValueError:
            return None
    return None


def _list_or_empty(value: Any) -> Any:
    return value if isinstance(value, list) else []


def _none_as(default: Any):
    return lambda value: default if value is None else value


def _optional_text(value: Any) -> Any:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _text_or_empty(value: Any) -> Any:
    text = _optional_text(value)
    return "" if text is None else text


def _number_or_none(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


Timestamp = Annotated[datetime | None, BeforeValidator(to_datetime)]
Money = Annotated[float, BeforeValidator(_none_as(0.0))]
Flag = Annotated[bool, BeforeValidator(_none_as(False))]
OptionalText = Annotated[str | None, BeforeValidator(_optional_text)]
NumberOrNone = Annotated[float | None, BeforeValidator(_number_or_none)]


class ItemOption(BaseModel):
    """A selected option of an item, e.g. a side or a size."""

    model_config = ConfigDict(extra="ignore")

    name: str
    quantity: int | None = None
    price: float | None = None


class ItemExtra(BaseModel):
    """A paid addition to an item."""

    model_config = ConfigDict(extra="ignore")

    description: str = ""
    price: Money = 0.0


class ItemChange(BaseModel):
    """A substitution of one ingredient for another."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    from_: str = Field("", alias="from")
    to: str = ""
    price: Money = 0.0


class OrderItem(BaseModel):
    """One ordered product line.

    Attributes:
        name (str): Product name, rewritten by normalization.
        quantity (int): Units ordered, at least 1.
        price (float): Price per unit.
        kitchen_type (KitchenType | str | None): Station that prepares the item.
        appetizer (bool): Printed in the Appetizers section.
        togo (bool): Boxed separately from the dine-in course.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = ""
    quantity: Annotated[int, BeforeValidator(_none_as(1))] = Field(1, ge=1)
    price: Money = 0.0
    kitchen_type: KitchenType | str | None = Field(None, alias="kitchenType", union_mode="left_to_right")
    appetizer: Flag = False
    togo: Flag = False
    options: Annotated[list[ItemOption], BeforeValidator(_list_or_empty)] = []
    extras: Annotated[list[ItemExtra], BeforeValidator(_list_or_empty)] = []
    changes: Annotated[list[ItemChange], BeforeValidator(_list_or_empty)] = []
    instructions: OptionalText = None


class NormalizedItem(OrderItem):
    """An item after option rewriting, ready to be printed."""

    display_name: str


class TaxBreakdown(BaseModel):
    """Tax figures precomputed upstream. Only numeric values are trusted."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total: NumberOrNone = None
    pst: NumberOrNone = None
    gst: NumberOrNone = None
    grand_total: NumberOrNone = Field(None, alias="grandTotal")


class Order(BaseModel):
    """Snapshot of a customer order at the moment it was queued for printing.

    Attributes:
        id (str): Document id in the dine-in or take-out collection.
        order_type (OrderType | str): Dine In or Take Out; other labels are kept verbatim.
        print_id (str | None): Document id of the print queue entry, if any.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Annotated[str, BeforeValidator(_text_or_empty)] = ""
    order_type: OrderType | str = Field(alias="orderType", union_mode="left_to_right")
    is_preorder: Flag = Field(False, alias="isPreorder")
    table_number: OptionalText = Field(None, alias="tableNumber")
    name: OptionalText = None
    phone_number: OptionalText = Field(None, alias="phoneNumber")
    guests: int | None = None
    staff_name: OptionalText = Field(None, alias="staffName")
    created_at: Timestamp = Field(None, alias="createdAt")
    preorder_time: Timestamp = Field(None, alias="preorderTime")
    ready_time: int | None = Field(None, alias="readyTime")
    paid: Flag = False
    items: Annotated[list[OrderItem], BeforeValidator(_list_or_empty)] = Field(
        [], validation_alias=AliasChoices("items", "orderItems")
    )
    total: NumberOrNone = None
    tax_breakdown: TaxBreakdown | None = Field(
        None, validation_alias=AliasChoices("tax_breakdown", "taxBreakdown", "taxBreakDown", "taxbreakdown")
    )
    print_id: OptionalText = Field(None, alias="printId")

    @model_validator(mode="before")
    @classmethod
    def _flatten_staff(cls, data: Any) -> Any:
        """Accept the staff member as ``staff: {name}``."""
        if isinstance(data, dict) and "staffName" not in data and "staff_name" not in data:
            staff = data.get("staff")
            if isinstance(staff, dict) and staff.get("name"):
                data = {**data, "staffName": staff["name"]}
        return data

    @property
    def is_take_out(self) -> bool:
        return self.order_type == OrderType.TAKE_OUT

    @property
    def is_dine_in(self) -> bool:
        return self.order_type == OrderType.DINE_IN


def decode_order(data: Any, print_id: str | None = None) -> Order:
    """Decode a print queue document into an Order.

    Args:
        data: Document fields
        print_id: Id of the print queue document, attached to the order

    Returns:
        Order: The decoded order

    Raises:
        MalformedJobError: If the document is not an order
    """
    if not isinstance(data, dict):
        raise MalformedJobError(f"Print queue entry {print_id} has no fields", print_id=print_id)
    if print_id is not None:
        data = {**data, "printId": print_id}
    try:
        return Order.model_validate(data)
    except ValidationError as e:
        raise MalformedJobError(
            f"Print queue entry {print_id} is not a valid order: {e.error_count()} error(s)", print_id=print_id
        ) from e

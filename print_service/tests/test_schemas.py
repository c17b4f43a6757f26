"""Tests for order decoding."""

from datetime import datetime, timezone

import pytest

from print_service import __version__
from print_service.errors import MalformedJobError
from print_service.schemas import EpochTimestamp, KitchenType, Order, OrderItem, OrderType, decode_order, to_datetime


def test_version():
    assert __version__ == "0.1.0"


def test_decode_take_out_order(take_out_data, created_at):
    """Test decoding a take-out document with camelCase fields."""
    order = decode_order(take_out_data, print_id="pq-9")

    assert order.id == "order-takeout-1"
    assert order.order_type is OrderType.TAKE_OUT
    assert order.is_take_out and not order.is_dine_in
    assert order.phone_number == "3067647799"
    assert order.created_at == created_at
    assert order.print_id == "pq-9"
    assert [item.name for item in order.items] == ["Pho", "Spring Roll"]
    assert order.items[0].kitchen_type is KitchenType.B
    assert order.items[1].appetizer is True


def test_decode_dine_in_order(dine_in_data, created_at):
    """Test staff nesting, numeric table numbers and epoch timestamps."""
    order = decode_order(dine_in_data)

    assert order.order_type is OrderType.DINE_IN
    assert order.table_number == "7"
    assert order.staff_name == "Linh"
    assert order.created_at == created_at
    assert order.print_id is None


@pytest.mark.parametrize(
    "value",
    [
        datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        datetime(2026, 1, 2, 3, 4, 5),
        {"seconds": 1767323045, "nanoseconds": 0},
        {"_seconds": 1767323045, "_nanoseconds": 0},
        EpochTimestamp(seconds=1767323045),
        "2026-01-02T03:04:05Z",
    ],
)
def test_to_datetime_accepts_both_representations(value):
    """Test that rich and epoch timestamps normalize to the same instant."""
    assert to_datetime(value) == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_to_datetime_keeps_sub_second_precision():
    moment = to_datetime({"seconds": 10, "nanoseconds": 250_000_000})
    assert moment.microsecond == 250_000


@pytest.mark.parametrize("value", [None, "", "not a date", {"minutes": 3}, 42])
def test_to_datetime_unrecognised_values(value):
    assert to_datetime(value) is None


@pytest.mark.parametrize("label", ["Take Out", "TakeOut", "take_out", "TAKE-OUT"])
def test_order_type_spellings(label):
    assert Order.model_validate({"orderType": label}).order_type is OrderType.TAKE_OUT


def test_unknown_order_type_is_kept():
    """Test that unknown order types decode and count as neither dine-in nor take-out."""
    order = Order.model_validate({"orderType": "Delivery"})
    assert order.order_type == "Delivery"
    assert not order.is_take_out and not order.is_dine_in


def test_items_alias_and_non_list_items():
    assert len(Order.model_validate({"orderType": "Dine In", "items": [{"name": "Pho"}]}).items) == 1
    assert Order.model_validate({"orderType": "Dine In", "orderItems": None}).items == []
    assert Order.model_validate({"orderType": "Dine In", "orderItems": "oops"}).items == []


def test_item_defaults_and_nulls():
    """Test that Firestore nulls fall back to defaults."""
    item = OrderItem.model_validate(
        {"name": "Pho", "quantity": None, "price": None, "options": None, "extras": None, "changes": None}
    )
    assert item.quantity == 1
    assert item.price == 0
    assert item.options == [] and item.extras == [] and item.changes == []
    assert item.kitchen_type is None


def test_item_change_from_field():
    item = OrderItem.model_validate({"name": "Pho", "changes": [{"from": "beef", "to": "chicken", "price": 1}]})
    assert item.changes[0].from_ == "beef"
    assert item.changes[0].to == "chicken"


@pytest.mark.parametrize("key", ["taxBreakdown", "taxBreakDown", "taxbreakdown"])
def test_tax_breakdown_aliases(key):
    order = Order.model_validate({"orderType": "Dine In", key: {"total": 10, "pst": 0.6, "gst": 0.5, "grandTotal": 11.1}})
    assert order.tax_breakdown.grand_total == 11.1
    assert order.tax_breakdown.total == 10


def test_tax_breakdown_ignores_non_numeric_values():
    order = Order.model_validate({"orderType": "Dine In", "taxBreakdown": {"grandTotal": "11.10", "pst": True}})
    assert order.tax_breakdown.grand_total is None
    assert order.tax_breakdown.pst is None


def test_decode_order_rejects_documents_without_fields():
    with pytest.raises(MalformedJobError) as exc_info:
        decode_order(None, print_id="pq-empty")
    assert exc_info.value.print_id == "pq-empty"


def test_decode_order_rejects_invalid_orders():
    """Test that a missing order type or a bad item is reported as malformed."""
    with pytest.raises(MalformedJobError):
        decode_order({"id": "x"}, print_id="pq-1")
    with pytest.raises(MalformedJobError):
        decode_order({"orderType": "Dine In", "orderItems": [{"name": "Pho", "quantity": 0}]}, print_id="pq-2")

"""Cart payload tagging and payability."""

from decimal import Decimal

import pytest

from drivebook.core.enums import ClassType
from drivebook.schemas.cart import (
    DrivingLessonItem,
    GeneralItem,
    TicketItem,
    item_kind,
    parse_cart,
    parse_cart_item,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"classType": "driving test"}, ClassType.DRIVING_TEST),
        ({"class_type": "driving_test"}, ClassType.DRIVING_TEST),
        ({"classType": "Driving-Lesson"}, ClassType.DRIVING_LESSON),
        ({"packageDetails": {"pickupLocation": "A"}}, ClassType.DRIVING_LESSON),
        ({"classType": "ticket"}, ClassType.TICKET_CLASS),
        ({"classType": "seminar"}, ClassType.GENERAL),
        ({}, ClassType.GENERAL),
    ],
)
def test_item_kind(payload, expected):
    assert item_kind(payload) == expected


def test_lesson_package_fields_use_camel_case_aliases():
    item = parse_cart_item(
        {
            "id": "pkg",
            "price": "90",
            "classType": "driving lesson",
            "packageDetails": {"pickupLocation": "Main St", "dropoffLocation": "School"},
            "slotDetails": [{"slotId": "s-1", "instructorId": "i-1"}],
        }
    )

    assert isinstance(item, DrivingLessonItem)
    assert item.package_details.pickup_location == "Main St"
    assert item.slot_details[0].slot_id == "s-1"
    assert item.line_total == Decimal("90")


def test_ticket_item_keeps_its_class_reference():
    item = parse_cart_item(
        {"id": "seat", "amount": 40, "classType": "ticket", "ticketClassId": "tc-1"}
    )
    assert isinstance(item, TicketItem)
    assert item.ticket_class_id == "tc-1"


def test_price_falls_back_to_amount_and_quantity_multiplies():
    item = parse_cart_item({"id": "x", "price": 0, "amount": "12.50", "quantity": 2})
    assert isinstance(item, GeneralItem)
    assert item.unit_price == Decimal("12.50")
    assert item.line_total == Decimal("25.00")


@pytest.mark.parametrize(
    "payload",
    [
        {"id": "free", "price": 0},
        {"price": 10},
        {"id": "negative", "price": -5},
        {"id": "bad-quantity", "price": 10, "quantity": 0},
        "not-a-record",
    ],
)
def test_unpayable_records_are_rejected(payload):
    assert parse_cart_item(payload) is None


def test_parse_cart_counts_exclusions():
    items, excluded = parse_cart(
        [
            {"id": "a", "price": 10, "classType": "driving test"},
            {"id": "b", "price": 0},
            {"price": 5, "classType": "driving lesson"},
        ]
    )
    assert [item.kind for item in items] == ["driving_test", "driving_lesson"]
    assert excluded == 1

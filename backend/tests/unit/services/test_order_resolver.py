"""Cart to Order resolution: classification, reuse, appointments, holds."""

from decimal import Decimal
import re

import pytest

from drivebook.core.enums import OrderType, PaymentStatus, SlotStatus
from drivebook.core.exceptions import ForbiddenException, NotFoundException, ValidationException
from drivebook.repositories.cart_repository import CartRepository
from drivebook.repositories.order_repository import OrderRepository
from drivebook.repositories.slot_repository import SlotRepository
from drivebook.schemas.cart import parse_cart
from drivebook.services.order_resolver import (
    OrderResolver,
    build_line_items,
    classify_order_type,
    generate_order_number,
    split_amount,
)

from tests.factories.builders import (
    add_cart_item,
    driving_test_item,
    lesson_package_item,
    make_order,
    make_slot,
    make_ticket_class,
    make_user,
)

pytestmark = pytest.mark.unit


class TestHelpers:
    def test_order_number_format(self):
        assert re.fullmatch(r"1700000000000-[0-9A-Z]{4}", generate_order_number(1700000000000))

    def test_split_amount_puts_remainder_last(self):
        assert split_amount(Decimal("100"), 3) == [
            Decimal("33.33"),
            Decimal("33.33"),
            Decimal("33.34"),
        ]
        assert split_amount(Decimal("120"), 3) == [Decimal("40.00")] * 3
        assert split_amount(Decimal("10"), 0) == []

    @pytest.mark.parametrize(
        "class_types, expected",
        [
            (["driving test"], OrderType.DRIVING_TEST),
            (["driving lesson"], OrderType.DRIVING_LESSON),
            (["driving test", "driving lesson"], OrderType.DRIVINGS),
            (["ticket", "driving test"], OrderType.TICKET_CLASS),
            (["seminar"], OrderType.GENERAL),
        ],
    )
    def test_classification(self, class_types, expected):
        items, _ = parse_cart(
            {"id": f"item-{index}", "price": 10, "classType": class_type}
            for index, class_type in enumerate(class_types)
        )
        assert classify_order_type(items) == expected

    def test_drivings_line_items_share_description(self):
        items, _ = parse_cart(
            [
                {"id": "a", "price": 10, "classType": "driving test", "description": "Road test"},
                {"id": "b", "price": 20, "classType": "driving lesson"},
            ]
        )
        lines = build_line_items(items, OrderType.DRIVINGS)
        assert {line["description"] for line in lines} == {"drivings"}
        assert [line["price"] for line in lines] == [10.0, 20.0]


class TestResolve:
    def test_creates_order_holds_slot_and_clears_cart(self, db):
        user = make_user(db)
        slot = make_slot(db)
        add_cart_item(db, user.id, **driving_test_item(slot))

        resolved = OrderResolver(db).resolve(user.id)

        assert resolved.created
        order = resolved.order
        assert order.order_type == "driving_test"
        assert order.payment_status == "pending"
        assert order.total == Decimal("60.00")
        assert [appointment.slot_id for appointment in order.appointments] == [slot.id]
        held = SlotRepository(db).get_slot(slot.id)
        assert held.status == "pending"
        assert held.student_id == user.id
        assert held.order_id == order.id
        assert CartRepository(db).list_items(user.id) == []

    def test_retry_without_cart_returns_same_pending_order(self, db):
        user = make_user(db)
        add_cart_item(db, user.id, **driving_test_item(make_slot(db)))
        resolver = OrderResolver(db)

        first = resolver.resolve(user.id)
        second = resolver.resolve(user.id)

        assert second.order_id == first.order_id
        assert not second.created

    def test_same_type_cart_reuses_pending_order(self, db):
        user = make_user(db)
        existing = make_order(db, user.id, slots=[make_slot(db)])
        add_cart_item(db, user.id, **driving_test_item(make_slot(db)))

        resolved = OrderResolver(db).resolve(user.id)

        assert resolved.order_id == existing.id
        assert not resolved.created
        assert CartRepository(db).list_items(user.id) == []

    def test_lesson_package_splits_amount_across_slots(self, db):
        user = make_user(db)
        slots = [make_slot(db, start=f"1{index}:00", end=f"1{index}:30") for index in range(3)]
        add_cart_item(db, user.id, **lesson_package_item(slots, price=100))

        order = OrderResolver(db).resolve(user.id).order

        assert order.order_type == "driving_lesson"
        assert [appointment.amount for appointment in order.appointments] == [
            Decimal("33.33"),
            Decimal("33.33"),
            Decimal("33.34"),
        ]
        assert {appointment.pickup_location for appointment in order.appointments} == {"Main St 1"}

    def test_ticket_class_item_becomes_seat_appointment(self, db):
        user = make_user(db)
        ticket_class = make_ticket_class(db)
        add_cart_item(
            db,
            user.id,
            id="class-catalog-1",
            price=40,
            classType="ticket",
            ticketClassId=ticket_class.id,
            date="2026-11-05",
            start="18:00",
            end="21:00",
        )

        order = OrderResolver(db).resolve(user.id).order

        assert order.order_type == "ticket_class"
        [appointment] = order.appointments
        assert appointment.ticket_class_id == ticket_class.id
        assert appointment.slot_id == f"{ticket_class.id}_2026-11-05_18:00_21:00"
        assert appointment.class_id == "class-catalog-1"

    def test_slot_taken_by_someone_else_is_not_stolen(self, db):
        user = make_user(db)
        slot = make_slot(db, status=SlotStatus.PENDING, student_id="01STUDENT00000000000000ZZZ")
        add_cart_item(db, user.id, **driving_test_item(slot))

        resolved = OrderResolver(db).resolve(user.id)

        assert resolved.created
        assert SlotRepository(db).get_slot(slot.id).student_id == "01STUDENT00000000000000ZZZ"

    def test_empty_cart_without_pending_order(self, db):
        user = make_user(db)
        with pytest.raises(ValidationException) as exc_info:
            OrderResolver(db).resolve(user.id)
        assert exc_info.value.code == "CART_EMPTY"

    def test_cart_without_payable_items(self, db):
        user = make_user(db)
        add_cart_item(db, user.id, id="free", price=0, classType="driving test")
        add_cart_item(db, user.id, title="no id or type", price=15)
        with pytest.raises(ValidationException) as exc_info:
            OrderResolver(db).resolve(user.id)
        assert exc_info.value.code == "CART_INVALID"
        assert exc_info.value.details == {"excluded": 2}

    def test_closed_orders_are_not_reused(self, db):
        user = make_user(db)
        make_order(db, user.id, payment_status=PaymentStatus.FAILED)
        add_cart_item(db, user.id, **driving_test_item(make_slot(db)))
        assert OrderResolver(db).resolve(user.id).created

    def test_explicit_order_must_exist_and_belong_to_user(self, db):
        owner = make_user(db)
        stranger = make_user(db)
        order = make_order(db, owner.id)
        resolver = OrderResolver(db)

        assert resolver.resolve(owner.id, order.id).order_id == order.id
        with pytest.raises(ForbiddenException):
            resolver.resolve(stranger.id, order.id)
        with pytest.raises(NotFoundException):
            resolver.resolve(owner.id, "01MISSINGORDER000000000000")

    def test_explicit_failed_order_is_reopened_with_slots_held(self, db):
        user = make_user(db)
        slot = make_slot(db)
        order = make_order(db, user.id, slots=[slot], payment_status=PaymentStatus.FAILED)

        resolved = OrderResolver(db).resolve(user.id, order.id)

        assert resolved.order_id == order.id
        assert not resolved.created
        assert OrderRepository(db).get_order(order.id).payment_status == "pending"
        held = SlotRepository(db).get_slot(slot.id)
        assert held.status == "pending"
        assert held.student_id == user.id
        assert held.order_id == order.id

    def test_explicit_failed_order_defers_to_newer_pending_order(self, db):
        user = make_user(db)
        failed = make_order(db, user.id, payment_status=PaymentStatus.FAILED)
        pending = make_order(db, user.id)

        resolved = OrderResolver(db).resolve(user.id, failed.id)

        assert resolved.order_id == pending.id
        assert OrderRepository(db).get_order(failed.id).payment_status == "failed"

    @pytest.mark.parametrize(
        "payment_status, code",
        [
            (PaymentStatus.COMPLETED, "ORDER_ALREADY_COMPLETED"),
            (PaymentStatus.CANCELLED, "ORDER_NOT_PAYABLE"),
        ],
    )
    def test_explicit_closed_order_cannot_be_paid(self, db, payment_status, code):
        user = make_user(db)
        order = make_order(db, user.id, payment_status=payment_status)

        with pytest.raises(ValidationException) as exc_info:
            OrderResolver(db).resolve(user.id, order.id)

        assert exc_info.value.code == code
        assert OrderRepository(db).get_order(order.id).payment_status == payment_status.value

    def test_user_id_required(self, db):
        with pytest.raises(ValidationException):
            OrderResolver(db).resolve("")

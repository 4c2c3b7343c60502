"""Order reads, status writes and cart clearing."""

import pytest

from drivebook.core.enums import PaymentStatus
from drivebook.core.exceptions import ForbiddenException, NotFoundException
from drivebook.repositories.cart_repository import CartRepository
from drivebook.services.order_service import OrderService

from tests.factories.builders import add_cart_item, make_order, make_slot, make_user

pytestmark = pytest.mark.unit


def test_details_include_appointments(db):
    user = make_user(db)
    slot = make_slot(db)
    order = make_order(db, user.id, slots=[slot])

    details = OrderService(db).get_details(order.id, user.id)

    assert details.id == order.id
    assert [appointment.slot_id for appointment in details.appointments] == [slot.id]


def test_details_check_owner(db):
    user = make_user(db)
    order = make_order(db, user.id)
    service = OrderService(db)
    with pytest.raises(ForbiddenException):
        service.get_details(order.id, "01SOMEONEELSE0000000000000")
    with pytest.raises(NotFoundException):
        service.get_details("01MISSINGORDER000000000000")


def test_update_status_stamps_completion(db):
    user = make_user(db)
    order = make_order(db, user.id)

    updated = OrderService(db).update_status(order.id, PaymentStatus.COMPLETED)

    assert updated.payment_status == "completed"
    assert updated.completed_at is not None


def test_update_status_unknown_order(db):
    with pytest.raises(NotFoundException):
        OrderService(db).update_status("01MISSINGORDER000000000000", PaymentStatus.FAILED)


def test_clear_cart_counts_removed_items(db):
    user = make_user(db)
    add_cart_item(db, user.id, id="a", price=10)
    add_cart_item(db, user.id, id="b", price=10)

    assert OrderService(db).clear_cart(user.id) == 2
    assert CartRepository(db).list_items(user.id) == []
    assert OrderService(db).clear_cart(user.id) == 0

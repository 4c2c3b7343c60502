"""Row builders for tests; each helper commits so services see the data."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from drivebook.core.enums import (
    ClassType,
    EnrollmentStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
    SlotStatus,
)
from drivebook.core.ulid_helper import generate_ulid
from drivebook.models import (
    CartItem,
    Order,
    ScheduleSlot,
    TicketClass,
    TicketClassEnrollment,
    User,
)
from drivebook.repositories.order_repository import OrderRepository
from drivebook.services.order_resolver import generate_order_number

INSTRUCTOR_ID = "01INSTRUCTOR0000000000AAAA"


def make_user(db: Session, **overrides: Any) -> User:
    fields: Dict[str, Any] = {
        "id": generate_ulid(),
        "email": f"{generate_ulid().lower()}@example.com",
        "first_name": "Ana",
        "last_name": "Lopez",
        "phone_number": "+1 555 0100",
    }
    fields.update(overrides)
    user = User(**fields)
    db.add(user)
    db.commit()
    return user


def make_slot(
    db: Session,
    *,
    slot_id: Optional[str] = None,
    instructor_id: str = INSTRUCTOR_ID,
    status: SlotStatus = SlotStatus.AVAILABLE,
    class_type: ClassType = ClassType.DRIVING_TEST,
    student_id: Optional[str] = None,
    payment_method: Optional[PaymentMethod] = None,
    reserved_at: Optional[datetime] = None,
    slot_date: date = date(2026, 11, 2),
    start: str = "09:00",
    end: str = "10:00",
) -> ScheduleSlot:
    slot = ScheduleSlot(
        id=slot_id or generate_ulid(),
        instructor_id=instructor_id,
        date=slot_date,
        start=start,
        end=end,
        class_type=class_type.value,
        status=status.value,
        student_id=student_id,
        payment_method=payment_method.value if payment_method else None,
        paid=status == SlotStatus.BOOKED,
        reserved_at=reserved_at,
        amount=Decimal("60.00"),
    )
    db.add(slot)
    db.commit()
    return slot


def make_ticket_class(db: Session, *, capacity: int = 30) -> TicketClass:
    ticket_class = TicketClass(
        id=generate_ulid(),
        instructor_id=INSTRUCTOR_ID,
        date=date(2026, 11, 5),
        start="18:00",
        end="21:00",
        capacity=capacity,
    )
    db.add(ticket_class)
    db.commit()
    return ticket_class


def enroll(
    db: Session,
    ticket_class: TicketClass,
    student_id: str,
    status: EnrollmentStatus = EnrollmentStatus.REQUESTED,
) -> TicketClassEnrollment:
    enrollment = TicketClassEnrollment(
        ticket_class_id=ticket_class.id, student_id=student_id, status=status.value
    )
    db.add(enrollment)
    db.commit()
    return enrollment


def add_cart_item(db: Session, user_id: str, **payload: Any) -> CartItem:
    item = CartItem(user_id=user_id, payload=payload)
    db.add(item)
    db.commit()
    return item


def driving_test_item(slot: ScheduleSlot, *, price: Any = 60) -> Dict[str, Any]:
    return {
        "id": f"test-{slot.id}",
        "title": "Road test",
        "price": price,
        "classType": "driving test",
        "instructorId": slot.instructor_id,
        "instructorName": "Carlos",
        "date": slot.date.isoformat(),
        "start": slot.start,
        "end": slot.end,
        "slotId": slot.id,
    }


def lesson_package_item(slots: Sequence[ScheduleSlot], *, price: Any = 120) -> Dict[str, Any]:
    return {
        "id": "lesson-package",
        "title": "Lesson package",
        "price": price,
        "classType": "driving lesson",
        "instructorId": slots[0].instructor_id,
        "packageDetails": {"pickupLocation": "Main St 1", "dropoffLocation": "School"},
        "slotDetails": [
            {
                "slotId": slot.id,
                "instructorId": slot.instructor_id,
                "date": slot.date.isoformat(),
                "start": slot.start,
                "end": slot.end,
            }
            for slot in slots
        ],
    }


def make_order(
    db: Session,
    user_id: str,
    *,
    slots: Sequence[ScheduleSlot] = (),
    ticket_classes: Sequence[TicketClass] = (),
    order_type: OrderType = OrderType.DRIVING_TEST,
    payment_status: PaymentStatus = PaymentStatus.PENDING,
    total: Decimal = Decimal("60.00"),
) -> Order:
    appointments: List[Dict[str, Any]] = []
    for slot in slots:
        appointments.append(
            {
                "slot_id": slot.id,
                "instructor_id": slot.instructor_id,
                "date": slot.date.isoformat(),
                "start": slot.start,
                "end": slot.end,
                "class_type": slot.class_type,
                "student_id": user_id,
                "amount": Decimal("60.00"),
            }
        )
    for ticket_class in ticket_classes:
        appointments.append(
            {
                "slot_id": f"{ticket_class.id}_{ticket_class.date}_{ticket_class.start}_{ticket_class.end}",
                "ticket_class_id": ticket_class.id,
                "instructor_id": ticket_class.instructor_id,
                "date": ticket_class.date.isoformat(),
                "start": ticket_class.start,
                "end": ticket_class.end,
                "class_type": ClassType.TICKET_CLASS.value,
                "student_id": user_id,
                "amount": Decimal("40.00"),
            }
        )
    order = OrderRepository(db).create_with_appointments(
        appointments=appointments,
        user_id=user_id,
        order_number=generate_order_number(),
        order_type=order_type.value,
        items=[{"id": "item-1", "title": "Item", "price": float(total), "quantity": 1}],
        total=total,
        payment_method=PaymentMethod.ONLINE.value,
        payment_status=PaymentStatus.PENDING.value,
        status=PaymentStatus.PENDING.value,
    )
    if payment_status != PaymentStatus.PENDING:
        order.payment_status = payment_status.value
        order.status = payment_status.value
    db.commit()
    return order


def hold_for(db: Session, slot: ScheduleSlot, student_id: str, order_id: Optional[str] = None) -> None:
    slot.status = SlotStatus.PENDING.value
    slot.student_id = student_id
    slot.payment_method = PaymentMethod.ONLINE.value
    slot.order_id = order_id
    slot.reserved_at = datetime.now(timezone.utc)
    db.commit()

# backend/drivebook/services/order_resolver.py
"""
Order Resolver

Turns a user's cart (or an explicit order id) into exactly one target
Order with a classified order type and its Appointments. Retrying a
checkout without paying returns the same pending Order.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
import logging
import secrets
import string
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import (
    ORDER_TYPE_DESCRIPTIONS,
    AppointmentStatus,
    ClassType,
    OrderType,
    PaymentMethod,
    PaymentStatus,
    SlotStatus,
)
from ..core.exceptions import ForbiddenException, NotFoundException, ValidationException
from ..models.order import Order
from ..repositories.factory import RepositoryFactory
from ..repositories.order_repository import DuplicatePendingOrder
from ..schemas.cart import (
    CartItemBase,
    DrivingLessonItem,
    DrivingTestItem,
    GeneralItem,
    TicketItem,
    parse_cart,
)
from .base import BaseService
from .slot_state_service import SlotStateService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
_ORDER_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase


@dataclass(frozen=True)
class ResolvedOrder:
    order: Order
    created: bool

    @property
    def order_id(self) -> str:
        return self.order.id


def generate_order_number(now_ms: Optional[int] = None) -> str:
    """``{epoch millis}-{4 base36 chars}``."""
    millis = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(4))
    return f"{millis}-{suffix}"


def classify_order_type(items: Sequence[CartItemBase]) -> OrderType:
    """Ticket items win, then test+lesson, then a single kind, else general."""
    kinds = {item.kind for item in items}
    if ClassType.TICKET_CLASS.value in kinds:
        return OrderType.TICKET_CLASS
    has_test = ClassType.DRIVING_TEST.value in kinds
    has_lesson = ClassType.DRIVING_LESSON.value in kinds
    if has_test and has_lesson:
        return OrderType.DRIVINGS
    if has_test:
        return OrderType.DRIVING_TEST
    if has_lesson:
        return OrderType.DRIVING_LESSON
    return OrderType.GENERAL


def split_amount(total: Decimal, parts: int) -> List[Decimal]:
    """Split evenly in cents; the remainder goes to the last part."""
    if parts <= 0:
        return []
    total_cents = int((total / CENT).to_integral_value(rounding=ROUND_HALF_UP))
    base, remainder = divmod(total_cents, parts)
    amounts = [Decimal(base) * CENT for _ in range(parts)]
    amounts[-1] = Decimal(base + remainder) * CENT
    return amounts


def build_line_items(items: Sequence[CartItemBase], order_type: OrderType) -> List[Dict[str, Any]]:
    description = ORDER_TYPE_DESCRIPTIONS[order_type]
    lines = []
    for item in items:
        lines.append(
            {
                "id": item.id or f"{item.kind}_{item.instructor_id}_{item.date}_{item.start}",
                "title": item.title or item.class_type or item.kind.replace("_", " ").title(),
                "price": float((item.unit_price or Decimal("0")).quantize(CENT)),
                "quantity": item.quantity,
                "description": (
                    description
                    if order_type == OrderType.DRIVINGS
                    else item.description or description
                ),
            }
        )
    return lines


def build_appointments(items: Sequence[CartItemBase], user_id: str) -> List[Dict[str, Any]]:
    """One Appointment per schedule slot or ticket-class seat."""
    appointments: List[Dict[str, Any]] = []
    for item in items:
        amount = (item.unit_price or settings.default_slot_amount).quantize(CENT)
        common = {
            "student_id": user_id,
            "instructor_id": item.instructor_id,
            "instructor_name": item.instructor_name,
            "status": AppointmentStatus.PENDING.value,
        }
        if isinstance(item, DrivingTestItem):
            appointments.append(
                {
                    **common,
                    "slot_id": item.slot_id or f"{item.date}-{item.start}-{item.end}",
                    "date": item.date or "",
                    "start": item.start or "",
                    "end": item.end or "",
                    "class_type": ClassType.DRIVING_TEST.value,
                    "amount": amount,
                }
            )
        elif isinstance(item, DrivingLessonItem):
            pickup = item.package_details.pickup_location if item.package_details else None
            dropoff = item.package_details.dropoff_location if item.package_details else None
            details = item.slot_details
            if details:
                shares = split_amount(item.line_total, len(details))
                for detail, share in zip(details, shares):
                    appointments.append(
                        {
                            **common,
                            "slot_id": detail.slot_id,
                            "instructor_id": detail.instructor_id or item.instructor_id,
                            "instructor_name": detail.instructor_name or item.instructor_name,
                            "date": detail.date or "",
                            "start": detail.start or "",
                            "end": detail.end or "",
                            "class_type": ClassType.DRIVING_LESSON.value,
                            "amount": share,
                            "pickup_location": pickup,
                            "dropoff_location": dropoff,
                        }
                    )
            else:
                appointments.append(
                    {
                        **common,
                        "slot_id": item.slot_id or item.id,
                        "date": item.date or date.today().isoformat(),
                        "start": item.start or "10:00",
                        "end": item.end or "12:00",
                        "class_type": ClassType.DRIVING_LESSON.value,
                        "amount": amount,
                        "pickup_location": pickup,
                        "dropoff_location": dropoff,
                    }
                )
        elif isinstance(item, TicketItem):
            appointments.append(
                {
                    **common,
                    "slot_id": f"{item.ticket_class_id}_{item.date}_{item.start}_{item.end}",
                    "ticket_class_id": item.ticket_class_id,
                    "class_id": item.id,
                    "date": item.date or "",
                    "start": item.start or "",
                    "end": item.end or "",
                    "class_type": ClassType.TICKET_CLASS.value,
                    "amount": amount,
                }
            )
        elif isinstance(item, GeneralItem):
            # Only items that still describe a concrete appointment
            if item.date and item.start and item.end and item.instructor_id:
                appointments.append(
                    {
                        **common,
                        "slot_id": item.slot_id or f"{item.date}-{item.start}-{item.end}",
                        "instructor_name": item.instructor_name or "Instructor",
                        "date": item.date,
                        "start": item.start,
                        "end": item.end,
                        "class_type": ClassType.GENERAL.value,
                        "amount": amount,
                    }
                )
    return appointments


class OrderResolver(BaseService):
    """Resolves the one Order a checkout will pay for."""

    def __init__(self, db: Session, slot_state: Optional[SlotStateService] = None):
        super().__init__(db)
        self.orders = RepositoryFactory.create_order_repository(db)
        self.cart = RepositoryFactory.create_cart_repository(db)
        self.slot_state = slot_state or SlotStateService(db)

    @BaseService.measure_operation("resolve_order")
    def resolve(self, user_id: str, order_id: Optional[str] = None) -> ResolvedOrder:
        """
        Resolve the target Order for ``user_id``.

        An explicit failed order is reopened as pending with its slots held
        again, so paying it after a decline settles normally.

        Raises:
            NotFoundException: explicit order id does not exist
            ForbiddenException: explicit order belongs to another user
            ValidationException: cart is empty or holds no payable items, or
                the explicit order is completed or cancelled
        """
        if not user_id:
            raise ValidationException("userId is required", code="MISSING_USER_ID")

        if order_id:
            with self.transaction():
                order = self._explicit_order(user_id, order_id)
            return ResolvedOrder(order=order, created=False)

        with self.transaction():
            cart_items = self.cart.list_items(user_id)
            if not cart_items:
                latest = self.orders.latest_pending(user_id)
                if latest is None:
                    raise ValidationException(
                        "Your cart is empty", code="CART_EMPTY", details={"user_id": user_id}
                    )
                self.logger.info(
                    "order_resolved_from_pending",
                    extra={"user_id": user_id, "order_id": latest.id},
                )
                return ResolvedOrder(order=latest, created=False)

            items, excluded = parse_cart(item.payload for item in cart_items)
            if not items:
                raise ValidationException(
                    "No valid items found in cart for payment processing",
                    code="CART_INVALID",
                    details={"excluded": excluded},
                )
            if excluded:
                self.logger.warning(
                    "cart_items_excluded", extra={"user_id": user_id, "excluded": excluded}
                )

            order_type = classify_order_type(items)
            existing = self.orders.find_pending(user_id, order_type.value)
            if existing is not None:
                self.logger.info(
                    "order_reused",
                    extra={"user_id": user_id, "order_id": existing.id, "order_type": order_type.value},
                )
                self.cart.clear(user_id)
                return ResolvedOrder(order=existing, created=False)

            order, created = self._create_order(user_id, order_type, items)
            if created:
                self._hold_slots(order)
            self.cart.clear(user_id)

        self.log_operation(
            "resolve_order",
            user_id=user_id,
            order_id=order.id,
            order_type=order_type.value,
            created=created,
        )
        return ResolvedOrder(order=order, created=created)

    def _explicit_order(self, user_id: str, order_id: str) -> Order:
        order = self.orders.get_order(order_id)
        if order is None:
            raise NotFoundException(f"Order {order_id} not found", code="ORDER_NOT_FOUND")
        if order.user_id != user_id:
            raise ForbiddenException("Order does not belong to this user", code="ORDER_FORBIDDEN")
        if order.payment_status == PaymentStatus.COMPLETED.value:
            raise ValidationException(
                "This order has already been paid",
                code="ORDER_ALREADY_COMPLETED",
                details={"order_id": order.id},
            )
        if order.payment_status == PaymentStatus.CANCELLED.value:
            raise ValidationException(
                "A cancelled order cannot be paid",
                code="ORDER_NOT_PAYABLE",
                details={"order_id": order.id, "payment_status": order.payment_status},
            )
        if order.payment_status == PaymentStatus.FAILED.value:
            return self._reopen(order)
        return order

    def _reopen(self, order: Order) -> Order:
        """Put a declined order back to pending and hold its slots again."""
        existing = self.orders.find_pending(order.user_id, order.order_type)
        if existing is not None:
            # Only one pending order per type; pay that one instead
            self.logger.info(
                "order_reopen_superseded",
                extra={"order_id": order.id, "pending_order_id": existing.id},
            )
            return existing
        self.orders.set_payment_status(order.id, PaymentStatus.PENDING)
        self._hold_slots(order)
        self.logger.info(
            "order_reopened", extra={"order_id": order.id, "user_id": order.user_id}
        )
        return order

    def _create_order(
        self, user_id: str, order_type: OrderType, items: Sequence[CartItemBase]
    ) -> Tuple[Order, bool]:
        total = sum((item.line_total for item in items), Decimal("0")).quantize(CENT)
        if total <= 0:
            raise ValidationException(
                "Invalid total calculated from cart items", code="INVALID_TOTAL"
            )
        appointments = build_appointments(items, user_id)
        try:
            order = self.orders.create_with_appointments(
                appointments=appointments,
                user_id=user_id,
                order_number=generate_order_number(),
                order_type=order_type.value,
                items=build_line_items(items, order_type),
                total=total,
                payment_method=PaymentMethod.ONLINE.value,
                payment_status=PaymentStatus.PENDING.value,
                status=PaymentStatus.PENDING.value,
            )
        except DuplicatePendingOrder:
            # A concurrent checkout created it first
            existing = self.orders.find_pending(user_id, order_type.value)
            if existing is None:
                raise
            return existing, False
        self.logger.info(
            "order_created",
            extra={
                "user_id": user_id,
                "order_id": order.id,
                "order_type": order_type.value,
                "appointments": len(appointments),
                "total": str(total),
            },
        )
        return order, True

    def _hold_slots(self, order: Order) -> None:
        """Move each referenced slot to pending; conflicts are logged, not fatal."""
        reserved_at = datetime.now(timezone.utc)
        for appointment in order.appointments:
            if not appointment.has_schedule_slot or not appointment.instructor_id:
                continue
            result = self.slot_state.transition(
                appointment.slot_id,
                appointment.instructor_id,
                {SlotStatus.AVAILABLE, SlotStatus.PENDING},
                SlotStatus.PENDING,
                {
                    "student_id": order.user_id,
                    "paid": False,
                    "payment_method": PaymentMethod.ONLINE.value,
                    "order_id": order.id,
                    "reserved_at": reserved_at,
                },
                expected_student_id=order.user_id,
            )
            if not result.ok:
                self.logger.warning(
                    "order_slot_hold_conflict",
                    extra={
                        "order_id": order.id,
                        "slot_id": appointment.slot_id,
                        "current_status": result.current_status,
                    },
                )

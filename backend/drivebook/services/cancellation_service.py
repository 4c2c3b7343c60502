# backend/drivebook/services/cancellation_service.py
"""
Cancellation Service

Compensating rollback of an Order's reservations, used after a declined
payment and for user-initiated cancellation. Reverting is best-effort per
appointment: one failing revert is logged and the rest still run, and
the cart is cleared regardless.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import PaymentStatus, SlotStatus
from ..core.exceptions import (
    ForbiddenException,
    NotFoundException,
    RepositoryException,
    ValidationException,
)
from ..models.order import Appointment, Order
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .slot_state_service import SlotStateService
from .ticket_class_service import TicketClassService

logger = logging.getLogger(__name__)


@dataclass
class RevertReport:
    reverted: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"reverted": self.reverted, "skipped": self.skipped, "failed": self.failed}


class CancellationService(BaseService):
    def __init__(
        self,
        db: Session,
        slot_state: Optional[SlotStateService] = None,
        ticket_classes: Optional[TicketClassService] = None,
    ):
        super().__init__(db)
        self.orders = RepositoryFactory.create_order_repository(db)
        self.cart = RepositoryFactory.create_cart_repository(db)
        self.slot_state = slot_state or SlotStateService(db)
        self.ticket_classes = ticket_classes or TicketClassService(db)

    def revert_appointment(
        self, appointment: Appointment, student_id: str, order_id: Optional[str] = None
    ) -> bool:
        """
        Undo one reservation. Returns False when there was nothing to undo
        (slot no longer pending, seat never held).

        With ``order_id``, a slot already booked by that order is released
        too. Callers pass it only for orders that never completed.
        """
        if appointment.is_ticket_class:
            if not appointment.ticket_class_id:
                return False
            enrollment = self.ticket_classes.cancel_enrollment(
                appointment.ticket_class_id, appointment.student_id or student_id
            )
            return enrollment is not None
        if not appointment.has_schedule_slot or not appointment.instructor_id:
            return False
        owner = appointment.student_id or student_id
        result = self.slot_state.release(appointment.slot_id, appointment.instructor_id, owner)
        if not result.ok and order_id and result.current_status == SlotStatus.BOOKED.value:
            result = self.slot_state.release_booking(
                appointment.slot_id, appointment.instructor_id, owner, order_id
            )
        return result.ok

    def revert_appointments(
        self,
        appointments: Iterable[Appointment],
        student_id: str,
        order_id: Optional[str] = None,
    ) -> RevertReport:
        report = RevertReport()
        for appointment in appointments:
            key = appointment.slot_id or appointment.id
            try:
                with self.db.begin_nested():
                    reverted = self.revert_appointment(appointment, student_id, order_id)
            except Exception as exc:
                self.logger.warning(
                    "appointment_revert_failed",
                    extra={
                        "appointment_id": appointment.id,
                        "slot_id": appointment.slot_id,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                report.failed.append({"slot_id": key, "error": str(exc)})
                continue
            if reverted:
                report.reverted.append(key)
            else:
                report.skipped.append(key)
        return report

    def clear_cart(self, user_id: str) -> None:
        """Best-effort; a stale cart is logged, never raised."""
        try:
            removed = self.cart.clear(user_id)
        except RepositoryException as exc:
            self.logger.warning("cart_clear_failed", extra={"user_id": user_id, "error": str(exc)})
            return
        self.logger.debug("cart_cleared", extra={"user_id": user_id, "removed": removed})

    def _owned_order(self, order_id: str, user_id: str) -> Order:
        order = self.orders.get_order(order_id)
        if order is None:
            raise NotFoundException(f"Order {order_id} not found", code="ORDER_NOT_FOUND")
        if order.user_id != user_id:
            raise ForbiddenException("Order does not belong to this user", code="ORDER_FORBIDDEN")
        return order

    @BaseService.measure_operation("cancel_order")
    def cancel_order(self, order_id: str, user_id: str) -> Dict[str, Any]:
        """
        User-initiated cancellation of a pending or processing order.

        Raises:
            NotFoundException: order does not exist
            ForbiddenException: order belongs to another user
            ValidationException: order is already closed
        """
        order = self._owned_order(order_id, user_id)
        if not order.is_open:
            raise ValidationException(
                f"Order cannot be cancelled in status {order.payment_status}",
                code="ORDER_NOT_CANCELLABLE",
                details={"payment_status": order.payment_status},
            )

        with self.transaction():
            self.orders.set_payment_status(order.id, PaymentStatus.CANCELLED)
            report = self.revert_appointments(order.appointments, user_id, order.id)
            self.clear_cart(user_id)

        self.logger.info(
            "order_cancelled",
            extra={
                "order_id": order.id,
                "user_id": user_id,
                "reverted": len(report.reverted),
                "failed": len(report.failed),
            },
        )
        return {
            "success": True,
            "order_id": order.id,
            "payment_status": PaymentStatus.CANCELLED.value,
            **report.to_dict(),
        }

    @BaseService.measure_operation("revert_order_slots")
    def revert_order_slots(self, order_id: str, user_id: str) -> RevertReport:
        """Release an order's reservations without changing its status."""
        order = self._owned_order(order_id, user_id)
        booked_by = None if order.payment_status == PaymentStatus.COMPLETED.value else order.id
        with self.transaction():
            report = self.revert_appointments(order.appointments, user_id, booked_by)
        self.log_operation(
            "revert_order_slots",
            order_id=order_id,
            reverted=len(report.reverted),
            failed=len(report.failed),
        )
        return report

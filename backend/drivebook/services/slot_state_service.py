# backend/drivebook/services/slot_state_service.py
"""
Slot State Service

Every slot status change in the application goes through this service.
It wraps SlotRepository.transition, which performs the status check and
the write in one conditional UPDATE, and adds logging, metrics and the
caller-facing error for single-slot operations.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Collection, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import ClassType, PaymentMethod, SlotStatus
from ..core.exceptions import NotFoundException, SlotConflictException, ValidationException
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.slot_repository import BatchTransitionResult, TransitionResult
from .base import BaseService

logger = logging.getLogger(__name__)

# Fields cleared whenever a slot goes back to available
RELEASED_SLOT_FIELDS: Dict[str, Any] = {
    "student_id": None,
    "paid": False,
    "payment_method": None,
    "order_id": None,
    "payment_id": None,
    "reserved_at": None,
    "confirmed_at": None,
}


class SlotStateService(BaseService):
    """Atomic slot lifecycle transitions."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_slot_repository(db)

    def transition(
        self,
        slot_id: str,
        instructor_id: str,
        from_allowed: Collection[SlotStatus],
        to: SlotStatus,
        fields: Optional[Dict[str, Any]] = None,
        *,
        expected_student_id: Optional[str] = None,
        expected_order_id: Optional[str] = None,
    ) -> TransitionResult:
        result = self.repository.transition(
            slot_id,
            instructor_id,
            from_allowed,
            to,
            fields,
            expected_student_id=expected_student_id,
            expected_order_id=expected_order_id,
        )
        prometheus_metrics.record_slot_transition(to.value, "ok" if result.ok else "conflict")
        if not result.ok:
            self.logger.info(
                "slot_transition_conflict",
                extra={
                    "slot_id": slot_id,
                    "instructor_id": instructor_id,
                    "to_status": to.value,
                    "current_status": result.current_status,
                },
            )
        return result

    def batch_transition(
        self,
        slot_ids: Iterable[str],
        instructor_id: str,
        from_allowed: Collection[SlotStatus],
        to: SlotStatus,
        fields: Optional[Dict[str, Any]] = None,
        *,
        expected_student_id: Optional[str] = None,
    ) -> BatchTransitionResult:
        result = self.repository.batch_transition(
            slot_ids,
            instructor_id,
            from_allowed,
            to,
            fields,
            expected_student_id=expected_student_id,
        )
        for _ in result.succeeded:
            prometheus_metrics.record_slot_transition(to.value, "ok")
        for failure in result.failed:
            prometheus_metrics.record_slot_transition(to.value, "conflict")
            self.logger.warning(
                "slot_batch_transition_failed",
                extra={
                    "slot_id": failure.slot_id,
                    "instructor_id": instructor_id,
                    "to_status": to.value,
                    "current_status": failure.current_status,
                },
            )
        return result

    def release(
        self, slot_id: str, instructor_id: str, student_id: Optional[str] = None
    ) -> TransitionResult:
        """pending -> available, clearing every reservation field."""
        return self.transition(
            slot_id,
            instructor_id,
            {SlotStatus.PENDING},
            SlotStatus.AVAILABLE,
            RELEASED_SLOT_FIELDS,
            expected_student_id=student_id,
        )

    def release_booking(
        self, slot_id: str, instructor_id: str, student_id: str, order_id: str
    ) -> TransitionResult:
        """
        booked -> available for a booking made by an order that never completed.

        Only a slot booked for ``student_id`` and stamped with ``order_id``
        qualifies, so bookings from other orders are never touched.
        """
        return self.transition(
            slot_id,
            instructor_id,
            {SlotStatus.BOOKED},
            SlotStatus.AVAILABLE,
            RELEASED_SLOT_FIELDS,
            expected_student_id=student_id,
            expected_order_id=order_id,
        )

    @BaseService.measure_operation("reserve_pending")
    def reserve_pending(
        self,
        *,
        slot_id: str,
        instructor_id: str,
        student_id: str,
        payment_method: PaymentMethod = PaymentMethod.LOCAL,
        order_id: Optional[str] = None,
    ) -> TransitionResult:
        """
        Place a hold on one available slot for a student.

        Raises:
            NotFoundException: slot does not exist for that instructor
            SlotConflictException: slot is no longer available
        """
        with self.transaction():
            if self.repository.get_slot(slot_id, instructor_id) is None:
                raise NotFoundException(f"Slot {slot_id} not found", code="SLOT_NOT_FOUND")
            result = self.transition(
                slot_id,
                instructor_id,
                {SlotStatus.AVAILABLE},
                SlotStatus.PENDING,
                {
                    "student_id": student_id,
                    "paid": False,
                    "payment_method": payment_method.value,
                    "order_id": order_id,
                    "reserved_at": datetime.now(timezone.utc),
                },
            )
            if not result.ok:
                raise SlotConflictException(slot_id, current_status=result.current_status)
        self.log_operation("reserve_pending", slot_id=slot_id, student_id=student_id)
        return result

    @BaseService.measure_operation("update_slot_status")
    def update_slot_status(
        self,
        *,
        class_type: ClassType,
        instructor_id: str,
        slot_ids: List[str],
        status: str,
        paid: Optional[bool] = None,
        payment_id: Optional[str] = None,
        student_id: Optional[str] = None,
    ) -> BatchTransitionResult:
        """
        Per-class-type finalization used by collaborators.

        ``booked`` always sets ``paid`` and requires a pending slot, or an
        available one when ``student_id`` names who it is booked for.
        ``pending`` requires an available one, ``available``/``cancelled``
        release a hold.
        """
        if not slot_ids:
            raise ValidationException("slotId or slotIds is required", code="MISSING_SLOT_ID")
        target = _parse_slot_status(status)
        now = datetime.now(timezone.utc)

        fields: Dict[str, Any]
        if target == SlotStatus.BOOKED:
            if paid is False:
                raise ValidationException(
                    "A booked slot is always paid", code="BOOKED_REQUIRES_PAID"
                )
            # pending slots already carry their student
            from_allowed = (
                {SlotStatus.PENDING, SlotStatus.AVAILABLE} if student_id else {SlotStatus.PENDING}
            )
            fields = {"paid": True, "confirmed_at": now}
            if payment_id:
                fields["payment_id"] = payment_id
            if student_id:
                fields["student_id"] = student_id
        elif target == SlotStatus.PENDING:
            if not student_id:
                raise ValidationException("studentId is required to hold a slot")
            from_allowed = {SlotStatus.AVAILABLE}
            fields = {"student_id": student_id, "paid": False, "reserved_at": now}
        else:
            from_allowed = {SlotStatus.PENDING, SlotStatus.BOOKED}
            fields = dict(RELEASED_SLOT_FIELDS)

        with self.transaction():
            result = self.batch_transition(
                slot_ids,
                instructor_id,
                from_allowed,
                target,
                fields,
                expected_student_id=(
                    student_id if target in (SlotStatus.BOOKED, SlotStatus.PENDING) else None
                ),
            )
        self.logger.info(
            "slot_status_updated",
            extra={
                "class_type": class_type.value,
                "instructor_id": instructor_id,
                "to_status": target.value,
                "succeeded": len(result.succeeded),
                "failed": len(result.failed),
            },
        )
        return result

    def verify_slot(self, slot_id: str, instructor_id: Optional[str] = None) -> Dict[str, Any]:
        slot = self.repository.get_slot(slot_id, instructor_id)
        if slot is None:
            raise NotFoundException(f"Slot {slot_id} not found", code="SLOT_NOT_FOUND")
        return {
            "slot_id": slot.id,
            "status": slot.status,
            "paid": bool(slot.paid),
            "student_id": slot.student_id,
        }

    def is_finalized(self, slot_id: str, instructor_id: Optional[str] = None) -> bool:
        slot = self.repository.get_slot(slot_id, instructor_id)
        return slot is not None and slot.status == SlotStatus.BOOKED.value and bool(slot.paid)


def _parse_slot_status(raw: str) -> SlotStatus:
    try:
        return SlotStatus((raw or "").strip().lower())
    except ValueError:
        raise ValidationException(f"Unsupported slot status: {raw}", code="INVALID_STATUS")

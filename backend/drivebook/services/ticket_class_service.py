# backend/drivebook/services/ticket_class_service.py
"""
Ticket Class Service

Group classes have no individual schedule slot per student; a student's
seat is an enrollment row whose status is flipped directly.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.enums import EnrollmentStatus
from ..core.exceptions import ConflictException, NotFoundException, ValidationException
from ..models.ticket_class import TicketClassEnrollment
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

_STATUS_ALIASES = {
    "confirmed": EnrollmentStatus.CONFIRMED,
    "enrolled": EnrollmentStatus.CONFIRMED,
    "cancelled": EnrollmentStatus.CANCELLED,
    "canceled": EnrollmentStatus.CANCELLED,
    "rejected": EnrollmentStatus.CANCELLED,
    "requested": EnrollmentStatus.REQUESTED,
    "pending": EnrollmentStatus.REQUESTED,
}


class TicketClassService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_ticket_class_repository(db)

    def confirm_enrollment(
        self,
        ticket_class_id: str,
        student_id: str,
        *,
        payment_id: Optional[str] = None,
        order_id: Optional[str] = None,
    ) -> TicketClassEnrollment:
        """
        Confirm a student's seat; re-confirming an existing seat is a no-op.

        Raises:
            NotFoundException: ticket class does not exist
            ConflictException: class is at capacity
        """
        ticket_class = self.repository.get_by_id(ticket_class_id)
        if ticket_class is None:
            raise NotFoundException(
                f"Ticket class {ticket_class_id} not found", code="TICKET_CLASS_NOT_FOUND"
            )
        current = self.repository.get_enrollment(ticket_class_id, student_id)
        already_confirmed = (
            current is not None and current.status == EnrollmentStatus.CONFIRMED.value
        )
        if not already_confirmed and ticket_class.capacity is not None:
            if self.repository.count_confirmed(ticket_class_id) >= ticket_class.capacity:
                raise ConflictException(
                    "This class is full",
                    code="TICKET_CLASS_FULL",
                    details={"capacity": ticket_class.capacity},
                )
        return self.repository.set_enrollment_status(
            ticket_class_id,
            student_id,
            EnrollmentStatus.CONFIRMED,
            payment_id=payment_id,
            order_id=order_id,
        )

    def cancel_enrollment(
        self, ticket_class_id: str, student_id: str
    ) -> Optional[TicketClassEnrollment]:
        """Drop a seat; None when the student never held one."""
        if self.repository.get_enrollment(ticket_class_id, student_id) is None:
            return None
        return self.repository.set_enrollment_status(
            ticket_class_id, student_id, EnrollmentStatus.CANCELLED
        )

    @BaseService.measure_operation("update_enrollment_status")
    def update_status(
        self,
        *,
        ticket_class_id: str,
        student_id: str,
        status: str,
        payment_id: Optional[str] = None,
        order_id: Optional[str] = None,
    ) -> TicketClassEnrollment:
        target = _STATUS_ALIASES.get((status or "").strip().lower())
        if target is None:
            raise ValidationException(f"Unsupported enrollment status: {status}", code="INVALID_STATUS")
        with self.transaction():
            if target == EnrollmentStatus.CONFIRMED:
                enrollment = self.confirm_enrollment(
                    ticket_class_id, student_id, payment_id=payment_id, order_id=order_id
                )
            elif target == EnrollmentStatus.CANCELLED:
                cancelled = self.cancel_enrollment(ticket_class_id, student_id)
                if cancelled is None:
                    raise NotFoundException(
                        "Student is not enrolled in this class", code="ENROLLMENT_NOT_FOUND"
                    )
                enrollment = cancelled
            else:
                if self.repository.get_by_id(ticket_class_id) is None:
                    raise NotFoundException(
                        f"Ticket class {ticket_class_id} not found", code="TICKET_CLASS_NOT_FOUND"
                    )
                enrollment = self.repository.set_enrollment_status(
                    ticket_class_id, student_id, EnrollmentStatus.REQUESTED
                )
        self.log_operation(
            "update_enrollment_status",
            ticket_class_id=ticket_class_id,
            student_id=student_id,
            status=target.value,
        )
        return enrollment

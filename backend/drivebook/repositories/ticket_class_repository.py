"""Ticket Class Repository: per-student seat standing on group classes."""

from datetime import datetime, timezone
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.enums import EnrollmentStatus
from ..models.ticket_class import TicketClass, TicketClassEnrollment
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class TicketClassRepository(BaseRepository[TicketClass]):
    def __init__(self, db: Session):
        super().__init__(db, TicketClass)

    def get_enrollment(self, ticket_class_id: str, student_id: str) -> Optional[TicketClassEnrollment]:
        stmt = select(TicketClassEnrollment).where(
            TicketClassEnrollment.ticket_class_id == ticket_class_id,
            TicketClassEnrollment.student_id == student_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def count_confirmed(self, ticket_class_id: str) -> int:
        stmt = select(TicketClassEnrollment.id).where(
            TicketClassEnrollment.ticket_class_id == ticket_class_id,
            TicketClassEnrollment.status == EnrollmentStatus.CONFIRMED.value,
        )
        return len(self.db.execute(stmt).scalars().all())

    def set_enrollment_status(
        self,
        ticket_class_id: str,
        student_id: str,
        status: EnrollmentStatus,
        *,
        payment_id: Optional[str] = None,
        order_id: Optional[str] = None,
    ) -> TicketClassEnrollment:
        enrollment = self.get_enrollment(ticket_class_id, student_id)
        if enrollment is None:
            enrollment = TicketClassEnrollment(
                ticket_class_id=ticket_class_id, student_id=student_id
            )
            self.db.add(enrollment)
        if status == EnrollmentStatus.CONFIRMED:
            enrollment.enrolled_at = datetime.now(timezone.utc)
            enrollment.payment_id = payment_id
            enrollment.order_id = order_id
            enrollment.was_cancelled = False
        elif status == EnrollmentStatus.CANCELLED:
            enrollment.was_cancelled = True
        enrollment.status = status.value
        self.db.flush()
        return enrollment

"""Group ticket classes: one class, many seats, one enrollment row per student."""

import datetime as dt
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.enums import EnrollmentStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base


class TicketClass(Base):
    __tablename__ = "ticket_classes"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    instructor_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True)
    class_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start: Mapped[str] = mapped_column(String(5), nullable=False)
    end: Mapped[str] = mapped_column(String(5), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    enrollments: Mapped[List["TicketClassEnrollment"]] = relationship(
        "TicketClassEnrollment", back_populates="ticket_class", cascade="all, delete-orphan"
    )


class TicketClassEnrollment(Base):
    __tablename__ = "ticket_class_enrollments"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    ticket_class_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("ticket_classes.id", ondelete="CASCADE"), nullable=False
    )
    student_id: Mapped[str] = mapped_column(String(26), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EnrollmentStatus.REQUESTED.value
    )
    payment_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    order_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True)
    was_cancelled: Mapped[bool] = mapped_column(default=False, nullable=False)
    enrolled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    ticket_class: Mapped[TicketClass] = relationship("TicketClass", back_populates="enrollments")

    __table_args__ = (
        UniqueConstraint("ticket_class_id", "student_id", name="uq_ticket_class_student"),
    )

# backend/drivebook/models/slot.py
"""
Schedule slot model.

A slot is one bookable unit on an instructor's schedule. Slots are never
deleted; after a cancellation they are re-marked ``available`` so history
and re-booking stay possible.

Invariants (kept by SlotRepository.transition):
- booked    -> paid is true and student_id is set
- pending   -> student_id is set and paid is false
- available / cancelled -> no student_id
"""

import datetime as dt
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Index, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.enums import SlotStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base


class ScheduleSlot(Base):
    __tablename__ = "schedule_slots"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_ulid)
    instructor_id: Mapped[str] = mapped_column(String(26), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start: Mapped[str] = mapped_column(String(5), nullable=False, comment="HH:MM")
    end: Mapped[str] = mapped_column(String(5), nullable=False, comment="HH:MM")
    class_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SlotStatus.AVAILABLE.value, index=True
    )
    student_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True, index=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ticket_class_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True)

    order_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True)
    payment_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    reserved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_schedule_slots_instructor_date", "instructor_id", "date"),
        Index("ix_schedule_slots_status_method", "status", "payment_method"),
    )

    @property
    def is_free(self) -> bool:
        return self.status == SlotStatus.AVAILABLE.value

    def __repr__(self) -> str:
        return (
            f"<ScheduleSlot(id={self.id}, instructor={self.instructor_id}, "
            f"{self.date} {self.start}-{self.end}, status={self.status})>"
        )

# backend/drivebook/models/order.py
"""
Order and Appointment models.

An Order is the durable unit of purchase. Its Appointments are
denormalized pointers to the slots (or ticket-class seats) the purchase
will finalize once payment settles. They are written when the Order is
created and never change after the Order leaves ``pending``; settlement
only flips slot state.

At most one ``pending`` Order exists per (user_id, order_type); the
partial unique index below backs that rule at the database level.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from ..core.enums import AppointmentStatus, ClassType, PaymentMethod, PaymentStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    user_id: Mapped[str] = mapped_column(String(26), nullable=False, index=True)
    order_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    order_type: Mapped[str] = mapped_column(String(30), nullable=False)
    items: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(
        String(10), nullable=False, default=PaymentMethod.ONLINE.value
    )
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.PENDING.value
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="Appointment.position",
        lazy="selectin",
    )

    __table_args__ = (
        Index(
            "uq_orders_one_pending_per_type",
            "user_id",
            "order_type",
            unique=True,
            postgresql_where=text("payment_status = 'pending'"),
            sqlite_where=text("payment_status = 'pending'"),
        ),
    )

    @validates("appointments")
    def _freeze_appointments(self, key: str, appointment: "Appointment") -> "Appointment":
        if self.payment_status not in (None, PaymentStatus.PENDING.value):
            raise ValueError(
                f"Appointments of order {self.id} are frozen (payment_status={self.payment_status})"
            )
        return appointment

    @property
    def is_open(self) -> bool:
        return self.payment_status in (PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value)

    def __repr__(self) -> str:
        return (
            f"<Order(id={self.id}, number={self.order_number}, type={self.order_type}, "
            f"payment_status={self.payment_status})>"
        )


class Appointment(Base):
    __tablename__ = "order_appointments"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    order_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    slot_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    ticket_class_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True)
    class_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    instructor_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True)
    instructor_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    start: Mapped[str] = mapped_column(String(5), nullable=False)
    end: Mapped[str] = mapped_column(String(5), nullable=False)
    class_type: Mapped[str] = mapped_column(String(20), nullable=False)
    student_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AppointmentStatus.PENDING.value
    )
    pickup_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    dropoff_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    order: Mapped[Order] = relationship("Order", back_populates="appointments")

    @property
    def is_ticket_class(self) -> bool:
        return bool(self.ticket_class_id) or self.class_type == ClassType.TICKET_CLASS.value

    @property
    def has_schedule_slot(self) -> bool:
        return not self.is_ticket_class and bool(self.slot_id) and self.class_type in (
            ClassType.DRIVING_TEST.value,
            ClassType.DRIVING_LESSON.value,
        )

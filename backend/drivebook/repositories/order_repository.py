# backend/drivebook/repositories/order_repository.py
"""
Order Repository

Data access for Orders and their Appointments.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Optional, Sequence, Set

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import PaymentStatus
from ..core.exceptions import RepositoryException
from ..models.order import Appointment, Order
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class DuplicatePendingOrder(RepositoryException):
    """Another pending order for the same (user, order type) already exists."""


class OrderRepository(BaseRepository[Order]):
    def __init__(self, db: Session):
        super().__init__(db, Order)

    def get_order(self, order_id: str) -> Optional[Order]:
        try:
            stmt = (
                select(Order)
                .where(Order.id == order_id)
                .execution_options(populate_existing=True)
            )
            return self.db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading order {order_id}: {str(e)}")
            raise RepositoryException(f"Failed to load order: {str(e)}")

    def find_pending(self, user_id: str, order_type: str) -> Optional[Order]:
        stmt = (
            select(Order)
            .where(
                Order.user_id == user_id,
                Order.order_type == order_type,
                Order.payment_status == PaymentStatus.PENDING.value,
            )
            .order_by(Order.created_at.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def latest_pending(self, user_id: str) -> Optional[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id, Order.payment_status == PaymentStatus.PENDING.value)
            .order_by(Order.created_at.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def create_with_appointments(
        self, *, appointments: Sequence[Dict[str, Any]], **order_fields: Any
    ) -> Order:
        """
        Insert an order and its appointments inside a savepoint.

        Raises:
            DuplicatePendingOrder: the one-pending-per-type index rejected the insert
        """
        order = Order(**order_fields)
        for position, data in enumerate(appointments):
            order.appointments.append(Appointment(position=position, **data))
        savepoint = self.db.begin_nested()
        try:
            self.db.add(order)
            self.db.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            self.logger.info(
                "pending order insert rejected for user %s type %s: %s",
                order_fields.get("user_id"),
                order_fields.get("order_type"),
                exc.orig,
            )
            raise DuplicatePendingOrder(str(exc.orig)) from exc
        return order

    def set_payment_status(
        self,
        order_id: str,
        payment_status: PaymentStatus,
        status: Optional[str] = None,
    ) -> Optional[Order]:
        order = self.get_order(order_id)
        if order is None:
            return None
        now = datetime.now(timezone.utc)
        order.payment_status = payment_status.value
        order.status = status or payment_status.value
        order.updated_at = now
        if payment_status == PaymentStatus.COMPLETED:
            order.completed_at = now
        elif payment_status == PaymentStatus.CANCELLED:
            order.cancelled_at = now
        self.db.flush()
        return order

    def slot_ids_held_by_open_orders(self, slot_ids: Sequence[str]) -> Set[str]:
        """Slot ids referenced by orders that are mid-settlement."""
        if not slot_ids:
            return set()
        stmt = (
            select(Appointment.slot_id)
            .join(Order, Order.id == Appointment.order_id)
            .where(
                Appointment.slot_id.in_(list(slot_ids)),
                Order.payment_status == PaymentStatus.PROCESSING.value,
            )
        )
        return {row for row in self.db.execute(stmt).scalars().all() if row}

    def list_for_user(self, user_id: str, limit: int = 20) -> List[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

# backend/drivebook/services/order_service.py
"""
Order Service

Persistence-facing order operations used by collaborators: read an order
with its appointments, write its status, clear a user's cart.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.enums import PaymentStatus
from ..core.exceptions import ForbiddenException, NotFoundException
from ..models.order import Order
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class OrderService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.orders = RepositoryFactory.create_order_repository(db)
        self.cart = RepositoryFactory.create_cart_repository(db)

    def get_details(self, order_id: str, user_id: Optional[str] = None) -> Order:
        order = self.orders.get_order(order_id)
        if order is None:
            raise NotFoundException(f"Order {order_id} not found", code="ORDER_NOT_FOUND")
        if user_id and order.user_id != user_id:
            raise ForbiddenException("Order does not belong to this user", code="ORDER_FORBIDDEN")
        return order

    @BaseService.measure_operation("update_order_status")
    def update_status(
        self, order_id: str, payment_status: PaymentStatus, status: Optional[str] = None
    ) -> Order:
        with self.transaction():
            order = self.orders.set_payment_status(order_id, payment_status, status)
            if order is None:
                raise NotFoundException(f"Order {order_id} not found", code="ORDER_NOT_FOUND")
        self.log_operation(
            "update_order_status", order_id=order_id, payment_status=payment_status.value
        )
        return order

    def clear_cart(self, user_id: str) -> int:
        with self.transaction():
            removed = self.cart.clear(user_id)
        self.logger.info("cart_cleared", extra={"user_id": user_id, "removed": removed})
        return removed

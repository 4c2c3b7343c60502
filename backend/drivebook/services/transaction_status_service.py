# backend/drivebook/services/transaction_status_service.py
"""
Transaction Status Service

Answers "what did the gateway decide for this order" from the local
ledger, falling back to the gateway's own ledger and caching what it
returns. Reporting never changes the Order.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.enums import GatewayDecision, PaymentStatus
from ..core.exceptions import ForbiddenException, NotFoundException
from ..integrations.payment_gateway_client import PaymentGatewayClient, PaymentGatewayError
from ..models.payment_transaction import PaymentTransaction
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class TransactionStatusService(BaseService):
    def __init__(self, db: Session, client: Optional[PaymentGatewayClient] = None):
        super().__init__(db)
        self.client = client or PaymentGatewayClient.from_settings()
        self.orders = RepositoryFactory.create_order_repository(db)
        self.ledger = RepositoryFactory.create_payment_transaction_repository(db)

    def latest_transaction(self, order_id: str) -> Optional[PaymentTransaction]:
        row = self.ledger.latest_for_order(order_id)
        if row is not None:
            return row
        return self._fetch_remote(order_id)

    def gateway_decision(self, order_id: str) -> Optional[GatewayDecision]:
        row = self.latest_transaction(order_id)
        return GatewayDecision.parse(row.status) if row is not None else None

    def _fetch_remote(self, order_id: str) -> Optional[PaymentTransaction]:
        try:
            body = self.client.order_transactions(order_id)
        except PaymentGatewayError as exc:
            self.logger.warning(
                "gateway_transactions_lookup_failed",
                extra={"order_id": order_id, "error": str(exc)},
            )
            return None
        transactions = body.get("transactions") or body.get("items") or []
        if not transactions:
            return None
        latest: Dict[str, Any] = transactions[0]
        with self.transaction():
            row = self.ledger.record(
                order_id=order_id,
                status=GatewayDecision.parse(latest.get("status")).value,
                transaction_id=latest.get("transactionId"),
                user_id=latest.get("userId"),
                amount=latest.get("amount"),
                result_message=latest.get("resultMessage"),
                approval_code=latest.get("approvalCode"),
                invoice_number=latest.get("invoiceNumber"),
                customer_code=latest.get("customerCode"),
                raw=latest.get("rawWebhook") or latest,
            )
        self.logger.info(
            "gateway_transaction_cached",
            extra={"order_id": order_id, "transaction_id": row.transaction_id, "status": row.status},
        )
        return row

    @BaseService.measure_operation("check_status")
    def check_status(self, order_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        order = self.orders.get_order(order_id)
        if order is None:
            raise NotFoundException(f"Order {order_id} not found", code="ORDER_NOT_FOUND")
        if user_id and order.user_id != user_id:
            raise ForbiddenException("Order does not belong to this user", code="ORDER_FORBIDDEN")

        row = self.latest_transaction(order_id)
        if row is None:
            return {
                "success": False,
                "transaction_status": None,
                "order_status": order.payment_status,
                "message": "No transaction found for this order",
            }

        decision = GatewayDecision.parse(row.status)
        completed = order.payment_status == PaymentStatus.COMPLETED.value
        if decision == GatewayDecision.APPROVED:
            message = (
                "Order already completed"
                if completed
                else "Payment approved, order awaiting settlement"
            )
        else:
            message = row.result_message or "Payment not approved"
        return {
            "success": decision == GatewayDecision.APPROVED and completed,
            "transaction_status": decision.value,
            "order_status": order.payment_status,
            "message": message,
        }

# backend/drivebook/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Factories here build services per request around the request's Session.
Tests override ``get_gateway_client`` to point at a mock transport.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...integrations.payment_gateway_client import PaymentGatewayClient
from ...services.cancellation_service import CancellationService
from ...services.checkout_service import CheckoutService
from ...services.order_service import OrderService
from ...services.settlement_service import SettlementService
from ...services.slot_state_service import SlotStateService
from ...services.ticket_class_service import TicketClassService
from ...services.transaction_status_service import TransactionStatusService

logger = logging.getLogger(__name__)


def get_gateway_client() -> PaymentGatewayClient:
    return PaymentGatewayClient.from_settings()


def get_slot_state_service(db: Session = Depends(get_db)) -> SlotStateService:
    return SlotStateService(db)


def get_ticket_class_service(db: Session = Depends(get_db)) -> TicketClassService:
    return TicketClassService(db)


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


def get_cancellation_service(db: Session = Depends(get_db)) -> CancellationService:
    return CancellationService(db)


def get_checkout_service(
    db: Session = Depends(get_db),
    client: PaymentGatewayClient = Depends(get_gateway_client),
) -> CheckoutService:
    return CheckoutService(db, client)


def get_settlement_service(
    db: Session = Depends(get_db),
    client: PaymentGatewayClient = Depends(get_gateway_client),
) -> SettlementService:
    return SettlementService(db, client)


def get_transaction_status_service(
    db: Session = Depends(get_db),
    client: PaymentGatewayClient = Depends(get_gateway_client),
) -> TransactionStatusService:
    return TransactionStatusService(db, client)

"""
Service layer for the booking and settlement pipeline.

Services hold the business logic; repositories do data access and routes
stay thin.
"""

from .base import BaseService
from .cancellation_service import CancellationService, RevertReport
from .checkout_service import CheckoutResult, CheckoutService
from .gateway_bootstrap import GatewayBootstrap
from .order_service import OrderService
from .order_resolver import OrderResolver, ResolvedOrder
from .payment_handoff import PaymentHandoff
from .reservation_sweeper import ReservationSweeper
from .settlement_service import SettlementOutcome, SettlementService
from .slot_state_service import SlotStateService
from .ticket_class_service import TicketClassService
from .transaction_status_service import TransactionStatusService

__all__ = [
    "BaseService",
    "CancellationService",
    "CheckoutResult",
    "CheckoutService",
    "GatewayBootstrap",
    "OrderResolver",
    "OrderService",
    "PaymentHandoff",
    "ReservationSweeper",
    "ResolvedOrder",
    "RevertReport",
    "SettlementOutcome",
    "SettlementService",
    "SlotStateService",
    "TicketClassService",
    "TransactionStatusService",
]

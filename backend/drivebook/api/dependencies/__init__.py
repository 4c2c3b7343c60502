"""
Central export point for all dependencies.
"""

from ...database import get_db
from .services import (
    get_cancellation_service,
    get_checkout_service,
    get_gateway_client,
    get_order_service,
    get_settlement_service,
    get_slot_state_service,
    get_ticket_class_service,
    get_transaction_status_service,
)

__all__ = [
    "get_db",
    "get_gateway_client",
    "get_cancellation_service",
    "get_checkout_service",
    "get_order_service",
    "get_settlement_service",
    "get_slot_state_service",
    "get_ticket_class_service",
    "get_transaction_status_service",
]

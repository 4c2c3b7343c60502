"""
Repository Pattern Implementation

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Foundation for all repositories with generic CRUD operations
- RepositoryFactory: Factory for creating repository instances
- SlotRepository: atomic slot status transitions
- OrderRepository: orders, appointments, pending-order lookups
- CartRepository, TicketClassRepository, PaymentTransactionRepository

Usage:
    from ..repositories import RepositoryFactory

    # In a service:
    slots = RepositoryFactory.create_slot_repository(db)
    result = slots.transition(slot_id, instructor_id, {SlotStatus.AVAILABLE}, SlotStatus.PENDING)
"""

from .base_repository import BaseRepository
from .cart_repository import CartRepository
from .factory import RepositoryFactory
from .order_repository import DuplicatePendingOrder, OrderRepository
from .payment_transaction_repository import (
    PaymentTransactionRepository,
    ProcessedPaymentResultRepository,
)
from .slot_repository import BatchTransitionResult, SlotRepository, TransitionResult
from .ticket_class_repository import TicketClassRepository

__all__ = [
    "BaseRepository",
    "BatchTransitionResult",
    "CartRepository",
    "DuplicatePendingOrder",
    "OrderRepository",
    "PaymentTransactionRepository",
    "ProcessedPaymentResultRepository",
    "RepositoryFactory",
    "SlotRepository",
    "TicketClassRepository",
    "TransitionResult",
]

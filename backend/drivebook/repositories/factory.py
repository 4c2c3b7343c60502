# backend/drivebook/repositories/factory.py
"""
Repository Factory

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from .base_repository import BaseRepository

# Avoid circular imports
if TYPE_CHECKING:
    from .cart_repository import CartRepository
    from .order_repository import OrderRepository
    from .payment_transaction_repository import (
        PaymentTransactionRepository,
        ProcessedPaymentResultRepository,
    )
    from .slot_repository import SlotRepository
    from .ticket_class_repository import TicketClassRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_base_repository(db: Session, model) -> BaseRepository:
        return BaseRepository(db, model)

    @staticmethod
    def create_slot_repository(db: Session) -> "SlotRepository":
        from .slot_repository import SlotRepository

        return SlotRepository(db)

    @staticmethod
    def create_order_repository(db: Session) -> "OrderRepository":
        from .order_repository import OrderRepository

        return OrderRepository(db)

    @staticmethod
    def create_cart_repository(db: Session) -> "CartRepository":
        from .cart_repository import CartRepository

        return CartRepository(db)

    @staticmethod
    def create_ticket_class_repository(db: Session) -> "TicketClassRepository":
        from .ticket_class_repository import TicketClassRepository

        return TicketClassRepository(db)

    @staticmethod
    def create_payment_transaction_repository(db: Session) -> "PaymentTransactionRepository":
        from .payment_transaction_repository import PaymentTransactionRepository

        return PaymentTransactionRepository(db)

    @staticmethod
    def create_processed_result_repository(db: Session) -> "ProcessedPaymentResultRepository":
        from .payment_transaction_repository import ProcessedPaymentResultRepository

        return ProcessedPaymentResultRepository(db)

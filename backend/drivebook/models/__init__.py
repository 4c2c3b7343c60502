"""
Database models for the booking and settlement pipeline.

- ScheduleSlot: instructor schedule units and their lifecycle
- TicketClass / TicketClassEnrollment: group classes and per-student seats
- Order / Appointment: durable purchases and the slots they finalize
- CartItem: loosely shaped cart records awaiting checkout
- PaymentTransaction / ProcessedPaymentResult: gateway ledger and idempotency
- User: profile fields used to build the gateway payload
"""

from .cart import CartItem
from .order import Appointment, Order
from .payment_transaction import PaymentTransaction, ProcessedPaymentResult
from .slot import ScheduleSlot
from .ticket_class import TicketClass, TicketClassEnrollment
from .user import User

__all__ = [
    "Appointment",
    "CartItem",
    "Order",
    "PaymentTransaction",
    "ProcessedPaymentResult",
    "ScheduleSlot",
    "TicketClass",
    "TicketClassEnrollment",
    "User",
]

# backend/drivebook/core/enums.py
"""
Core enums for the booking and settlement pipeline.

Values are the strings persisted in the database and exchanged with
clients, so they must stay stable.
"""

from enum import Enum
from typing import Optional


class SlotStatus(str, Enum):
    """Lifecycle of one bookable instructor time unit."""

    AVAILABLE = "available"
    PENDING = "pending"  # held for a student, not yet paid
    BOOKED = "booked"  # paid and confirmed
    CANCELLED = "cancelled"


class ClassType(str, Enum):
    """Kind of service a slot or appointment represents."""

    DRIVING_TEST = "driving_test"
    DRIVING_LESSON = "driving_lesson"
    TICKET_CLASS = "ticket_class"
    GENERAL = "general"

    @classmethod
    def normalize(cls, raw: Optional[str]) -> Optional["ClassType"]:
        """Accept both ``driving test`` and ``driving_test`` spellings."""
        if not raw:
            return None
        value = str(raw).strip().lower().replace(" ", "_").replace("-", "_")
        if value == "ticket":
            return cls.TICKET_CLASS
        try:
            return cls(value)
        except ValueError:
            return None


class PaymentMethod(str, Enum):
    ONLINE = "online"
    LOCAL = "local"


class OrderType(str, Enum):
    """Derived from the mix of item class types in a checkout."""

    DRIVING_TEST = "driving_test"
    DRIVING_LESSON = "driving_lesson"
    TICKET_CLASS = "ticket_class"
    DRIVINGS = "drivings"  # driving test + driving lesson
    CLASSES = "classes"  # legacy composite, never produced by the classifier
    GENERAL = "general"


ORDER_TYPE_DESCRIPTIONS = {
    OrderType.DRIVINGS: "drivings",
    OrderType.DRIVING_TEST: "driving test",
    OrderType.DRIVING_LESSON: "driving lesson",
    OrderType.TICKET_CLASS: "ticket class",
    OrderType.CLASSES: "classes",
    OrderType.GENERAL: "driving services",
}


class PaymentStatus(str, Enum):
    """Order payment lifecycle: pending -> processing -> completed | failed."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"  # user-initiated cancellation before payment


OPEN_PAYMENT_STATUSES = frozenset({PaymentStatus.PENDING, PaymentStatus.PROCESSING})


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class EnrollmentStatus(str, Enum):
    """A student's standing on a ticket class."""

    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class GatewayDecision(str, Enum):
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
    ERROR = "ERROR"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "GatewayDecision":
        value = (raw or "").strip().upper()
        if value == cls.APPROVED.value:
            return cls.APPROVED
        if value in {"DECLINED", "DENIED", "FAILED", "REJECTED"}:
            return cls.DECLINED
        return cls.ERROR


class SettlementStatus(str, Enum):
    """Outcome reported to the caller of the settlement pipeline."""

    APPROVED = "approved"
    DECLINED = "declined"
    ERROR = "error"
    DUPLICATE = "duplicate"

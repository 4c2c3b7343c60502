"""Request/response DTOs for slot holds, slot status and ticket-class seats."""

from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from ..core.enums import PaymentMethod
from .base import StandardizedModel, StrictRequestModel


class ReservePendingRequest(StrictRequestModel):
    slot_id: str = Field(..., min_length=1)
    instructor_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    payment_method: PaymentMethod = PaymentMethod.LOCAL
    order_id: Optional[str] = None


class SlotStatusUpdateRequest(StrictRequestModel):
    """Accepts either a single ``slotId`` or a ``slotIds`` batch."""

    slot_id: Optional[str] = None
    slot_ids: Optional[List[str]] = None
    instructor_id: str = Field(..., min_length=1)
    status: str
    paid: Optional[bool] = None
    payment_id: Optional[str] = None
    student_id: Optional[str] = None

    @model_validator(mode="after")
    def _require_slot(self) -> "SlotStatusUpdateRequest":
        if not self.slot_id and not self.slot_ids:
            raise ValueError("slotId or slotIds is required")
        return self

    @property
    def ids(self) -> List[str]:
        ids = list(self.slot_ids or [])
        if self.slot_id and self.slot_id not in ids:
            ids.insert(0, self.slot_id)
        return ids


class SlotTransitionResponse(StandardizedModel):
    success: bool
    succeeded: List[str] = Field(default_factory=list)
    failed: List[Dict[str, Any]] = Field(default_factory=list)


class VerifySlotRequest(StrictRequestModel):
    slot_id: str = Field(..., min_length=1)
    instructor_id: Optional[str] = None


class VerifySlotResponse(StandardizedModel):
    slot_id: str
    status: str
    paid: bool
    student_id: Optional[str] = None


class TicketClassStatusRequest(StrictRequestModel):
    ticket_class_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    status: str
    payment_id: Optional[str] = None
    order_id: Optional[str] = None


class EnrollmentResponse(StandardizedModel):
    ticket_class_id: str
    student_id: str
    status: str
    was_cancelled: bool = False

"""Order DTOs."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from ..core.enums import PaymentStatus
from .base import StandardizedModel, StrictRequestModel


class OrderLookupRequest(StrictRequestModel):
    order_id: str = Field(..., min_length=1)
    user_id: Optional[str] = None


class OrderStatusUpdateRequest(StrictRequestModel):
    order_id: str = Field(..., min_length=1)
    payment_status: PaymentStatus
    status: Optional[str] = None


class OrderOwnerRequest(StrictRequestModel):
    order_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)


class AppointmentResponse(StandardizedModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    slot_id: Optional[str] = None
    ticket_class_id: Optional[str] = None
    class_id: Optional[str] = None
    instructor_id: Optional[str] = None
    instructor_name: Optional[str] = None
    date: str
    start: str
    end: str
    class_type: str
    student_id: Optional[str] = None
    amount: float
    status: str


class OrderResponse(StandardizedModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    order_number: str
    order_type: str
    items: List[Dict[str, Any]] = Field(default_factory=list)
    total: float
    payment_method: str
    payment_status: str
    status: str
    created_at: datetime
    appointments: List[AppointmentResponse] = Field(default_factory=list)


class CancelOrderResponse(StandardizedModel):
    success: bool
    order_id: str
    payment_status: str
    reverted: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    failed: List[Dict[str, Any]] = Field(default_factory=list)

# backend/drivebook/routes/v1/booking.py
"""
Booking routes - API v1

Endpoints:
    POST /reserve-pending   → Hold one available slot for a student
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from ...api.dependencies import get_slot_state_service
from ...core.exceptions import DomainException
from ...schemas.booking import ReservePendingRequest, SlotTransitionResponse
from ...services.slot_state_service import SlotStateService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["booking-v1"])


@router.post("/reserve-pending", response_model=SlotTransitionResponse)
async def reserve_pending(
    request: ReservePendingRequest,
    slot_service: SlotStateService = Depends(get_slot_state_service),
) -> SlotTransitionResponse:
    """
    Place a pending hold on a slot.

    Returns 409 SLOT_CONFLICT when another student got there first.
    """
    try:
        result = await asyncio.to_thread(
            slot_service.reserve_pending,
            slot_id=request.slot_id,
            instructor_id=request.instructor_id,
            student_id=request.student_id,
            payment_method=request.payment_method,
            order_id=request.order_id,
        )
    except DomainException as e:
        raise e.to_http_exception()
    return SlotTransitionResponse(success=True, succeeded=[result.slot_id])

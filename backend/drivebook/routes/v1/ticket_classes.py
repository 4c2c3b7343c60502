# backend/drivebook/routes/v1/ticket_classes.py
"""
Ticket class routes - API v1

Endpoints:
    POST /update-status   → Confirm, cancel or request a student's seat
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from ...api.dependencies import get_ticket_class_service
from ...core.exceptions import DomainException
from ...schemas.booking import EnrollmentResponse, TicketClassStatusRequest
from ...services.ticket_class_service import TicketClassService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ticket-classes-v1"])


@router.post("/update-status", response_model=EnrollmentResponse)
async def update_enrollment_status(
    request: TicketClassStatusRequest,
    ticket_class_service: TicketClassService = Depends(get_ticket_class_service),
) -> EnrollmentResponse:
    try:
        enrollment = await asyncio.to_thread(
            ticket_class_service.update_status,
            ticket_class_id=request.ticket_class_id,
            student_id=request.student_id,
            status=request.status,
            payment_id=request.payment_id,
            order_id=request.order_id,
        )
    except DomainException as e:
        raise e.to_http_exception()
    return EnrollmentResponse(
        ticket_class_id=enrollment.ticket_class_id,
        student_id=enrollment.student_id,
        status=enrollment.status,
        was_cancelled=enrollment.was_cancelled,
    )

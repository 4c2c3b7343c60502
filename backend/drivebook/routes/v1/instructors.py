# backend/drivebook/routes/v1/instructors.py
"""
Instructor slot routes - API v1

Per-class-type slot finalization used by the settlement collaborators.

Endpoints:
    POST /update-driving-test-status     → Batch status change for driving-test slots
    POST /update-driving-lesson-status   → Batch status change for driving-lesson slots
    POST /verify-slot-status             → Current status and paid flag of one slot
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from ...api.dependencies import get_slot_state_service
from ...core.enums import ClassType
from ...core.exceptions import DomainException, SlotConflictException
from ...schemas.booking import (
    SlotStatusUpdateRequest,
    SlotTransitionResponse,
    VerifySlotRequest,
    VerifySlotResponse,
)
from ...services.slot_state_service import SlotStateService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["instructors-v1"])


async def _update(
    class_type: ClassType, request: SlotStatusUpdateRequest, service: SlotStateService
) -> SlotTransitionResponse:
    try:
        result = await asyncio.to_thread(
            service.update_slot_status,
            class_type=class_type,
            instructor_id=request.instructor_id,
            slot_ids=request.ids,
            status=request.status,
            paid=request.paid,
            payment_id=request.payment_id,
            student_id=request.student_id,
        )
    except DomainException as e:
        raise e.to_http_exception()
    if result.failed and not result.succeeded:
        first = result.failed[0]
        raise SlotConflictException(
            first.slot_id, current_status=first.current_status
        ).to_http_exception()
    return SlotTransitionResponse(
        success=result.all_succeeded,
        succeeded=result.succeeded,
        failed=[
            {"slot_id": failure.slot_id, "current_status": failure.current_status}
            for failure in result.failed
        ],
    )


@router.post("/update-driving-test-status", response_model=SlotTransitionResponse)
async def update_driving_test_status(
    request: SlotStatusUpdateRequest,
    slot_service: SlotStateService = Depends(get_slot_state_service),
) -> SlotTransitionResponse:
    return await _update(ClassType.DRIVING_TEST, request, slot_service)


@router.post("/update-driving-lesson-status", response_model=SlotTransitionResponse)
async def update_driving_lesson_status(
    request: SlotStatusUpdateRequest,
    slot_service: SlotStateService = Depends(get_slot_state_service),
) -> SlotTransitionResponse:
    return await _update(ClassType.DRIVING_LESSON, request, slot_service)


@router.post("/verify-slot-status", response_model=VerifySlotResponse)
async def verify_slot_status(
    request: VerifySlotRequest,
    slot_service: SlotStateService = Depends(get_slot_state_service),
) -> VerifySlotResponse:
    try:
        result = await asyncio.to_thread(
            slot_service.verify_slot, request.slot_id, request.instructor_id
        )
    except DomainException as e:
        raise e.to_http_exception()
    return VerifySlotResponse(**result)

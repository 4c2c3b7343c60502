# backend/drivebook/routes/v1/transactions.py
"""
Transaction routes - API v1

Endpoints:
    POST /check-status   → Gateway decision and order payment status (read only)
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from ...api.dependencies import get_transaction_status_service
from ...core.exceptions import DomainException
from ...schemas.payments import TransactionStatusRequest, TransactionStatusResponse
from ...services.transaction_status_service import TransactionStatusService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transactions-v1"])


@router.post("/check-status", response_model=TransactionStatusResponse)
async def check_status(
    request: TransactionStatusRequest,
    status_service: TransactionStatusService = Depends(get_transaction_status_service),
) -> TransactionStatusResponse:
    try:
        result = await asyncio.to_thread(
            status_service.check_status, request.order_id, request.user_id
        )
    except DomainException as e:
        raise e.to_http_exception()
    return TransactionStatusResponse(**result)

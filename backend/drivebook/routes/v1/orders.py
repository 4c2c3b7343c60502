# backend/drivebook/routes/v1/orders.py
"""
Order routes - API v1

Endpoints:
    POST /details         → Order with its appointments
    POST /update-status   → Write paymentStatus (and status)
    POST /cancel          → User-initiated cancellation
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from ...api.dependencies import get_cancellation_service, get_order_service
from ...core.exceptions import DomainException
from ...schemas.orders import (
    CancelOrderResponse,
    OrderLookupRequest,
    OrderOwnerRequest,
    OrderResponse,
    OrderStatusUpdateRequest,
)
from ...services.cancellation_service import CancellationService
from ...services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["orders-v1"])


@router.post("/details", response_model=OrderResponse)
async def order_details(
    request: OrderLookupRequest,
    order_service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    try:
        order = await asyncio.to_thread(order_service.get_details, request.order_id, request.user_id)
    except DomainException as e:
        raise e.to_http_exception()
    return OrderResponse.model_validate(order)


@router.post("/update-status", response_model=OrderResponse)
async def update_order_status(
    request: OrderStatusUpdateRequest,
    order_service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    try:
        order = await asyncio.to_thread(
            order_service.update_status, request.order_id, request.payment_status, request.status
        )
    except DomainException as e:
        raise e.to_http_exception()
    return OrderResponse.model_validate(order)


@router.post("/cancel", response_model=CancelOrderResponse)
async def cancel_order(
    request: OrderOwnerRequest,
    cancellation_service: CancellationService = Depends(get_cancellation_service),
) -> CancelOrderResponse:
    try:
        result = await asyncio.to_thread(
            cancellation_service.cancel_order, request.order_id, request.user_id
        )
    except DomainException as e:
        raise e.to_http_exception()
    return CancelOrderResponse(**result)

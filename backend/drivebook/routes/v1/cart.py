# backend/drivebook/routes/v1/cart.py
"""
Cart routes - API v1

Endpoints:
    DELETE /   → Remove every cart item of a user
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from ...api.dependencies import get_order_service
from ...core.exceptions import DomainException
from ...schemas.payments import CartClearRequest, CartClearResponse
from ...services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cart-v1"])


@router.delete("", response_model=CartClearResponse)
async def clear_cart(
    request: CartClearRequest,
    order_service: OrderService = Depends(get_order_service),
) -> CartClearResponse:
    try:
        removed = await asyncio.to_thread(order_service.clear_cart, request.user_id)
    except DomainException as e:
        raise e.to_http_exception()
    return CartClearResponse(success=True, removed=removed)

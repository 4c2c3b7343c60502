# backend/drivebook/routes/v1/payments.py
"""
Payment routes - API v1

Endpoints:
    POST /redirect       → Checkout: wake gateway, resolve order, return redirect URL
    POST /return         → Process the gateway's browser return (once per transaction)
    POST /reconcile      → Settle an order from the ledger's latest decision
    POST /revert-slots   → Release an order's reservations (payment-cancel page)
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from ...api.dependencies import (
    get_cancellation_service,
    get_checkout_service,
    get_settlement_service,
)
from ...core.exceptions import DomainException
from ...schemas.orders import OrderOwnerRequest
from ...schemas.payments import (
    CheckoutRequest,
    CheckoutResponse,
    GatewayReturnRequest,
    RevertSlotsResponse,
    SettlementResponse,
)
from ...services.cancellation_service import CancellationService
from ...services.checkout_service import CheckoutService
from ...services.settlement_service import SettlementService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["payments-v1"])


@router.post("/redirect", response_model=CheckoutResponse)
async def payment_redirect(
    request: CheckoutRequest,
    checkout_service: CheckoutService = Depends(get_checkout_service),
) -> CheckoutResponse:
    """
    Start a checkout and return the gateway URL the browser must follow.

    503 means the gateway is down or still starting, 502 that the hand-off
    failed, 400 that the cart holds nothing payable.
    """
    try:
        result = await asyncio.to_thread(
            checkout_service.checkout, request.user_id, request.order_id
        )
    except DomainException as e:
        raise e.to_http_exception()
    return CheckoutResponse(
        redirect_url=result.redirect_url,
        order_id=result.order_id,
        order_number=result.order_number,
    )


@router.post("/return", response_model=SettlementResponse)
async def payment_return(
    request: GatewayReturnRequest,
    settlement_service: SettlementService = Depends(get_settlement_service),
) -> SettlementResponse:
    try:
        outcome = await asyncio.to_thread(
            settlement_service.process_return,
            request.gateway_params,
            user_id=request.user_id,
            order_id=request.order_id,
            session_key=request.session_key,
        )
    except DomainException as e:
        raise e.to_http_exception()
    return SettlementResponse(**outcome.to_dict())


@router.post("/reconcile", response_model=SettlementResponse)
async def reconcile_payment(
    request: OrderOwnerRequest,
    settlement_service: SettlementService = Depends(get_settlement_service),
) -> SettlementResponse:
    try:
        outcome = await asyncio.to_thread(
            settlement_service.reconcile_order, request.order_id, request.user_id
        )
    except DomainException as e:
        raise e.to_http_exception()
    return SettlementResponse(**outcome.to_dict())


@router.post("/revert-slots", response_model=RevertSlotsResponse)
async def revert_slots(
    request: OrderOwnerRequest,
    cancellation_service: CancellationService = Depends(get_cancellation_service),
) -> RevertSlotsResponse:
    try:
        report = await asyncio.to_thread(
            cancellation_service.revert_order_slots, request.order_id, request.user_id
        )
    except DomainException as e:
        raise e.to_http_exception()
    return RevertSlotsResponse(success=True, **report.to_dict())

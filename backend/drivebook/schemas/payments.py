"""Checkout, gateway-return and transaction-status DTOs."""

from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from .base import StandardizedModel, StrictRequestModel


class CheckoutRequest(StrictRequestModel):
    user_id: str = Field(..., min_length=1)
    order_id: Optional[str] = None


class CheckoutResponse(StandardizedModel):
    redirect_url: str
    order_id: str
    order_number: str


class GatewayReturnRequest(StrictRequestModel):
    """Browser return from the gateway: ``ssl_*`` result fields plus our ids."""

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    user_id: Optional[str] = None
    order_id: Optional[str] = None
    session_key: Optional[str] = None

    @property
    def gateway_params(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class SettlementResponse(StandardizedModel):
    success: bool
    status: str
    order_id: Optional[str] = None
    user_id: Optional[str] = None
    transaction_id: Optional[str] = None
    message: str = ""
    error_kind: Optional[str] = None
    failed: List[Dict[str, Any]] = Field(default_factory=list)


class RevertSlotsResponse(StandardizedModel):
    success: bool
    reverted: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    failed: List[Dict[str, Any]] = Field(default_factory=list)


class TransactionStatusRequest(StrictRequestModel):
    order_id: str = Field(..., min_length=1)
    user_id: Optional[str] = None


class TransactionStatusResponse(StandardizedModel):
    success: bool
    transaction_status: Optional[str] = None
    order_status: Optional[str] = None
    message: str


class CartClearRequest(StrictRequestModel):
    user_id: str = Field(..., min_length=1)


class CartClearResponse(StandardizedModel):
    success: bool
    removed: int

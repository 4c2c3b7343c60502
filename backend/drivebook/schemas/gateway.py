"""
Payment gateway wire shapes.

``GatewayPayload`` is the one canonical hand-off record. The gateway (and
the card processor behind it) has read user/order identifiers under several
historical field names, so ``to_wire`` emits every alias from the same two
fields instead of tracking them separately.
"""

from decimal import Decimal
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field

from ..core.enums import GatewayDecision


def customer_code(user_id: str, order_id: str) -> str:
    """Last 4 chars of the user id followed by the last 4 of the order id."""
    return f"{user_id[-4:]}{order_id[-4:]}"


class GatewayLineItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    title: str
    price: float
    quantity: int = 1
    description: Optional[str] = None


class GatewayPayload(BaseModel):
    user_id: str
    order_id: str
    amount: Decimal
    first_name: str = "John"
    last_name: str = "Doe"
    email: str = ""
    phone: str = ""
    street_address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    dni: str = ""
    items: List[GatewayLineItem] = Field(default_factory=list)
    success_url: str
    cancel_url: str
    timestamp_ms: int = Field(default_factory=lambda: int(time.time() * 1000))

    @classmethod
    def build(cls, *, order: Any, user: Any, frontend_base_url: str) -> "GatewayPayload":
        """Assemble from an Order and an optional User; absent profile fields get placeholders."""
        query = urlencode({"userId": order.user_id, "orderId": order.id})

        def profile(attr: str, default: str = "") -> str:
            value = getattr(user, attr, None) if user is not None else None
            return value or default

        return cls(
            user_id=order.user_id,
            order_id=order.id,
            amount=Decimal(order.total).quantize(Decimal("0.01")),
            first_name=profile("first_name", "John"),
            last_name=profile("last_name", "Doe"),
            email=profile("email"),
            phone=profile("phone_number"),
            street_address=profile("street_address"),
            city=profile("city"),
            state=profile("state"),
            zip_code=profile("zip_code"),
            dni=profile("dni"),
            items=[GatewayLineItem.model_validate(item) for item in (order.items or [])],
            success_url=f"{frontend_base_url}/payment-success?{query}",
            cancel_url=f"{frontend_base_url}/payment-retry?{query}",
        )

    @property
    def customer_code(self) -> str:
        return customer_code(self.user_id, self.order_id)

    def to_wire(self) -> Dict[str, Any]:
        uid, oid = self.user_id, self.order_id
        return {
            "amount": float(self.amount),
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "streetAddress": self.street_address,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "dni": self.dni,
            "items": [item.model_dump(mode="json") for item in self.items],
            "userId": uid,
            "orderId": oid,
            "user_id": uid,
            "order_id": oid,
            "customUserId": uid,
            "customOrderId": oid,
            "userIdentifier": uid,
            "orderIdentifier": oid,
            "encodedData": f"uid:{uid}|oid:{oid}",
            "backupData": f"{uid}:{oid}",
            "metadata": {
                "userId": uid,
                "orderId": oid,
                "timestamp": self.timestamp_ms,
                "source": "frontend-checkout",
            },
            "customer_code": self.customer_code,
            "customerCode": self.customer_code,
            "cancelUrl": self.cancel_url,
            "successUrl": self.success_url,
        }


class GatewayResult(BaseModel):
    """Parsed response of the gateway's process-payment endpoint."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    status: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")
    order_id: Optional[str] = Field(default=None, alias="orderId")
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")
    message: Optional[str] = None

    @property
    def decision(self) -> GatewayDecision:
        return GatewayDecision.parse(self.status)

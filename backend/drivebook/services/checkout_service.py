# backend/drivebook/services/checkout_service.py
"""
Checkout Service

Orchestrates one checkout: gateway readiness first (so an unreachable
gateway never leaves slots held), then order resolution, then the
payment hand-off.
"""

from dataclasses import dataclass
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..integrations.payment_gateway_client import PaymentGatewayClient
from ..models.user import User
from ..schemas.gateway import GatewayPayload
from .base import BaseService
from .gateway_bootstrap import GatewayBootstrap
from .order_resolver import OrderResolver
from .payment_handoff import PaymentHandoff

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    redirect_url: str
    order_id: str
    order_number: str
    created: bool


class CheckoutService(BaseService):
    def __init__(
        self,
        db: Session,
        client: Optional[PaymentGatewayClient] = None,
        *,
        bootstrap: Optional[GatewayBootstrap] = None,
        handoff: Optional[PaymentHandoff] = None,
        resolver: Optional[OrderResolver] = None,
    ):
        super().__init__(db)
        self.client = client or PaymentGatewayClient.from_settings()
        self.bootstrap = bootstrap or GatewayBootstrap(self.client)
        self.handoff = handoff or PaymentHandoff(self.client)
        self.resolver = resolver or OrderResolver(db)

    @BaseService.measure_operation("checkout")
    def checkout(self, user_id: str, order_id: Optional[str] = None) -> CheckoutResult:
        """
        Raises:
            GatewayWakeException / GatewayNotReadyException: gateway unavailable
            ValidationException: nothing payable to check out
            GatewayException: the redirect hand-off exhausted its attempts
        """
        self.bootstrap.ensure_ready()

        resolved = self.resolver.resolve(user_id, order_id)
        order = resolved.order
        user = self.db.get(User, user_id)
        if user is None:
            self.logger.warning("checkout_user_profile_missing", extra={"user_id": user_id})

        payload = GatewayPayload.build(
            order=order, user=user, frontend_base_url=settings.frontend_base_url
        )
        redirect_url = self.handoff.request_redirect(payload)
        self.log_operation("checkout", user_id=user_id, order_id=order.id, created=resolved.created)
        return CheckoutResult(
            redirect_url=redirect_url,
            order_id=order.id,
            order_number=order.order_number,
            created=resolved.created,
        )

# backend/drivebook/services/payment_handoff.py
"""
Payment Hand-off

Posts the gateway payload and returns the redirect URL the browser must
follow. Every failed attempt (401, other non-2xx, malformed body or
transport error) consumes one attempt of a small fixed budget.
"""

import logging
from typing import Optional

from ..core.config import settings
from ..core.exceptions import GatewayException
from ..integrations.payment_gateway_client import PaymentGatewayClient, PaymentGatewayError
from ..schemas.gateway import GatewayPayload

logger = logging.getLogger(__name__)


class PaymentHandoff:
    def __init__(self, client: PaymentGatewayClient, max_attempts: Optional[int] = None) -> None:
        self.client = client
        self.max_attempts = max_attempts or settings.gateway_redirect_max_attempts

    def request_redirect(self, payload: GatewayPayload) -> str:
        """
        Raises:
            GatewayException: every attempt failed; carries the last error text
        """
        wire = payload.to_wire()
        last_error = ""
        for attempt in range(1, self.max_attempts + 1):
            try:
                body = self.client.request_redirect(wire)
            except PaymentGatewayError as exc:
                last_error = str(exc)
                if exc.status_code == 401:
                    logger.warning(
                        "gateway_redirect_unauthorized",
                        extra={"order_id": payload.order_id, "attempt": attempt},
                    )
                else:
                    logger.error(
                        "gateway_redirect_failed",
                        extra={"order_id": payload.order_id, "attempt": attempt, "error": last_error},
                    )
                continue

            redirect_url = body.get("redirectUrl")
            if isinstance(redirect_url, str) and redirect_url:
                logger.info(
                    "gateway_redirect_obtained",
                    extra={"order_id": payload.order_id, "attempt": attempt},
                )
                return redirect_url
            last_error = "Invalid redirect URL received from gateway"
            logger.error(
                "gateway_redirect_malformed",
                extra={"order_id": payload.order_id, "attempt": attempt},
            )

        raise GatewayException(last_error, attempts=self.max_attempts)

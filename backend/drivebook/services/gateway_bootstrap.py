# backend/drivebook/services/gateway_bootstrap.py
"""
Gateway Bootstrap

Two-phase readiness check run before every payment hand-off: wake the
gateway host, then poll its health endpoint on a fixed budget. The two
failures raise different exceptions so the client can tell "service down"
from "service starting".
"""

import logging
import time
from typing import Callable, Optional

from ..core.config import settings
from ..core.exceptions import GatewayNotReadyException, GatewayWakeException
from ..core.retry import RetryBudget, poll_until
from ..integrations.gateway_host import GatewayHostController
from ..integrations.payment_gateway_client import PaymentGatewayClient

logger = logging.getLogger(__name__)


class GatewayBootstrap:
    def __init__(
        self,
        client: PaymentGatewayClient,
        host: Optional[GatewayHostController] = None,
        *,
        budget: Optional[RetryBudget] = None,
        attempt_timeout_s: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.host = host or GatewayHostController.from_settings()
        self.budget = budget or RetryBudget(
            attempts=settings.gateway_health_attempts,
            interval_s=settings.gateway_health_interval_s,
        )
        self.attempt_timeout_s = attempt_timeout_s or settings.gateway_health_timeout_s
        self._sleep = sleep

    def wake(self) -> None:
        result = self.host.wake()
        if not result.success:
            raise GatewayWakeException(result.error)

    def wait_until_healthy(self) -> bool:
        def _exhausted() -> bool:
            raise GatewayNotReadyException(self.budget.attempts)

        return poll_until(
            lambda: self.client.health(self.attempt_timeout_s),
            self.budget,
            on_exhausted=_exhausted,
            sleep=self._sleep,
            label="gateway_health",
        )

    def ensure_ready(self) -> None:
        """
        Raises:
            GatewayWakeException: the host could not be started
            GatewayNotReadyException: the host never reported healthy
        """
        self.wake()
        self.wait_until_healthy()
        logger.info("gateway_ready", extra={"gateway": self.client.base_url})

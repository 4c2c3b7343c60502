"""Gateway readiness: wake the host, then poll health on a fixed budget."""

from unittest.mock import MagicMock

import httpx
import pytest

from drivebook.core.exceptions import GatewayNotReadyException, GatewayWakeException
from drivebook.core.retry import RetryBudget
from drivebook.integrations.gateway_host import WakeResult
from drivebook.services.gateway_bootstrap import GatewayBootstrap

from tests.factories.gateway import running_host

pytestmark = pytest.mark.unit


def _bootstrap(gateway, host=None, attempts=3, sleeps=None):
    return GatewayBootstrap(
        gateway.client(),
        host or running_host(),
        budget=RetryBudget(attempts, 3.0),
        attempt_timeout_s=2.0,
        sleep=(sleeps.append if sleeps is not None else lambda _: None),
    )


def test_ready_when_health_returns_2xx(gateway):
    gateway.healthy()
    _bootstrap(gateway).ensure_ready()
    assert len(gateway.calls("/health")) == 1


def test_becomes_ready_after_a_few_failures(gateway):
    gateway.reply("/health", httpx.Response(502), httpx.Response(503), httpx.Response(200, json={}))
    sleeps = []
    _bootstrap(gateway, attempts=5, sleeps=sleeps).ensure_ready()
    assert len(gateway.calls("/health")) == 3
    assert sleeps == [3.0, 3.0]


def test_health_budget_exhaustion_raises_not_ready(gateway):
    gateway.reply("/health", httpx.Response(503))
    with pytest.raises(GatewayNotReadyException) as exc_info:
        _bootstrap(gateway, attempts=4).ensure_ready()
    assert exc_info.value.details == {"attempts": 4}
    assert len(gateway.calls("/health")) == 4


def test_transport_errors_count_as_failed_attempts(gateway):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    gateway.reply("/health", refuse)
    with pytest.raises(GatewayNotReadyException):
        _bootstrap(gateway, attempts=2).ensure_ready()


def test_wake_failure_raises_before_any_health_check(gateway):
    host = MagicMock()
    host.wake.return_value = WakeResult(success=False, error="InsufficientInstanceCapacity")
    gateway.healthy()

    with pytest.raises(GatewayWakeException) as exc_info:
        _bootstrap(gateway, host=host).ensure_ready()

    assert exc_info.value.details == {"error": "InsufficientInstanceCapacity"}
    assert gateway.calls("/health") == []

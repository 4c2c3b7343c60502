"""Redirect hand-off: small fixed retry budget, last error surfaced."""

from decimal import Decimal
import json

import httpx
import pytest

from drivebook.core.exceptions import GatewayException
from drivebook.schemas.gateway import GatewayPayload
from drivebook.services.payment_handoff import PaymentHandoff

pytestmark = pytest.mark.unit

REDIRECT = "/api/payments/redirect"


@pytest.fixture
def payload():
    return GatewayPayload(
        user_id="01USER0000000000000000ABCD",
        order_id="01ORDER000000000000000WXYZ",
        amount=Decimal("60.00"),
        success_url="http://frontend.test/payment-success",
        cancel_url="http://frontend.test/payment-retry",
    )


def test_returns_redirect_url(gateway, payload):
    gateway.redirect_to("https://pay.example/checkout/abc")
    url = PaymentHandoff(gateway.client(), max_attempts=2).request_redirect(payload)
    assert url == "https://pay.example/checkout/abc"
    sent = gateway.calls(REDIRECT)[0]
    assert sent.headers["Authorization"] == "Bearer test-key"


def test_401_consumes_an_attempt_then_succeeds(gateway, payload):
    gateway.reply(
        REDIRECT,
        httpx.Response(401, json={"error": "token expired"}),
        httpx.Response(200, json={"redirectUrl": "https://pay.example/ok"}),
    )
    assert PaymentHandoff(gateway.client(), max_attempts=2).request_redirect(payload) == "https://pay.example/ok"
    assert len(gateway.calls(REDIRECT)) == 2


def test_exhaustion_reports_last_error(gateway, payload):
    gateway.reply(
        REDIRECT,
        httpx.Response(401, json={"error": "token expired"}),
        httpx.Response(200, json={"redirectUrl": ""}),
    )
    with pytest.raises(GatewayException) as exc_info:
        PaymentHandoff(gateway.client(), max_attempts=2).request_redirect(payload)
    assert exc_info.value.last_error == "Invalid redirect URL received from gateway"
    assert exc_info.value.details["attempts"] == 2


def test_http_error_text_is_kept(gateway, payload):
    gateway.reply(REDIRECT, httpx.Response(500, json={"message": "processor offline"}))
    with pytest.raises(GatewayException) as exc_info:
        PaymentHandoff(gateway.client(), max_attempts=3).request_redirect(payload)
    assert exc_info.value.last_error == "HTTP 500: processor offline"
    assert len(gateway.calls(REDIRECT)) == 3


def test_wire_payload_carries_every_identifier_alias(gateway, payload):
    gateway.redirect_to("https://pay.example/x")
    PaymentHandoff(gateway.client(), max_attempts=1).request_redirect(payload)
    body = json.loads(gateway.calls(REDIRECT)[0].content)
    for key in ("userId", "user_id", "customUserId", "userIdentifier"):
        assert body[key] == payload.user_id
    for key in ("orderId", "order_id", "customOrderId", "orderIdentifier"):
        assert body[key] == payload.order_id
    assert body["customerCode"] == body["customer_code"] == "ABCDWXYZ"
    assert body["encodedData"] == f"uid:{payload.user_id}|oid:{payload.order_id}"
    assert body["metadata"]["source"] == "frontend-checkout"

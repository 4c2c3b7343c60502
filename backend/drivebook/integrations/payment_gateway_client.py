"""Minimal client for the payment gateway host."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, cast

import httpx
from pydantic import SecretStr

from ..core.config import settings
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)


class PaymentGatewayError(RuntimeError):
    """Raised when the gateway responds with an error or cannot be reached."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        *,
        error_body: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_body = error_body


class PaymentGatewayClient:
    """Thin client for the gateway's redirect, settlement and status endpoints."""

    REDIRECT_PATH = "/api/payments/redirect"
    PROCESS_PAYMENT_PATH = "/api/frontend-webhook/process-payment"
    HEALTH_PATH = "/health"

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str | SecretStr | None = None,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        secret_value = api_key.get_secret_value() if isinstance(api_key, SecretStr) else api_key
        self._api_key = secret_value or None
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, transport: httpx.BaseTransport | None = None) -> "PaymentGatewayClient":
        return cls(
            base_url=settings.gateway_base_url,
            api_key=settings.gateway_api_key,
            timeout=settings.gateway_request_timeout_s,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def health(self, timeout: float) -> bool:
        """True on any 2xx; raises on transport errors and non-2xx."""

        self.request("GET", self.HEALTH_PATH, timeout=timeout, endpoint="health")
        return True

    def request_redirect(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", self.REDIRECT_PATH, json_body=payload, endpoint="redirect")

    def process_payment(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return self.request(
            "POST", self.PROCESS_PAYMENT_PATH, json_body=params, endpoint="process_payment"
        )

    def order_transactions(self, order_id: str) -> Dict[str, Any]:
        if not order_id:
            raise ValueError("order_id must be provided")
        return self.request(
            "GET",
            f"/api/payment-status/order/{order_id}/transactions",
            endpoint="order_transactions",
        )

    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Dict[str, Any] | None = None,
        params: Dict[str, Any] | None = None,
        timeout: float | None = None,
        endpoint: str = "raw",
    ) -> Dict[str, Any]:
        """Perform a raw gateway request and return the parsed JSON payload."""

        url = f"{self._base_url}{path}"
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        with httpx.Client(
            timeout=timeout if timeout is not None else self._timeout,
            transport=self._transport,
            headers=headers,
        ) as client:
            request = client.build_request(method, url, json=json_body, params=params)
            try:
                response = client.send(request)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                error_payload: Any | None = None
                try:
                    error_payload = exc.response.json()
                except json.JSONDecodeError:
                    error_payload = exc.response.text
                prometheus_metrics.record_gateway_request(endpoint, f"http_{status}")
                logger.warning(
                    "Gateway error %s for %s %s: %s",
                    status,
                    method,
                    path,
                    exc.response.text[:500],
                )
                raise PaymentGatewayError(
                    message=_error_message(status, error_payload),
                    status_code=status,
                    error_body=error_payload,
                ) from exc
            except httpx.RequestError as exc:
                prometheus_metrics.record_gateway_request(endpoint, "transport_error")
                logger.warning("Gateway request failure for %s %s: %s", method, path, str(exc))
                raise PaymentGatewayError(f"Failed to reach payment gateway: {exc}") from exc

        prometheus_metrics.record_gateway_request(endpoint, "success")
        if not response.content:
            return {}
        try:
            body = response.json()
        except json.JSONDecodeError as exc:
            logger.error("Invalid JSON from gateway for %s %s: %s", method, path, response.text)
            raise PaymentGatewayError("Received malformed JSON from payment gateway") from exc
        if isinstance(body, list):
            return {"items": body}
        return cast(Dict[str, Any], body)


def _error_message(status: int, payload: Any) -> str:
    if isinstance(payload, dict):
        detail = payload.get("error") or payload.get("message") or payload.get("detail")
        if detail:
            return f"HTTP {status}: {detail}"
    return f"HTTP {status}"

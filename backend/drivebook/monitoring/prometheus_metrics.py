"""
Prometheus metrics for the booking and settlement pipeline.

Metrics live in a private registry so tests and multiple app instances
do not collide with the default process collectors.
"""

from typing import Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Histogram, generate_latest

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "drivebook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

service_operations_total = Counter(
    "drivebook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "drivebook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

slot_transitions_total = Counter(
    "drivebook_slot_transitions_total",
    "Slot status transitions by target status and result",
    ["to_status", "result"],
    registry=REGISTRY,
)

gateway_requests_total = Counter(
    "drivebook_gateway_requests_total",
    "Calls made to the payment gateway host",
    ["endpoint", "outcome"],
    registry=REGISTRY,
)

settlements_total = Counter(
    "drivebook_settlements_total",
    "Settlement pipeline outcomes",
    ["outcome"],
    registry=REGISTRY,
)

settlement_lock_total = Counter(
    "drivebook_settlement_lock_total",
    "Settlement mutex operations",
    ["action", "result"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade so call sites do not depend on metric objects directly."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str,
        error_type: Optional[str] = None,
    ) -> None:
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_slot_transition(to_status: str, result: str) -> None:
        slot_transitions_total.labels(to_status=to_status, result=result).inc()

    @staticmethod
    def record_gateway_request(endpoint: str, outcome: str) -> None:
        gateway_requests_total.labels(endpoint=endpoint, outcome=outcome).inc()

    @staticmethod
    def record_settlement(outcome: str) -> None:
        settlements_total.labels(outcome=outcome).inc()

    @staticmethod
    def record_settlement_lock(action: str, result: str) -> None:
        settlement_lock_total.labels(action=action, result=result).inc()

    @staticmethod
    def get_metrics() -> bytes:
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()

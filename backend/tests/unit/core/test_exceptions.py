"""Error kinds and HTTP mapping of domain exceptions."""

import pytest

from drivebook.core.exceptions import (
    ConsistencyException,
    ErrorKind,
    GatewayException,
    GatewayNotReadyException,
    GatewayWakeException,
    NotFoundException,
    SlotConflictException,
    ValidationException,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "exc, status, kind",
    [
        (ValidationException("bad cart"), 400, ErrorKind.VALIDATION),
        (NotFoundException("missing"), 404, ErrorKind.VALIDATION),
        (SlotConflictException("slot-1", current_status="booked"), 409, ErrorKind.CONFLICT),
        (GatewayWakeException("boom"), 503, ErrorKind.AVAILABILITY),
        (GatewayNotReadyException(20), 503, ErrorKind.AVAILABILITY),
        (GatewayException("HTTP 401", attempts=2), 502, ErrorKind.GATEWAY),
        (ConsistencyException("unverified"), 500, ErrorKind.CONSISTENCY),
    ],
)
def test_status_and_kind(exc, status, kind):
    http_exc = exc.to_http_exception()
    assert http_exc.status_code == status
    assert http_exc.detail["kind"] == kind


def test_availability_codes_distinguish_down_from_starting():
    assert GatewayWakeException("stopped").code == "GATEWAY_DOWN"
    assert GatewayNotReadyException(3).code == "GATEWAY_STARTING"
    assert GatewayNotReadyException(3).details == {"attempts": 3}


def test_gateway_exception_carries_last_error():
    exc = GatewayException("Invalid redirect URL received from gateway", attempts=2)
    assert exc.last_error == "Invalid redirect URL received from gateway"
    assert "after 2 attempts" in exc.message
    assert exc.to_dict()["details"]["last_error"] == exc.last_error


def test_slot_conflict_details():
    exc = SlotConflictException("slot-9", current_status="pending")
    assert exc.code == "SLOT_CONFLICT"
    assert exc.details == {"slot_id": "slot-9", "current_status": "pending"}
    assert exc.message == "This slot is no longer available"

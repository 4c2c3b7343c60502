"""Status check reads the ledger, falls back to the gateway, never mutates the order."""

import pytest

from drivebook.core.enums import GatewayDecision, PaymentStatus
from drivebook.core.exceptions import ForbiddenException
from drivebook.repositories.order_repository import OrderRepository
from drivebook.repositories.payment_transaction_repository import PaymentTransactionRepository
from drivebook.services.transaction_status_service import TransactionStatusService

from tests.factories.builders import make_order, make_user

pytestmark = pytest.mark.unit


def _transactions_path(order):
    return f"/api/payment-status/order/{order.id}/transactions"


def test_approved_but_unsettled_order_is_not_success(db, gateway):
    user = make_user(db)
    order = make_order(db, user.id)
    PaymentTransactionRepository(db).record(order_id=order.id, status="APPROVED", transaction_id="txn-1")
    db.commit()

    result = TransactionStatusService(db, gateway.client()).check_status(order.id, user.id)

    assert result == {
        "success": False,
        "transaction_status": "APPROVED",
        "order_status": "pending",
        "message": "Payment approved, order awaiting settlement",
    }
    assert OrderRepository(db).get_order(order.id).payment_status == "pending"
    assert gateway.requests == []


def test_completed_and_approved_is_success(db, gateway):
    user = make_user(db)
    order = make_order(db, user.id, payment_status=PaymentStatus.COMPLETED)
    PaymentTransactionRepository(db).record(order_id=order.id, status="APPROVED", transaction_id="txn-1")
    db.commit()

    result = TransactionStatusService(db, gateway.client()).check_status(order.id)

    assert result["success"] is True
    assert result["message"] == "Order already completed"


def test_falls_back_to_gateway_ledger_and_caches_it(db, gateway):
    user = make_user(db)
    order = make_order(db, user.id)
    gateway.json(
        _transactions_path(order),
        {
            "transactions": [
                {
                    "transactionId": "txn-7",
                    "status": "declined",
                    "resultMessage": "Do not honor",
                    "amount": "60.00",
                },
                {"transactionId": "txn-6", "status": "ERROR"},
            ]
        },
    )
    service = TransactionStatusService(db, gateway.client())

    result = service.check_status(order.id)

    assert result["transaction_status"] == "DECLINED"
    assert result["message"] == "Do not honor"
    cached = PaymentTransactionRepository(db).latest_for_order(order.id)
    assert cached.transaction_id == "txn-7"
    assert service.gateway_decision(order.id) == GatewayDecision.DECLINED
    assert len(gateway.calls(_transactions_path(order))) == 1


def test_no_transaction_anywhere(db, gateway):
    user = make_user(db)
    order = make_order(db, user.id)
    gateway.json(_transactions_path(order), {"transactions": []})

    result = TransactionStatusService(db, gateway.client()).check_status(order.id)

    assert result["success"] is False
    assert result["transaction_status"] is None
    assert result["order_status"] == "pending"


def test_gateway_lookup_failure_is_treated_as_unknown(db, gateway):
    user = make_user(db)
    order = make_order(db, user.id)
    gateway.json(_transactions_path(order), {"error": "down"}, status_code=503)
    assert TransactionStatusService(db, gateway.client()).gateway_decision(order.id) is None


def test_other_users_order_is_forbidden(db, gateway):
    user = make_user(db)
    order = make_order(db, user.id)
    with pytest.raises(ForbiddenException):
        TransactionStatusService(db, gateway.client()).check_status(order.id, "01SOMEONEELSE0000000000000")

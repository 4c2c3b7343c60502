"""HTTP surface: request aliases, status codes and error bodies."""

from fastapi.testclient import TestClient
import pytest

from drivebook.api.dependencies import get_db, get_gateway_client
from drivebook.core.enums import SlotStatus
from drivebook.main import app
from drivebook.repositories.cart_repository import CartRepository
from drivebook.repositories.payment_transaction_repository import PaymentTransactionRepository
from drivebook.repositories.slot_repository import SlotRepository

from tests.factories.builders import INSTRUCTOR_ID, add_cart_item, make_order, make_slot, make_user

pytestmark = pytest.mark.unit


@pytest.fixture
def client(session_factory, gateway):
    def override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway_client] = lambda: gateway.client()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_reserve_pending_then_conflict(client, db):
    slot = make_slot(db)
    body = {"slotId": slot.id, "instructorId": INSTRUCTOR_ID, "studentId": "01STUDENT00000000000000AAA"}

    first = client.post("/api/v1/booking/reserve-pending", json=body)
    second = client.post(
        "/api/v1/booking/reserve-pending", json={**body, "studentId": "01STUDENT00000000000000BBB"}
    )

    assert first.status_code == 200
    assert first.json() == {"success": True, "succeeded": [slot.id], "failed": []}
    assert second.status_code == 409
    detail = second.json()["detail"]
    assert detail["code"] == "SLOT_CONFLICT"
    assert detail["kind"] == "conflict"
    assert detail["details"] == {"slot_id": slot.id, "current_status": "pending"}
    assert SlotRepository(db).get_slot(slot.id).student_id == "01STUDENT00000000000000AAA"


def test_unknown_request_fields_are_rejected(client):
    response = client.post(
        "/api/v1/booking/reserve-pending",
        json={"slotId": "s", "instructorId": "i", "studentId": "u", "surprise": 1},
    )
    assert response.status_code == 422


def test_instructor_update_all_failed_is_409(client, db):
    slot = make_slot(db, status=SlotStatus.BOOKED, student_id="01STUDENT00000000000000AAA")

    response = client.post(
        "/api/v1/instructors/update-driving-test-status",
        json={"slotId": slot.id, "instructorId": INSTRUCTOR_ID, "status": "pending", "studentId": "x"},
    )

    assert response.status_code == 409
    assert response.json()["detail"]["details"]["current_status"] == "booked"


def test_verify_slot_status(client, db):
    slot = make_slot(db, status=SlotStatus.BOOKED, student_id="01STUDENT00000000000000AAA")

    response = client.post(
        "/api/v1/instructors/verify-slot-status",
        json={"slotId": slot.id, "instructorId": INSTRUCTOR_ID},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "booked"
    assert response.json()["paid"] is True


def test_check_status_reports_without_settling(client, db):
    user = make_user(db)
    order = make_order(db, user.id)
    PaymentTransactionRepository(db).record(order_id=order.id, status="APPROVED", transaction_id="t-1")
    db.commit()

    response = client.post(
        "/api/v1/transactions/check-status", json={"orderId": order.id, "userId": user.id}
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": False,
        "transactionStatus": "APPROVED",
        "orderStatus": "pending",
        "message": "Payment approved, order awaiting settlement",
    }


def test_order_details_not_found(client):
    response = client.post(
        "/api/v1/orders/details", json={"orderId": "01MISSINGORDER000000000000"}
    )
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "ORDER_NOT_FOUND"


def test_clear_cart(client, db):
    user = make_user(db)
    add_cart_item(db, user.id, id="a", price=10)

    response = client.request("DELETE", "/api/v1/cart", json={"userId": user.id})

    assert response.status_code == 200
    assert response.json() == {"success": True, "removed": 1}
    assert CartRepository(db).list_items(user.id) == []


def test_checkout_redirect(client, db, gateway):
    user = make_user(db)
    add_cart_item(db, user.id, id="t", price=60, classType="driving test")
    gateway.healthy().redirect_to("https://pay.example/session/abc")

    response = client.post("/api/v1/payments/redirect", json={"userId": user.id})

    assert response.status_code == 200
    body = response.json()
    assert body["redirectUrl"] == "https://pay.example/session/abc"
    assert body["orderId"]


def test_health_and_liveness(client):
    live = client.get("/live")
    assert live.json() == {"ok": True}
    assert live.headers["Cache-Control"] == "no-store"

    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert health.json()["checks"] == {"database": True}


def test_prometheus_metrics(client):
    response = client.get("/metrics/prometheus")
    assert response.status_code == 200
    assert "drivebook_prometheus_scrapes_total" in response.text
    assert response.headers["Cache-Control"] == "no-cache, no-store, must-revalidate"

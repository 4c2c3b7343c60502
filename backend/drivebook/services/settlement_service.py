# backend/drivebook/services/settlement_service.py
"""
Settlement Service

Processes a gateway decision for an Order exactly once and drives its
slots to their terminal state.

Approved path:
    1. confirm the approval on the ledger (bounded poll)
    2. mark the Order processing and take the per-order mutex
    3. confirm ticket-class seats, then book slots in one batch per
       (instructor, class type)
    4. only when every batch succeeded: mark the Order completed, clear the
       cart, and re-read every slot before reporting success

Declined/error path: revert the Order's reservations (best-effort) and
mark it failed.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
import hashlib
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import (
    EnrollmentStatus,
    GatewayDecision,
    PaymentMethod,
    PaymentStatus,
    SettlementStatus,
    SlotStatus,
)
from ..core.exceptions import (
    ConsistencyException,
    DomainException,
    ErrorKind,
    ForbiddenException,
    GatewayException,
    NotFoundException,
    RepositoryException,
)
from ..core.retry import RetryBudget, poll_until
from ..core.settlement_lock import settlement_lock
from ..integrations.payment_gateway_client import PaymentGatewayClient, PaymentGatewayError
from ..models.order import Appointment, Order
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..schemas.gateway import GatewayResult
from .base import BaseService
from .cancellation_service import CancellationService
from .slot_state_service import SlotStateService
from .ticket_class_service import TicketClassService
from .transaction_status_service import TransactionStatusService

logger = logging.getLogger(__name__)


def settlement_idempotency_key(
    transaction_id: Optional[str],
    params: Optional[Dict[str, Any]] = None,
    session_key: Optional[str] = None,
) -> str:
    """
    Keyed on the gateway transaction id. Returns without one are keyed on
    the client session plus the exact return parameters.
    """
    if transaction_id:
        raw = f"txn:{transaction_id}"
    else:
        canonical = json.dumps(params or {}, sort_keys=True, default=str)
        raw = f"session:{session_key or ''}:{canonical}"
    return hashlib.sha256(raw.encode()).hexdigest()


@dataclass
class SettlementOutcome:
    status: SettlementStatus
    order_id: Optional[str] = None
    user_id: Optional[str] = None
    transaction_id: Optional[str] = None
    message: str = ""
    error_kind: Optional[str] = None
    failed: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == SettlementStatus.APPROVED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "status": self.status.value,
            "order_id": self.order_id,
            "user_id": self.user_id,
            "transaction_id": self.transaction_id,
            "message": self.message,
            "error_kind": self.error_kind,
            "failed": self.failed,
        }


class SettlementService(BaseService):
    """Settlement reconciler for gateway decisions."""

    def __init__(
        self,
        db: Session,
        client: Optional[PaymentGatewayClient] = None,
        *,
        ledger_budget: Optional[RetryBudget] = None,
        sleep: Callable[[float], None] = time.sleep,
        release_partial_batches: Optional[bool] = None,
    ):
        super().__init__(db)
        self.client = client or PaymentGatewayClient.from_settings()
        self.orders = RepositoryFactory.create_order_repository(db)
        self.cart = RepositoryFactory.create_cart_repository(db)
        self.ledger = RepositoryFactory.create_payment_transaction_repository(db)
        self.processed = RepositoryFactory.create_processed_result_repository(db)
        self.slot_state = SlotStateService(db)
        self.ticket_classes = TicketClassService(db)
        self.cancellation = CancellationService(
            db, slot_state=self.slot_state, ticket_classes=self.ticket_classes
        )
        self.status_service = TransactionStatusService(db, client=self.client)
        self.ledger_budget = ledger_budget or RetryBudget(
            attempts=settings.settlement_ledger_attempts,
            interval_s=settings.settlement_ledger_interval_s,
        )
        self._sleep = sleep
        self.release_partial_batches = (
            settings.settlement_release_partial_batches
            if release_partial_batches is None
            else release_partial_batches
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    @BaseService.measure_operation("process_return")
    def process_return(
        self,
        params: Dict[str, Any],
        *,
        user_id: Optional[str] = None,
        order_id: Optional[str] = None,
        session_key: Optional[str] = None,
    ) -> SettlementOutcome:
        """
        Handle one browser return from the gateway. A repeated delivery of
        the same result is reported as ``duplicate`` and changes nothing.

        Raises:
            GatewayException: the gateway could not process the result
            NotFoundException: the order does not exist
            ConsistencyException: the gateway ledger never confirmed an approval
        """
        transaction_id = _str_or_none(params.get("ssl_txn_id"))
        key = settlement_idempotency_key(transaction_id, params, session_key)

        with self.transaction():
            claimed = self.processed.claim(
                key, transaction_id=transaction_id or "", order_id=order_id
            )
        if not claimed:
            marker = self.processed.get_by_key(key)
            self.logger.info(
                "settlement_duplicate_delivery",
                extra={"transaction_id": transaction_id, "order_id": order_id},
            )
            prometheus_metrics.record_settlement(SettlementStatus.DUPLICATE.value)
            return SettlementOutcome(
                status=SettlementStatus.DUPLICATE,
                order_id=(marker.order_id if marker else None) or order_id,
                user_id=user_id,
                transaction_id=transaction_id,
                message="This payment result was already processed",
            )

        request_body = dict(params)
        if user_id:
            request_body["userId"] = user_id
        if order_id:
            request_body["orderId"] = order_id
        try:
            body = self.client.process_payment(request_body)
        except PaymentGatewayError as exc:
            # Nothing was applied; let a later delivery retry
            with self.transaction():
                self.processed.release(key)
            raise GatewayException(str(exc), attempts=1) from exc

        result = GatewayResult.model_validate(body)
        user_id = user_id or result.user_id
        order_id = order_id or result.order_id
        transaction_id = transaction_id or result.transaction_id

        if not order_id:
            outcome = SettlementOutcome(
                status=SettlementStatus.ERROR,
                user_id=user_id,
                transaction_id=transaction_id,
                message="The payment result did not identify an order",
                error_kind=ErrorKind.VALIDATION,
            )
            self.logger.error(
                "settlement_missing_identifiers", extra={"transaction_id": transaction_id}
            )
            self._finish(key, outcome)
            return outcome

        with self.transaction():
            self.ledger.record(
                order_id=order_id,
                status=result.decision.value,
                transaction_id=transaction_id,
                user_id=user_id,
                amount=params.get("ssl_amount"),
                result_message=_str_or_none(params.get("ssl_result_message")) or result.message,
                approval_code=_str_or_none(params.get("ssl_approval_code")),
                invoice_number=_str_or_none(params.get("ssl_invoice_number")),
                customer_code=_str_or_none(params.get("ssl_customer_code")),
                raw=body,
            )

        try:
            if result.decision == GatewayDecision.APPROVED:
                outcome = self.settle_approved(order_id, user_id=user_id, payment_id=transaction_id)
            else:
                outcome = self.settle_declined(
                    order_id, reason=result.message or result.decision.value
                )
        except DomainException as exc:
            self._finish(
                key,
                SettlementOutcome(status=SettlementStatus.ERROR, order_id=order_id, message=exc.message),
            )
            raise

        outcome.transaction_id = transaction_id
        outcome.user_id = outcome.user_id or user_id
        self._finish(key, outcome)
        return outcome

    @BaseService.measure_operation("reconcile_order")
    def reconcile_order(self, order_id: str, user_id: Optional[str] = None) -> SettlementOutcome:
        """Settle from the ledger's latest decision (status-check polling path)."""
        order = self._get_order(order_id, user_id)
        if order.payment_status == PaymentStatus.COMPLETED.value:
            return self._already_completed(order)
        decision = self.status_service.gateway_decision(order_id)
        if decision is None:
            return SettlementOutcome(
                status=SettlementStatus.ERROR,
                order_id=order_id,
                user_id=order.user_id,
                message="No gateway decision recorded for this order yet",
                error_kind=ErrorKind.AVAILABILITY,
            )
        if decision == GatewayDecision.APPROVED:
            return self.settle_approved(order_id, user_id=user_id)
        return self.settle_declined(order_id, reason=decision.value)

    # ------------------------------------------------------------------
    # Approved path
    # ------------------------------------------------------------------

    def settle_approved(
        self,
        order_id: str,
        *,
        user_id: Optional[str] = None,
        payment_id: Optional[str] = None,
    ) -> SettlementOutcome:
        order = self._get_order(order_id, user_id)
        if order.payment_status == PaymentStatus.COMPLETED.value:
            return self._already_completed(order)
        if order.payment_status in (PaymentStatus.FAILED.value, PaymentStatus.CANCELLED.value):
            self.logger.error(
                "settlement_approved_for_closed_order",
                extra={"order_id": order_id, "payment_status": order.payment_status},
            )
            raise ConsistencyException(
                "Payment was approved for an order that is no longer open",
                code="APPROVED_CLOSED_ORDER",
                details={"order_id": order_id, "payment_status": order.payment_status},
            )

        self._await_ledger_approval(order_id)

        with settlement_lock(order_id) as acquired:
            if not acquired:
                self.logger.info("settlement_in_progress", extra={"order_id": order_id})
                return SettlementOutcome(
                    status=SettlementStatus.ERROR,
                    order_id=order_id,
                    user_id=order.user_id,
                    message="Settlement for this order is already in progress",
                    error_kind=ErrorKind.CONFLICT,
                )
            failures = self._finalize(order, payment_id or order.id)

        if failures:
            self.logger.error(
                "settlement_batch_failed",
                extra={"order_id": order_id, "failed": len(failures)},
            )
            prometheus_metrics.record_settlement(SettlementStatus.ERROR.value)
            return SettlementOutcome(
                status=SettlementStatus.ERROR,
                order_id=order_id,
                user_id=order.user_id,
                message="Some bookings could not be confirmed; the order was not completed",
                error_kind=ErrorKind.CONFLICT,
                failed=failures,
            )

        unverified = self.verify(order)
        if unverified:
            self.logger.error(
                "settlement_verification_failed",
                extra={"order_id": order_id, "unverified": [item["slot_id"] for item in unverified]},
            )
            prometheus_metrics.record_settlement("unverified")
            return SettlementOutcome(
                status=SettlementStatus.ERROR,
                order_id=order_id,
                user_id=order.user_id,
                message="Payment was captured but bookings could not be verified; contact support",
                error_kind=ErrorKind.CONSISTENCY,
                failed=unverified,
            )

        prometheus_metrics.record_settlement(SettlementStatus.APPROVED.value)
        self.logger.info("settlement_completed", extra={"order_id": order_id})
        return SettlementOutcome(
            status=SettlementStatus.APPROVED,
            order_id=order_id,
            user_id=order.user_id,
            message="Payment confirmed and bookings finalized",
        )

    def _await_ledger_approval(self, order_id: str) -> None:
        def _approved() -> bool:
            return self.status_service.gateway_decision(order_id) == GatewayDecision.APPROVED

        def _exhausted() -> bool:
            raise ConsistencyException(
                "The gateway ledger never confirmed the approval",
                code="LEDGER_NOT_CONFIRMED",
                details={"order_id": order_id, "attempts": self.ledger_budget.attempts},
            )

        poll_until(
            _approved,
            self.ledger_budget,
            on_exhausted=_exhausted,
            sleep=self._sleep,
            label="settlement_ledger",
        )

    def _finalize(self, order: Order, payment_id: str) -> List[Dict[str, Any]]:
        """Apply every sub-batch; returns the failures (empty means all succeeded)."""
        failures: List[Dict[str, Any]] = []
        booked_batches: List[Tuple[str, List[str]]] = []
        now = datetime.now(timezone.utc)

        with self.transaction():
            self.orders.set_payment_status(order.id, PaymentStatus.PROCESSING)

            for appointment in order.appointments:
                if not appointment.is_ticket_class:
                    continue
                failure = self._confirm_seat(order, appointment, payment_id)
                if failure:
                    failures.append(failure)

            for (instructor_id, class_type), appointments in _group_slot_appointments(order).items():
                slot_ids = [appointment.slot_id for appointment in appointments]
                if not instructor_id:
                    failures.extend(
                        {"slot_id": slot_id, "reason": "missing instructor"} for slot_id in slot_ids
                    )
                    continue
                result = self.slot_state.batch_transition(
                    slot_ids,
                    instructor_id,
                    {SlotStatus.PENDING, SlotStatus.AVAILABLE},
                    SlotStatus.BOOKED,
                    {
                        "student_id": order.user_id,
                        "paid": True,
                        "payment_method": PaymentMethod.ONLINE.value,
                        "payment_id": payment_id,
                        "order_id": order.id,
                        "confirmed_at": now,
                    },
                    expected_student_id=order.user_id,
                )
                if result.succeeded:
                    booked_batches.append((instructor_id, result.succeeded))
                failures.extend(
                    {
                        "slot_id": failure.slot_id,
                        "instructor_id": instructor_id,
                        "class_type": class_type,
                        "current_status": failure.current_status,
                    }
                    for failure in result.failed
                )

            if failures:
                if self.release_partial_batches:
                    self._repend(order, booked_batches)
            else:
                self.orders.set_payment_status(order.id, PaymentStatus.COMPLETED)
                self.cancellation.clear_cart(order.user_id)
        return failures

    def _confirm_seat(
        self, order: Order, appointment: Appointment, payment_id: str
    ) -> Optional[Dict[str, Any]]:
        try:
            with self.db.begin_nested():
                self.ticket_classes.confirm_enrollment(
                    appointment.ticket_class_id or "",
                    appointment.student_id or order.user_id,
                    payment_id=payment_id,
                    order_id=order.id,
                )
        except (DomainException, RepositoryException) as exc:
            self.logger.warning(
                "ticket_class_confirm_failed",
                extra={"order_id": order.id, "ticket_class_id": appointment.ticket_class_id},
            )
            return {
                "slot_id": appointment.slot_id,
                "ticket_class_id": appointment.ticket_class_id,
                "reason": str(exc),
            }
        return None

    def _repend(self, order: Order, booked_batches: List[Tuple[str, List[str]]]) -> None:
        """Return already-booked slots of a failed settlement to pending."""
        for instructor_id, slot_ids in booked_batches:
            self.slot_state.batch_transition(
                slot_ids,
                instructor_id,
                {SlotStatus.BOOKED},
                SlotStatus.PENDING,
                {"paid": False, "payment_id": None, "confirmed_at": None},
                expected_student_id=order.user_id,
            )
        self.logger.info(
            "settlement_partial_batches_released",
            extra={"order_id": order.id, "batches": len(booked_batches)},
        )

    def verify(self, order: Order) -> List[Dict[str, Any]]:
        """
        Re-read every appointment on a separate session and return the ones
        not finalized. Only committed state counts.
        """
        unverified: List[Dict[str, Any]] = []
        with Session(bind=self.db.get_bind()) as fresh:
            slot_state = SlotStateService(fresh)
            enrollments = RepositoryFactory.create_ticket_class_repository(fresh)
            for appointment in order.appointments:
                if appointment.is_ticket_class:
                    enrollment = enrollments.get_enrollment(
                        appointment.ticket_class_id or "", appointment.student_id or order.user_id
                    )
                    if enrollment is None or enrollment.status != EnrollmentStatus.CONFIRMED.value:
                        unverified.append(
                            {
                                "slot_id": appointment.slot_id,
                                "ticket_class_id": appointment.ticket_class_id,
                            }
                        )
                elif appointment.has_schedule_slot:
                    if not slot_state.is_finalized(appointment.slot_id, appointment.instructor_id):
                        unverified.append(
                            {"slot_id": appointment.slot_id, "instructor_id": appointment.instructor_id}
                        )
        return unverified

    # ------------------------------------------------------------------
    # Declined path
    # ------------------------------------------------------------------

    def settle_declined(self, order_id: str, *, reason: str = "") -> SettlementOutcome:
        order = self._get_order(order_id)
        if order.payment_status == PaymentStatus.COMPLETED.value:
            self.logger.error(
                "settlement_declined_for_completed_order", extra={"order_id": order_id}
            )
            return SettlementOutcome(
                status=SettlementStatus.ERROR,
                order_id=order_id,
                user_id=order.user_id,
                message="A declined result was received for a completed order",
                error_kind=ErrorKind.CONSISTENCY,
            )

        with self.transaction():
            report = self.cancellation.revert_appointments(
                order.appointments, order.user_id, order.id
            )
            self.orders.set_payment_status(order.id, PaymentStatus.FAILED)

        prometheus_metrics.record_settlement(SettlementStatus.DECLINED.value)
        self.logger.info(
            "settlement_declined",
            extra={
                "order_id": order_id,
                "reason": reason,
                "reverted": len(report.reverted),
                "failed": len(report.failed),
            },
        )
        return SettlementOutcome(
            status=SettlementStatus.DECLINED,
            order_id=order_id,
            user_id=order.user_id,
            message=reason or "Payment was declined",
            failed=report.failed,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_order(self, order_id: str, user_id: Optional[str] = None) -> Order:
        order = self.orders.get_order(order_id)
        if order is None:
            raise NotFoundException(f"Order {order_id} not found", code="ORDER_NOT_FOUND")
        if user_id and order.user_id != user_id:
            raise ForbiddenException("Order does not belong to this user", code="ORDER_FORBIDDEN")
        return order

    def _already_completed(self, order: Order) -> SettlementOutcome:
        return SettlementOutcome(
            status=SettlementStatus.APPROVED,
            order_id=order.id,
            user_id=order.user_id,
            message="Order already completed",
        )

    def _finish(self, key: str, outcome: SettlementOutcome) -> None:
        with self.transaction():
            self.processed.record_outcome(key, outcome.status.value, outcome.order_id)


def _group_slot_appointments(order: Order) -> "OrderedDict[Tuple[str, str], List[Appointment]]":
    groups: "OrderedDict[Tuple[str, str], List[Appointment]]" = OrderedDict()
    for appointment in order.appointments:
        if appointment.is_ticket_class or not appointment.has_schedule_slot:
            continue
        groups.setdefault((appointment.instructor_id or "", appointment.class_type), []).append(
            appointment
        )
    return groups


def _str_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None

# backend/drivebook/repositories/payment_transaction_repository.py
"""
Payment Transaction Repository

Gateway ledger rows plus the persisted idempotency markers used by the
settlement pipeline.
"""

from decimal import Decimal, InvalidOperation
import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.payment_transaction import PaymentTransaction, ProcessedPaymentResult
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        return None


class PaymentTransactionRepository(BaseRepository[PaymentTransaction]):
    def __init__(self, db: Session):
        super().__init__(db, PaymentTransaction)

    def latest_for_order(self, order_id: str) -> Optional[PaymentTransaction]:
        stmt = (
            select(PaymentTransaction)
            .where(PaymentTransaction.order_id == order_id)
            .order_by(PaymentTransaction.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def record(
        self,
        *,
        order_id: str,
        status: str,
        transaction_id: Optional[str] = None,
        user_id: Optional[str] = None,
        amount: Any = None,
        result_message: Optional[str] = None,
        approval_code: Optional[str] = None,
        invoice_number: Optional[str] = None,
        customer_code: Optional[str] = None,
        raw: Optional[Dict[str, Any]] = None,
    ) -> PaymentTransaction:
        """Insert a ledger row, or refresh the existing one for the same transaction id."""
        existing = None
        if transaction_id:
            existing = self.find_one_by(transaction_id=transaction_id)
        row = existing or PaymentTransaction(order_id=order_id, transaction_id=transaction_id)
        row.order_id = order_id
        row.status = status
        row.user_id = user_id or row.user_id
        row.amount = _to_decimal(amount) if amount is not None else row.amount
        row.result_message = result_message
        row.approval_code = approval_code
        row.invoice_number = invoice_number
        row.customer_code = customer_code
        row.raw = dict(raw or {})
        if existing is None:
            self.db.add(row)
        self.db.flush()
        return row


class ProcessedPaymentResultRepository(BaseRepository[ProcessedPaymentResult]):
    def __init__(self, db: Session):
        super().__init__(db, ProcessedPaymentResult)

    def get_by_key(self, idempotency_key: str) -> Optional[ProcessedPaymentResult]:
        return self.find_one_by(idempotency_key=idempotency_key)

    def claim(
        self, idempotency_key: str, *, transaction_id: str, order_id: Optional[str]
    ) -> bool:
        """Insert the marker; False when another delivery already claimed it."""
        savepoint = self.db.begin_nested()
        try:
            self.db.add(
                ProcessedPaymentResult(
                    idempotency_key=idempotency_key,
                    transaction_id=transaction_id,
                    order_id=order_id,
                )
            )
            self.db.flush()
            savepoint.commit()
            return True
        except IntegrityError:
            savepoint.rollback()
            return False

    def record_outcome(self, idempotency_key: str, outcome: str, order_id: Optional[str]) -> None:
        marker = self.get_by_key(idempotency_key)
        if marker is None:
            return
        marker.outcome = outcome
        if order_id:
            marker.order_id = order_id
        self.db.flush()

    def release(self, idempotency_key: str) -> None:
        """Drop a claim whose processing failed before any side effect."""
        marker = self.get_by_key(idempotency_key)
        if marker is not None:
            self.db.delete(marker)
            self.db.flush()

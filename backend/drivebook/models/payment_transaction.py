"""
Gateway ledger and settlement idempotency records.

PaymentTransaction mirrors what the gateway recorded for an order so the
status check can answer without a network round trip. ProcessedPaymentResult
is the persisted "already handled this gateway transaction" marker that
guards the browser-return path against re-delivery.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ..core.ulid_helper import generate_ulid
from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    order_id: Mapped[str] = mapped_column(String(26), nullable=False, index=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True)
    transaction_id: Mapped[Optional[str]] = mapped_column(String(100), unique=True, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    result_message: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    approval_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    invoice_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    customer_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    raw: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )


class ProcessedPaymentResult(Base):
    __tablename__ = "processed_payment_results"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    idempotency_key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    transaction_id: Mapped[str] = mapped_column(String(100), nullable=False)
    order_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True)
    outcome: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

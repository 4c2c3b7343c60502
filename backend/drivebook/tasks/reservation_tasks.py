# backend/drivebook/tasks/reservation_tasks.py
"""
Periodic release of abandoned online checkout holds.

Slots held for an online payment that never came back are returned to
``available`` after ``online_reservation_ttl_minutes``. Slots whose order
is mid-settlement are left alone.
"""

import logging
from typing import Any, Callable, Dict, TypeVar, cast

from celery import shared_task

from ..database import SessionLocal
from ..services.reservation_sweeper import ReservationSweeper

logger = logging.getLogger(__name__)

_TaskFunc = TypeVar("_TaskFunc", bound=Callable[..., Any])


def _typed_shared_task(*args: Any, **kwargs: Any) -> Callable[[_TaskFunc], _TaskFunc]:
    """Typed wrapper for Celery's shared_task decorator."""
    return cast(Callable[[_TaskFunc], _TaskFunc], shared_task(*args, **kwargs))


@_typed_shared_task(name="reservations.expire_stale_online_reservations", ignore_result=True)
def expire_stale_online_reservations() -> Dict[str, int]:
    db = SessionLocal()
    try:
        result = ReservationSweeper(db).expire_stale()
    finally:
        db.close()
    if result["released"]:
        logger.info("[SWEEP] released %d stale online reservations", result["released"])
    return result

"""Bounded polling used by the health check and the settlement ledger check."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryBudget:
    attempts: int
    interval_s: float

    @property
    def total_s(self) -> float:
        return self.attempts * self.interval_s


def poll_until(
    check: Callable[[], Optional[T]],
    budget: RetryBudget,
    *,
    on_exhausted: Callable[[], T],
    sleep: Callable[[float], None] = time.sleep,
    label: str = "poll",
) -> T:
    """
    Call ``check`` until it returns a truthy value or the budget runs out.

    Exceptions raised by ``check`` count as a failed attempt. The delay is
    applied between attempts only. ``on_exhausted`` is called once the
    budget is spent; it usually raises.
    """
    for attempt in range(1, budget.attempts + 1):
        try:
            result = check()
        except Exception as exc:
            logger.debug(
                "%s attempt %d/%d failed: %s", label, attempt, budget.attempts, exc
            )
            result = None
        if result:
            return result
        if attempt < budget.attempts:
            sleep(budget.interval_s)
    logger.warning("%s exhausted after %d attempts", label, budget.attempts)
    return on_exhausted()

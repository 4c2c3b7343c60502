# backend/drivebook/repositories/slot_repository.py
"""
Slot Repository

Data access for instructor schedule slots. The only write path is
``transition``: a single conditional UPDATE that checks the current status
and writes the new one in one statement, so two concurrent bookings of the
same slot cannot both succeed.
"""

from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Any, Collection, Dict, Iterable, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import PaymentMethod, SlotStatus
from ..core.exceptions import RepositoryException
from ..models.slot import ScheduleSlot
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    slot_id: str
    ok: bool
    current_status: Optional[str] = None


@dataclass
class BatchTransitionResult:
    succeeded: List[str] = field(default_factory=list)
    failed: List[TransitionResult] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


class SlotRepository(BaseRepository[ScheduleSlot]):
    """Repository for schedule slot state."""

    def __init__(self, db: Session):
        super().__init__(db, ScheduleSlot)

    def get_slot(self, slot_id: str, instructor_id: Optional[str] = None) -> Optional[ScheduleSlot]:
        try:
            stmt = select(ScheduleSlot).where(ScheduleSlot.id == slot_id)
            if instructor_id:
                stmt = stmt.where(ScheduleSlot.instructor_id == instructor_id)
            return self.db.execute(
                stmt.execution_options(populate_existing=True)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading slot {slot_id}: {str(e)}")
            raise RepositoryException(f"Failed to load slot: {str(e)}")

    def get_slots(self, slot_ids: Iterable[str]) -> List[ScheduleSlot]:
        ids = list(slot_ids)
        if not ids:
            return []
        stmt = (
            select(ScheduleSlot)
            .where(ScheduleSlot.id.in_(ids))
            .execution_options(populate_existing=True)
        )
        return list(self.db.execute(stmt).scalars().all())

    def transition(
        self,
        slot_id: str,
        instructor_id: str,
        from_allowed: Collection[SlotStatus],
        to: SlotStatus,
        fields: Optional[Dict[str, Any]] = None,
        *,
        expected_student_id: Optional[str] = None,
        expected_order_id: Optional[str] = None,
    ) -> TransitionResult:
        """
        Move one slot to ``to`` if its current status is in ``from_allowed``.

        When ``expected_student_id`` is given, a slot already held by a
        different student does not qualify. When ``expected_order_id`` is
        given, only a slot stamped with that order qualifies.
        """
        values: Dict[str, Any] = dict(fields or {})
        values["status"] = to.value
        stmt = update(ScheduleSlot).where(
            ScheduleSlot.id == slot_id,
            ScheduleSlot.instructor_id == instructor_id,
            ScheduleSlot.status.in_([status.value for status in from_allowed]),
        )
        if expected_student_id:
            stmt = stmt.where(
                or_(
                    ScheduleSlot.student_id.is_(None),
                    ScheduleSlot.student_id == expected_student_id,
                )
            )
        if expected_order_id:
            stmt = stmt.where(ScheduleSlot.order_id == expected_order_id)
        try:
            result = self.db.execute(
                stmt.values(**values).execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error transitioning slot {slot_id}: {str(e)}")
            raise RepositoryException(f"Failed to transition slot {slot_id}: {str(e)}")

        if result.rowcount == 1:
            return TransitionResult(slot_id=slot_id, ok=True, current_status=to.value)

        current = self.db.execute(
            select(ScheduleSlot.status).where(
                ScheduleSlot.id == slot_id, ScheduleSlot.instructor_id == instructor_id
            )
        ).scalar_one_or_none()
        return TransitionResult(slot_id=slot_id, ok=False, current_status=current)

    def batch_transition(
        self,
        slot_ids: Iterable[str],
        instructor_id: str,
        from_allowed: Collection[SlotStatus],
        to: SlotStatus,
        fields: Optional[Dict[str, Any]] = None,
        *,
        expected_student_id: Optional[str] = None,
        expected_order_id: Optional[str] = None,
    ) -> BatchTransitionResult:
        """Transition each slot independently; one failure never aborts the rest."""
        outcome = BatchTransitionResult()
        for slot_id in slot_ids:
            try:
                result = self.transition(
                    slot_id,
                    instructor_id,
                    from_allowed,
                    to,
                    fields,
                    expected_student_id=expected_student_id,
                    expected_order_id=expected_order_id,
                )
            except RepositoryException as exc:
                self.logger.warning("batch transition error for slot %s: %s", slot_id, exc)
                result = TransitionResult(slot_id=slot_id, ok=False)
            if result.ok:
                outcome.succeeded.append(slot_id)
            else:
                outcome.failed.append(result)
        return outcome

    def find_stale_online_reservations(self, reserved_before: datetime) -> List[ScheduleSlot]:
        stmt = select(ScheduleSlot).where(
            ScheduleSlot.status == SlotStatus.PENDING.value,
            ScheduleSlot.payment_method == PaymentMethod.ONLINE.value,
            ScheduleSlot.reserved_at.is_not(None),
            ScheduleSlot.reserved_at < reserved_before,
        )
        return list(self.db.execute(stmt).scalars().all())

# backend/drivebook/services/reservation_sweeper.py
"""
Reservation Sweeper

Online holds lapse: a pending slot reserved for online payment that was
never paid goes back to available after a TTL. Slots referenced by an
order that is mid-settlement are left alone, and local (pay in person)
holds never lapse.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .slot_state_service import SlotStateService

logger = logging.getLogger(__name__)


class ReservationSweeper(BaseService):
    def __init__(self, db: Session, ttl_minutes: Optional[int] = None):
        super().__init__(db)
        self.slots = RepositoryFactory.create_slot_repository(db)
        self.orders = RepositoryFactory.create_order_repository(db)
        self.slot_state = SlotStateService(db)
        self.ttl = timedelta(minutes=ttl_minutes or settings.online_reservation_ttl_minutes)

    @BaseService.measure_operation("expire_stale_online_reservations")
    def expire_stale(self, now: Optional[datetime] = None) -> Dict[str, int]:
        cutoff = (now or datetime.now(timezone.utc)) - self.ttl
        stale = self.slots.find_stale_online_reservations(cutoff)
        if not stale:
            return {"checked": 0, "released": 0, "held": 0}

        held = self.orders.slot_ids_held_by_open_orders([slot.id for slot in stale])
        released = 0
        with self.transaction():
            for slot in stale:
                if slot.id in held:
                    continue
                if self.slot_state.release(slot.id, slot.instructor_id).ok:
                    released += 1

        self.logger.info(
            "stale_reservations_expired",
            extra={"checked": len(stale), "released": released, "held": len(held)},
        )
        return {"checked": len(stale), "released": released, "held": len(held)}

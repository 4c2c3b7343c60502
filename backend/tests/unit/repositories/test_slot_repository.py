"""Conditional slot transitions: the single write path for slot state."""

import pytest

from drivebook.core.enums import SlotStatus
from drivebook.repositories.slot_repository import SlotRepository

from tests.factories.builders import INSTRUCTOR_ID, make_slot

pytestmark = pytest.mark.unit

STUDENT = "01STUDENT00000000000000AAA"
OTHER = "01STUDENT00000000000000BBB"


class TestTransition:
    def test_allowed_transition_updates_status_and_fields(self, db):
        slot = make_slot(db)
        repo = SlotRepository(db)

        result = repo.transition(
            slot.id, INSTRUCTOR_ID, {SlotStatus.AVAILABLE}, SlotStatus.PENDING, {"student_id": STUDENT}
        )
        db.commit()

        assert result.ok
        reloaded = repo.get_slot(slot.id)
        assert reloaded.status == "pending"
        assert reloaded.student_id == STUDENT

    def test_disallowed_source_status_reports_current(self, db):
        slot = make_slot(db, status=SlotStatus.BOOKED, student_id=OTHER)
        result = SlotRepository(db).transition(
            slot.id, INSTRUCTOR_ID, {SlotStatus.AVAILABLE}, SlotStatus.PENDING, {"student_id": STUDENT}
        )
        assert not result.ok
        assert result.current_status == "booked"

    def test_wrong_instructor_does_not_match(self, db):
        slot = make_slot(db)
        result = SlotRepository(db).transition(
            slot.id, "01OTHERINSTRUCTOR000000000", {SlotStatus.AVAILABLE}, SlotStatus.PENDING
        )
        assert not result.ok
        assert result.current_status is None

    def test_student_guard_rejects_slot_held_by_someone_else(self, db):
        slot = make_slot(db, status=SlotStatus.PENDING, student_id=OTHER)
        result = SlotRepository(db).transition(
            slot.id,
            INSTRUCTOR_ID,
            {SlotStatus.PENDING},
            SlotStatus.BOOKED,
            {"paid": True},
            expected_student_id=STUDENT,
        )
        assert not result.ok
        assert result.current_status == "pending"

    def test_student_guard_accepts_own_hold(self, db):
        slot = make_slot(db, status=SlotStatus.PENDING, student_id=STUDENT)
        result = SlotRepository(db).transition(
            slot.id,
            INSTRUCTOR_ID,
            {SlotStatus.PENDING},
            SlotStatus.BOOKED,
            {"paid": True},
            expected_student_id=STUDENT,
        )
        assert result.ok


class TestConcurrentBooking:
    def test_second_session_loses_the_race(self, session_factory):
        setup = session_factory()
        slot = make_slot(setup)
        setup.close()

        first, second = session_factory(), session_factory()
        try:
            won = SlotRepository(first).transition(
                slot.id, INSTRUCTOR_ID, {SlotStatus.AVAILABLE}, SlotStatus.PENDING, {"student_id": STUDENT}
            )
            first.commit()
            lost = SlotRepository(second).transition(
                slot.id, INSTRUCTOR_ID, {SlotStatus.AVAILABLE}, SlotStatus.PENDING, {"student_id": OTHER}
            )
            second.commit()
        finally:
            first.close()
            second.close()

        assert won.ok
        assert not lost.ok
        assert lost.current_status == "pending"

        check = session_factory()
        try:
            assert SlotRepository(check).get_slot(slot.id).student_id == STUDENT
        finally:
            check.close()


class TestBatchTransition:
    def test_one_failure_does_not_abort_the_rest(self, db):
        free_a = make_slot(db)
        taken = make_slot(db, status=SlotStatus.BOOKED, student_id=OTHER)
        free_b = make_slot(db)

        result = SlotRepository(db).batch_transition(
            [free_a.id, taken.id, free_b.id],
            INSTRUCTOR_ID,
            {SlotStatus.AVAILABLE, SlotStatus.PENDING},
            SlotStatus.BOOKED,
            {"paid": True, "student_id": STUDENT},
            expected_student_id=STUDENT,
        )

        assert result.succeeded == [free_a.id, free_b.id]
        assert [failure.slot_id for failure in result.failed] == [taken.id]
        assert result.failed[0].current_status == "booked"
        assert not result.all_succeeded

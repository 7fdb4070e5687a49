# backend/tests/repositories/test_schedule_repository.py
"""
Tests for ScheduleRepository capacity accounting and bulk insertion.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from activityhub.core.enums import BookingStatus
from activityhub.core.exceptions import RepositoryException
from activityhub.repositories.factory import RepositoryFactory
from activityhub.repositories.schedule_repository import (
    ScheduleRepository,
    is_lock_not_available,
)

START = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


def _row(activity, start, duration=60):
    return {"activity_id": activity.id, "start_time": start, "duration_minutes": duration}


class TestBulkCreateSkipDuplicates:
    def test_inserts_all_new_rows(self, db, activity):
        repo = ScheduleRepository(db)
        rows = [_row(activity, START + timedelta(days=i)) for i in range(3)]

        assert repo.bulk_create_skip_duplicates(rows) == 3
        assert repo.count(activity_id=activity.id) == 3

    def test_existing_start_times_are_skipped(self, db, activity, schedule):
        repo = ScheduleRepository(db)
        rows = [_row(activity, schedule.start_time), _row(activity, START + timedelta(days=1))]

        assert repo.bulk_create_skip_duplicates(rows) == 1
        assert repo.count(activity_id=activity.id) == 2

    def test_duplicates_within_one_batch_collapse(self, db, activity):
        repo = ScheduleRepository(db)
        assert repo.bulk_create_skip_duplicates([_row(activity, START), _row(activity, START)]) == 1

    def test_same_time_on_another_activity_is_not_a_duplicate(
        self, db, activity, schedule, provider, make_activity
    ):
        other = make_activity(provider, title="Sunset Paddle")
        repo = ScheduleRepository(db)
        assert repo.bulk_create_skip_duplicates([_row(other, schedule.start_time)]) == 1

    def test_empty_batch(self, db):
        assert ScheduleRepository(db).bulk_create_skip_duplicates([]) == 0


class TestCapacityQueries:
    def test_only_pending_and_confirmed_hold_capacity(self, db, schedule, customer, make_booking):
        make_booking(schedule, customer, participants=3, status=BookingStatus.PENDING)
        make_booking(schedule, customer, participants=2, status=BookingStatus.CONFIRMED)
        make_booking(schedule, customer, participants=4, status=BookingStatus.CANCELLED)
        make_booking(schedule, customer, participants=5, status=BookingStatus.FAILED)

        repo = ScheduleRepository(db)
        assert repo.sum_booked_participants(schedule.id) == 5
        assert repo.count_bookings(schedule.id) == 4

    def test_sum_is_zero_without_bookings(self, db, schedule):
        assert ScheduleRepository(db).sum_booked_participants(schedule.id) == 0

    def test_list_for_activity_window(self, db, activity, make_schedule, customer, make_booking):
        first = make_schedule(activity, START)
        make_schedule(activity, START + timedelta(hours=6))
        make_schedule(activity, START + timedelta(days=1))
        make_booking(first, customer, participants=2)

        rows = ScheduleRepository(db).list_for_activity(
            activity.id, start=START, end=START + timedelta(days=1)
        )

        assert [(s.start_time, booked) for s, booked in rows] == [
            (START, 2),
            (START + timedelta(hours=6), 0),
        ]

    def test_lock_for_booking_on_sqlite_loads_schedule(self, db, schedule):
        locked = ScheduleRepository(db).lock_for_booking(schedule.id, lock_timeout_ms=500)
        assert locked.id == schedule.id
        assert locked.activity.provider.subscription is not None

    def test_lock_for_unknown_schedule(self, db):
        assert ScheduleRepository(db).lock_for_booking("missing", lock_timeout_ms=500) is None


class TestErrorHandling:
    def test_sqlalchemy_errors_are_wrapped(self):
        session = Mock()
        session.execute.side_effect = SQLAlchemyError("connection reset")
        repo = ScheduleRepository(session)

        with pytest.raises(RepositoryException, match="connection reset"):
            repo.sum_booked_participants("01ABC")

    def test_base_create_wraps_flush_failures(self):
        session = Mock()
        session.flush.side_effect = SQLAlchemyError("constraint failed")
        repo = RepositoryFactory.create_notification_repository(session)

        with pytest.raises(RepositoryException):
            repo.create(user_id="u1", type="USAGE_ALERT", title="t", message="m")

    def test_lock_not_available_detection(self):
        orig = Mock(pgcode="55P03")
        assert is_lock_not_available(OperationalError("SELECT", {}, orig))
        assert not is_lock_not_available(OperationalError("SELECT", {}, Mock(pgcode="08006")))

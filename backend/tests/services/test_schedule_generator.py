# backend/tests/services/test_schedule_generator.py
"""
Tests for recurring schedule generation.

2026-03-04 is a Wednesday; weekday indexes run 0 = Sunday ... 6 = Saturday.
"""

from datetime import date, datetime, time, timezone

import pytest
import pytz
from sqlalchemy import func, select

from activityhub.core.exceptions import ActivityNotFound, Unauthorized, ValidationException
from activityhub.models import ActivityAvailability, Schedule
from activityhub.services.schedule_generator import (
    ScheduleGeneratorService,
    TimeSlot,
    plan_schedule_starts,
)

NOW = datetime(2026, 3, 4, 8, 0, tzinfo=timezone.utc)
WEDNESDAY = 3


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _count_schedules(db, activity_id: str) -> int:
    return db.execute(
        select(func.count(Schedule.id)).where(Schedule.activity_id == activity_id)
    ).scalar_one()


class TestPlanScheduleStarts:
    def test_same_inputs_same_output(self):
        slots = [TimeSlot.parse("09:00", 60), TimeSlot.parse("14:30", 90, 8)]
        first = plan_schedule_starts(
            date(2026, 3, 4), date(2026, 3, 31), [1, 3, 5], slots, [], NOW, tz=pytz.UTC
        )
        second = plan_schedule_starts(
            date(2026, 3, 4), date(2026, 3, 31), [1, 3, 5], slots, [], NOW, tz=pytz.UTC
        )
        assert first == second
        assert len(first) == 24  # 12 matching days x 2 slots

    def test_only_selected_weekdays_are_kept(self):
        planned = plan_schedule_starts(
            date(2026, 3, 1), date(2026, 3, 7), [0, 6], [TimeSlot.parse("10:00", 60)], [], NOW,
            tz=pytz.UTC,
        )
        # Sunday 1st is in the past; Saturday 7th remains
        assert [p.start_time for p in planned] == [_utc(2026, 3, 7, 10, 0)]

    def test_excludes_only_earlier_slots_of_today(self):
        slots = [TimeSlot.parse("07:00", 60), TimeSlot.parse("09:00", 60)]
        planned = plan_schedule_starts(
            date(2026, 3, 4), date(2026, 3, 11), [WEDNESDAY], slots, [], NOW, tz=pytz.UTC
        )
        assert [p.start_time for p in planned] == [
            _utc(2026, 3, 4, 9, 0),
            _utc(2026, 3, 11, 7, 0),
            _utc(2026, 3, 11, 9, 0),
        ]

    def test_slot_starting_exactly_now_is_excluded(self):
        planned = plan_schedule_starts(
            date(2026, 3, 4), date(2026, 3, 4), [WEDNESDAY], [TimeSlot.parse("08:00", 60)], [],
            NOW, tz=pytz.UTC,
        )
        assert planned == []

    def test_blocked_days_are_skipped(self):
        planned = plan_schedule_starts(
            date(2026, 3, 4),
            date(2026, 3, 18),
            [WEDNESDAY],
            [TimeSlot.parse("09:00", 60)],
            [date(2026, 3, 11)],
            NOW,
            tz=pytz.UTC,
        )
        assert [p.start_time.date() for p in planned] == [date(2026, 3, 4), date(2026, 3, 18)]

    def test_local_slot_times_are_converted_to_utc(self):
        johannesburg = pytz.timezone("Africa/Johannesburg")
        planned = plan_schedule_starts(
            date(2026, 3, 5), date(2026, 3, 5), [4], [TimeSlot.parse("09:00", 60)], [], NOW,
            tz=johannesburg,
        )
        assert planned[0].start_time == _utc(2026, 3, 5, 7, 0)

    def test_slot_overrides_are_carried(self):
        planned = plan_schedule_starts(
            date(2026, 3, 5), date(2026, 3, 5), [4], [TimeSlot(time(18, 0), 45, 4)], [], NOW,
            tz=pytz.UTC,
        )
        assert planned[0].duration_minutes == 45
        assert planned[0].max_participants == 4

    def test_inverted_range_is_rejected(self):
        with pytest.raises(ValidationException):
            plan_schedule_starts(
                date(2026, 3, 10), date(2026, 3, 1), [WEDNESDAY], [TimeSlot.parse("09:00", 60)],
                [], NOW,
            )

    def test_weekday_out_of_range_is_rejected(self):
        with pytest.raises(ValidationException) as exc_info:
            plan_schedule_starts(
                date(2026, 3, 4), date(2026, 3, 10), [7], [TimeSlot.parse("09:00", 60)], [], NOW
            )
        assert exc_info.value.details["invalid_weekdays"] == [7]

    def test_oversized_range_is_rejected(self):
        with pytest.raises(ValidationException):
            plan_schedule_starts(
                date(2026, 1, 1), date(2027, 6, 1), [WEDNESDAY], [TimeSlot.parse("09:00", 60)],
                [], NOW,
            )

    def test_bad_slot_duration_is_rejected(self):
        with pytest.raises(ValidationException):
            plan_schedule_starts(
                date(2026, 3, 4), date(2026, 3, 10), [WEDNESDAY], [TimeSlot.parse("09:00", 0)],
                [], NOW,
            )

    def test_malformed_slot_time_is_rejected(self):
        with pytest.raises(ValidationException):
            TimeSlot.parse("9am", 60)


class TestScheduleGeneratorService:
    def test_generates_and_returns_count(self, db, activity):
        service = ScheduleGeneratorService(db)
        created = service.generate_schedules(
            activity.id,
            date(2026, 3, 4),
            date(2026, 3, 18),
            [WEDNESDAY],
            [TimeSlot.parse("09:00", 60), TimeSlot.parse("11:00", 60)],
            now=NOW,
        )
        assert created == 6
        assert _count_schedules(db, activity.id) == 6

    def test_rerun_is_idempotent(self, db, activity):
        service = ScheduleGeneratorService(db)
        args = (activity.id, date(2026, 3, 4), date(2026, 3, 18), [WEDNESDAY])
        slots = [TimeSlot.parse("09:00", 60)]

        assert service.generate_schedules(*args, slots, now=NOW) == 3
        assert service.generate_schedules(*args, slots, now=NOW) == 0
        assert _count_schedules(db, activity.id) == 3

    def test_overlapping_rerun_creates_only_new_starts(self, db, activity):
        service = ScheduleGeneratorService(db)
        slots = [TimeSlot.parse("09:00", 60)]
        service.generate_schedules(
            activity.id, date(2026, 3, 4), date(2026, 3, 18), [WEDNESDAY], slots, now=NOW
        )
        created = service.generate_schedules(
            activity.id, date(2026, 3, 11), date(2026, 4, 1), [WEDNESDAY], slots, now=NOW
        )
        assert created == 2  # 25 March and 1 April
        assert _count_schedules(db, activity.id) == 5

    def test_uses_activity_blocked_dates(self, db, activity):
        db.add(
            ActivityAvailability(
                activity_id=activity.id,
                operating_hours={},
                blocked_dates=["2026-03-11"],
            )
        )
        db.commit()
        db.expire(activity)

        created = ScheduleGeneratorService(db).generate_schedules(
            activity.id,
            date(2026, 3, 4),
            date(2026, 3, 18),
            [WEDNESDAY],
            [TimeSlot.parse("09:00", 60)],
            now=NOW,
        )
        assert created == 2
        starts = db.execute(
            select(Schedule.start_time).where(Schedule.activity_id == activity.id)
        ).scalars().all()
        assert date(2026, 3, 11) not in {s.date() for s in starts}

    def test_unknown_activity(self, db):
        with pytest.raises(ActivityNotFound):
            ScheduleGeneratorService(db).generate_schedules(
                "01HZZZZZZZZZZZZZZZZZZZZZZZ",
                date(2026, 3, 4),
                date(2026, 3, 18),
                [WEDNESDAY],
                [TimeSlot.parse("09:00", 60)],
                now=NOW,
            )

    def test_other_provider_is_rejected(self, db, activity, customer):
        with pytest.raises(Unauthorized):
            ScheduleGeneratorService(db).generate_schedules(
                activity.id,
                date(2026, 3, 4),
                date(2026, 3, 18),
                [WEDNESDAY],
                [TimeSlot.parse("09:00", 60)],
                now=NOW,
                acting_user_id=customer.id,
            )
        assert _count_schedules(db, activity.id) == 0

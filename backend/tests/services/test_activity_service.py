# backend/tests/services/test_activity_service.py
"""
Tests for provider-side activity management.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from activityhub.core.config import settings
from activityhub.core.enums import BookingStatus, PaymentStatus
from activityhub.core.exceptions import (
    ActivityHasBookings,
    ActivityNotFound,
    ScheduleAlreadyExists,
    ScheduleHasBookings,
    ScheduleNotFound,
    Unauthorized,
    ValidationException,
)
from activityhub.models import Activity, Booking, Payment, Schedule
from activityhub.services.activity_service import ActivityService


@pytest.fixture
def activity_service(db) -> ActivityService:
    return ActivityService(db)


class TestActivities:
    def test_create_activity(self, activity_service, provider):
        activity = activity_service.create_activity(
            provider.id, "Wine Tasting", 90, Decimal("350.00"), 12, description="Six estates"
        )
        assert activity.provider_id == provider.id
        assert activity.status == "ACTIVE"
        assert activity_service.get_activity(activity.id) is activity

    def test_get_unknown_activity(self, activity_service):
        with pytest.raises(ActivityNotFound):
            activity_service.get_activity("missing")

    def test_delete_refused_with_active_bookings(
        self, activity_service, activity, schedule, customer, provider, make_booking
    ):
        make_booking(schedule, customer, status=BookingStatus.PENDING)
        with pytest.raises(ActivityHasBookings) as exc_info:
            activity_service.delete_activity(activity.id, provider.id)
        assert exc_info.value.details["booking_count"] == 1

    def test_delete_removes_dependents(
        self, db, activity_service, activity, schedule, customer, provider, make_booking, make_pack
    ):
        make_pack(activity)
        make_booking(
            schedule, customer, status=BookingStatus.CANCELLED, payment_status=PaymentStatus.FAILED
        )
        activity_service.delete_activity(activity.id, provider.id)

        for model in (Activity, Schedule, Booking, Payment):
            assert db.execute(select(func.count()).select_from(model)).scalar_one() == 0

    def test_only_the_provider_may_delete(self, activity_service, activity, customer):
        with pytest.raises(Unauthorized):
            activity_service.delete_activity(activity.id, customer.id)


class TestSchedules:
    def test_create_schedule_reads_naive_time_as_business_local(
        self, activity_service, activity, provider, monkeypatch
    ):
        monkeypatch.setattr(settings, "business_timezone", "Africa/Johannesburg")
        schedule = activity_service.create_schedule(
            activity.id, provider.id, datetime(2026, 3, 10, 9, 0)
        )
        assert schedule.start_time == datetime(2026, 3, 10, 7, 0, tzinfo=timezone.utc)
        assert schedule.duration_minutes == activity.duration_minutes

    def test_duplicate_start_is_rejected(self, activity_service, activity, provider):
        start = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)
        activity_service.create_schedule(activity.id, provider.id, start)
        with pytest.raises(ScheduleAlreadyExists):
            activity_service.create_schedule(activity.id, provider.id, start)

    def test_date_range_must_be_complete_and_ordered(self, activity_service, activity, provider):
        start = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)
        with pytest.raises(ValidationException):
            activity_service.create_schedule(
                activity.id, provider.id, start, start_date=date(2026, 3, 1)
            )
        with pytest.raises(ValidationException):
            activity_service.create_schedule(
                activity.id,
                provider.id,
                start,
                start_date=date(2026, 3, 31),
                end_date=date(2026, 3, 1),
            )

    def test_list_schedules_for_a_day_with_remaining_capacity(
        self, activity_service, activity, make_schedule, customer, make_booking
    ):
        morning = make_schedule(activity, datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc))
        make_schedule(activity, datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc))
        make_schedule(activity, datetime(2026, 3, 11, 9, 0, tzinfo=timezone.utc))
        make_booking(morning, customer, participants=4)

        slots = activity_service.list_schedules(activity.id, date(2026, 3, 10))

        assert [slot.schedule.start_time.hour for slot in slots] == [9, 15]
        assert [slot.booked_participants for slot in slots] == [4, 0]
        assert [slot.available_spots for slot in slots] == [6, 10]

    def test_delete_unbooked_schedule(self, db, activity_service, activity, schedule, provider):
        activity_service.delete_schedule(activity.id, schedule.id, provider.id)
        assert db.execute(select(func.count(Schedule.id))).scalar_one() == 0

    def test_delete_schedule_with_any_booking_is_refused(
        self, activity_service, activity, schedule, provider, customer, make_booking
    ):
        make_booking(schedule, customer, status=BookingStatus.CANCELLED)
        with pytest.raises(ScheduleHasBookings):
            activity_service.delete_schedule(activity.id, schedule.id, provider.id)

    def test_delete_schedule_of_another_activity(
        self, activity_service, activity, provider, make_activity, make_schedule
    ):
        other = make_schedule(make_activity(provider, title="Other"))
        with pytest.raises(ScheduleNotFound):
            activity_service.delete_schedule(activity.id, other.id, provider.id)


class TestAvailabilityAndPacks:
    def test_update_and_read_availability(self, activity_service, activity, provider):
        activity_service.update_availability(
            activity.id,
            provider.id,
            {1: [{"start": "09:00", "end": "17:00"}]},
            [date(2026, 12, 25), date(2026, 12, 25), date(2026, 12, 24)],
            advance_booking_limit_days=60,
        )
        availability = activity_service.get_availability(activity.id)

        assert availability.operating_hours == {"1": [{"start": "09:00", "end": "17:00"}]}
        assert availability.blocked_dates == ["2026-12-24", "2026-12-25"]
        assert availability.blocked_days == [date(2026, 12, 24), date(2026, 12, 25)]
        assert availability.advance_booking_limit_days == 60

    def test_update_replaces_previous_overrides(self, activity_service, activity, provider):
        activity_service.update_availability(activity.id, provider.id, {}, [date(2026, 5, 1)])
        activity_service.update_availability(activity.id, provider.id, {}, [])
        assert activity_service.get_availability(activity.id).blocked_dates == []

    def test_availability_requires_ownership(self, activity_service, activity, customer):
        with pytest.raises(Unauthorized):
            activity_service.update_availability(activity.id, customer.id, {}, [])

    def test_create_and_list_packs(self, activity_service, activity, provider):
        pack = activity_service.create_pack(
            activity.id, provider.id, "Ten Pack", 10, 90, Decimal("1200.00")
        )
        assert [p.id for p in activity_service.list_packs(activity.id)] == [pack.id]

# backend/activityhub/services/activity_service.py
"""
Provider-side management of activities, schedules, availability overrides
and packs.

Every mutating operation takes the acting user's id and requires it to be the
activity's provider.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.constants import MAX_SCHEDULE_DURATION, MIN_SCHEDULE_DURATION
from ..core.enums import ActivityStatus
from ..core.exceptions import (
    ActivityHasBookings,
    ActivityNotFound,
    ScheduleAlreadyExists,
    ScheduleHasBookings,
    ScheduleNotFound,
    Unauthorized,
    ValidationException,
)
from ..core.timezone_utils import local_slot_to_utc
from ..models.activity import Activity, ActivityAvailability
from ..models.pack import Pack
from ..models.schedule import Schedule
from ..repositories.activity_repository import (
    ActivityRepository,
    AvailabilityRepository,
    PackRepository,
)
from ..repositories.factory import RepositoryFactory
from ..repositories.schedule_repository import ScheduleRepository
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleSlot:
    schedule: Schedule
    booked_participants: int

    @property
    def available_spots(self) -> int:
        return max(self.schedule.effective_max_participants - self.booked_participants, 0)


class ActivityService(BaseService):
    def __init__(
        self,
        db: Session,
        activity_repository: Optional[ActivityRepository] = None,
        schedule_repository: Optional[ScheduleRepository] = None,
        availability_repository: Optional[AvailabilityRepository] = None,
        pack_repository: Optional[PackRepository] = None,
    ):
        super().__init__(db)
        self.activity_repository = (
            activity_repository or RepositoryFactory.create_activity_repository(db)
        )
        self.schedule_repository = (
            schedule_repository or RepositoryFactory.create_schedule_repository(db)
        )
        self.availability_repository = (
            availability_repository or RepositoryFactory.create_availability_repository(db)
        )
        self.pack_repository = pack_repository or RepositoryFactory.create_pack_repository(db)

    # Activities

    def get_activity(self, activity_id: str) -> Activity:
        activity = self.activity_repository.get_by_id(activity_id)
        if activity is None:
            raise ActivityNotFound(activity_id)
        return activity

    def _get_owned_activity(self, activity_id: str, acting_user_id: str) -> Activity:
        activity = self.get_activity(activity_id)
        if activity.provider_id != acting_user_id:
            raise Unauthorized(activity_id=activity_id)
        return activity

    @BaseService.measure_operation("create_activity")
    def create_activity(
        self,
        provider_id: str,
        title: str,
        duration_minutes: int,
        price: Decimal,
        max_participants: int,
        description: Optional[str] = None,
        status: ActivityStatus = ActivityStatus.ACTIVE,
    ) -> Activity:
        with self.transaction():
            activity = self.activity_repository.create(
                provider_id=provider_id,
                title=title,
                description=description,
                duration_minutes=duration_minutes,
                price=price,
                max_participants=max_participants,
                status=status.value,
            )
        self.log_operation("activity_created", activity_id=activity.id, provider_id=provider_id)
        return activity

    @BaseService.measure_operation("delete_activity")
    def delete_activity(self, activity_id: str, acting_user_id: str) -> None:
        """
        Raises:
            ActivityHasBookings: PENDING or CONFIRMED bookings still exist
        """
        with self.transaction():
            self._get_owned_activity(activity_id, acting_user_id)
            active = self.activity_repository.count_active_bookings(activity_id)
            if active:
                raise ActivityHasBookings(activity_id, active)
            self.activity_repository.delete_with_dependents(activity_id)
        self.log_operation("activity_deleted", activity_id=activity_id)

    # Schedules

    @BaseService.measure_operation("create_schedule")
    def create_schedule(
        self,
        activity_id: str,
        acting_user_id: str,
        start_time: datetime,
        duration_minutes: Optional[int] = None,
        max_participants: Optional[int] = None,
        price: Optional[Decimal] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Schedule:
        """Create a single schedule. Naive ``start_time`` is read as business-local time."""
        if (start_date is None) != (end_date is None):
            raise ValidationException("start_date and end_date must be given together")
        if start_date is not None and end_date is not None and end_date < start_date:
            raise ValidationException(
                "End date must not be before start date",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )

        if start_time.tzinfo is None:
            start_time = local_slot_to_utc(start_time.date(), start_time.time())

        with self.transaction():
            activity = self._get_owned_activity(activity_id, acting_user_id)
            duration = duration_minutes or activity.duration_minutes
            if not MIN_SCHEDULE_DURATION <= duration <= MAX_SCHEDULE_DURATION:
                raise ValidationException(
                    "Schedule duration out of range", details={"duration_minutes": duration}
                )
            if self.schedule_repository.find_one_by(activity_id=activity_id, start_time=start_time):
                raise ScheduleAlreadyExists(activity_id, start_time.isoformat())

            schedule = self.schedule_repository.create(
                activity_id=activity_id,
                start_time=start_time,
                duration_minutes=duration,
                max_participants=max_participants,
                price=price,
                start_date=start_date,
                end_date=end_date,
            )
        self.log_operation("schedule_created", schedule_id=schedule.id, activity_id=activity_id)
        return schedule

    def list_schedules(self, activity_id: str, day: Optional[date] = None) -> List[ScheduleSlot]:
        """Schedules of an activity, optionally limited to one business-local day."""
        self.get_activity(activity_id)
        start = end = None
        if day is not None:
            start = local_slot_to_utc(day, time.min)
            end = local_slot_to_utc(day + timedelta(days=1), time.min)
        rows = self.schedule_repository.list_for_activity(activity_id, start=start, end=end)
        return [ScheduleSlot(schedule, booked) for schedule, booked in rows]

    @BaseService.measure_operation("delete_schedule")
    def delete_schedule(self, activity_id: str, schedule_id: str, acting_user_id: str) -> None:
        """
        Raises:
            ScheduleHasBookings: Any booking, whatever its status, references the schedule
        """
        with self.transaction():
            self._get_owned_activity(activity_id, acting_user_id)
            schedule = self.schedule_repository.get_by_id(schedule_id, load_relationships=False)
            if schedule is None or schedule.activity_id != activity_id:
                raise ScheduleNotFound(schedule_id)
            booking_count = self.schedule_repository.count_bookings(schedule_id)
            if booking_count:
                raise ScheduleHasBookings(schedule_id, booking_count)
            self.schedule_repository.delete(schedule_id)
        self.log_operation("schedule_deleted", schedule_id=schedule_id, activity_id=activity_id)

    # Availability overrides

    def get_availability(self, activity_id: str) -> Optional[ActivityAvailability]:
        self.get_activity(activity_id)
        return self.availability_repository.get_for_activity(activity_id)

    @BaseService.measure_operation("update_availability")
    def update_availability(
        self,
        activity_id: str,
        acting_user_id: str,
        operating_hours: Dict[str, List[Dict[str, str]]],
        blocked_dates: Sequence[date],
        advance_booking_limit_days: Optional[int] = None,
    ) -> ActivityAvailability:
        """
        Replace the activity's overrides.

        Operating hours and the advance-booking limit are stored for clients to
        display; booking does not enforce them. Blocked dates feed schedule
        generation.
        """
        values: Dict[str, Any] = {
            "operating_hours": {str(k): list(v) for k, v in operating_hours.items()},
            "blocked_dates": sorted({d.isoformat() for d in blocked_dates}),
            "advance_booking_limit_days": advance_booking_limit_days,
        }
        with self.transaction():
            self._get_owned_activity(activity_id, acting_user_id)
            availability = self.availability_repository.upsert_for_activity(activity_id, values)
        self.log_operation(
            "availability_updated",
            activity_id=activity_id,
            blocked_dates=len(values["blocked_dates"]),
        )
        return availability

    # Packs

    @BaseService.measure_operation("create_pack")
    def create_pack(
        self,
        activity_id: str,
        acting_user_id: str,
        title: str,
        sessions: int,
        validity_days: int,
        price: Decimal,
        description: Optional[str] = None,
    ) -> Pack:
        with self.transaction():
            self._get_owned_activity(activity_id, acting_user_id)
            pack = self.pack_repository.create(
                activity_id=activity_id,
                title=title,
                description=description,
                sessions=sessions,
                validity_days=validity_days,
                price=price,
            )
        self.log_operation("pack_created", pack_id=pack.id, activity_id=activity_id)
        return pack

    def list_packs(self, activity_id: str) -> List[Pack]:
        self.get_activity(activity_id)
        return self.pack_repository.list_for_activity(activity_id)

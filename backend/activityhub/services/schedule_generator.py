# backend/activityhub/services/schedule_generator.py
"""
Recurring schedule generation.

Expands a recurring pattern (date range, weekdays, daily time slots) into
concrete Schedule rows:

1. every calendar day in [start_date, end_date], inclusive
2. kept when its weekday (0 = Sunday ... 6 = Saturday) is selected
3. dropped when it is one of the activity's blocked dates
4. crossed with each time slot (local to the business timezone)
5. dropped unless the start is strictly after ``now``
6. bulk inserted, silently skipping exact (activity, start_time) duplicates

Steps 1-5 are the pure ``plan_schedule_starts`` so the expansion is
deterministic for a fixed ``now``. Overlapping but distinct slots are allowed.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
import logging
from typing import Collection, Iterable, List, Optional, Sequence

from pytz.tzinfo import BaseTzInfo
from sqlalchemy.orm import Session

from ..core.constants import (
    MAX_GENERATION_RANGE_DAYS,
    MAX_SCHEDULE_DURATION,
    MIN_SCHEDULE_DURATION,
)
from ..core.exceptions import ActivityNotFound, Unauthorized, ValidationException
from ..core.timezone_utils import get_business_timezone, local_slot_to_utc, sunday_based_weekday
from ..repositories.activity_repository import ActivityRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.schedule_repository import ScheduleRepository
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeSlot:
    """A daily slot: local start time, length, and optional capacity override."""

    start_time: time
    duration_minutes: int
    max_participants: Optional[int] = None

    @classmethod
    def parse(
        cls, start_time: str, duration_minutes: int, max_participants: Optional[int] = None
    ) -> "TimeSlot":
        """Build a slot from an ``HH:MM`` string."""
        try:
            hours, minutes = (int(part) for part in start_time.split(":"))
            parsed = time(hour=hours, minute=minutes)
        except ValueError as exc:
            raise ValidationException(
                f"Invalid slot start time {start_time!r}, expected HH:MM",
                details={"start_time": start_time},
            ) from exc
        return cls(parsed, duration_minutes, max_participants)


@dataclass(frozen=True)
class PlannedSchedule:
    start_time: datetime  # aware UTC
    duration_minutes: int
    max_participants: Optional[int]


def _validate_pattern(
    start_date: date, end_date: date, weekdays: Collection[int], time_slots: Sequence[TimeSlot]
) -> None:
    if end_date < start_date:
        raise ValidationException(
            "End date must not be before start date",
            details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )
    span = (end_date - start_date).days + 1
    if span > MAX_GENERATION_RANGE_DAYS:
        raise ValidationException(
            f"Date range may cover at most {MAX_GENERATION_RANGE_DAYS} days",
            details={"days": span},
        )
    invalid_days = sorted(d for d in weekdays if d not in range(7))
    if invalid_days:
        raise ValidationException(
            "Weekdays must be between 0 (Sunday) and 6 (Saturday)",
            details={"invalid_weekdays": invalid_days},
        )
    for slot in time_slots:
        if not MIN_SCHEDULE_DURATION <= slot.duration_minutes <= MAX_SCHEDULE_DURATION:
            raise ValidationException(
                "Slot duration out of range",
                details={
                    "duration_minutes": slot.duration_minutes,
                    "min": MIN_SCHEDULE_DURATION,
                    "max": MAX_SCHEDULE_DURATION,
                },
            )
        if slot.max_participants is not None and slot.max_participants < 1:
            raise ValidationException(
                "Slot capacity must be at least 1",
                details={"max_participants": slot.max_participants},
            )


def plan_schedule_starts(
    start_date: date,
    end_date: date,
    weekdays: Collection[int],
    time_slots: Sequence[TimeSlot],
    blocked_days: Iterable[date],
    now: datetime,
    tz: Optional[BaseTzInfo] = None,
) -> List[PlannedSchedule]:
    """
    Expand a recurring pattern into concrete future start times.

    Pure: the result depends only on the arguments. Output is ordered by day,
    then by slot order as given.
    """
    _validate_pattern(start_date, end_date, weekdays, time_slots)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    zone = tz or get_business_timezone()
    selected = set(weekdays)
    blocked = set(blocked_days)

    planned: List[PlannedSchedule] = []
    day = start_date
    while day <= end_date:
        if sunday_based_weekday(day) in selected and day not in blocked:
            for slot in time_slots:
                starts_at = local_slot_to_utc(day, slot.start_time, zone)
                if starts_at > now:
                    planned.append(
                        PlannedSchedule(starts_at, slot.duration_minutes, slot.max_participants)
                    )
        day += timedelta(days=1)
    return planned


class ScheduleGeneratorService(BaseService):
    def __init__(
        self,
        db: Session,
        activity_repository: Optional[ActivityRepository] = None,
        schedule_repository: Optional[ScheduleRepository] = None,
    ):
        super().__init__(db)
        self.activity_repository = (
            activity_repository or RepositoryFactory.create_activity_repository(db)
        )
        self.schedule_repository = (
            schedule_repository or RepositoryFactory.create_schedule_repository(db)
        )

    @BaseService.measure_operation("generate_schedules")
    def generate_schedules(
        self,
        activity_id: str,
        start_date: date,
        end_date: date,
        weekdays: Collection[int],
        time_slots: Sequence[TimeSlot],
        now: Optional[datetime] = None,
        acting_user_id: Optional[str] = None,
    ) -> int:
        """
        Generate schedules for a recurring pattern.

        Returns:
            Number of schedules actually created (exact duplicates are skipped)

        Raises:
            ActivityNotFound: Unknown activity
            Unauthorized: ``acting_user_id`` given and not the activity's provider
            ValidationException: Inverted or oversized range, bad weekday or slot
        """
        now = now or datetime.now(timezone.utc)

        with self.transaction():
            activity = self.activity_repository.get_by_id(activity_id)
            if activity is None:
                raise ActivityNotFound(activity_id)
            if acting_user_id is not None and activity.provider_id != acting_user_id:
                raise Unauthorized(activity_id=activity_id)

            blocked = activity.availability.blocked_days if activity.availability else []
            planned = plan_schedule_starts(
                start_date, end_date, weekdays, time_slots, blocked, now
            )
            created = self.schedule_repository.bulk_create_skip_duplicates(
                [
                    {
                        "activity_id": activity_id,
                        "start_time": item.start_time,
                        "duration_minutes": item.duration_minutes,
                        "max_participants": item.max_participants,
                    }
                    for item in planned
                ]
            )

        self.log_operation(
            "generate_schedules",
            activity_id=activity_id,
            planned=len(planned),
            created_count=created,
            skipped=len(planned) - created,
        )
        return created

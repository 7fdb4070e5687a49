# backend/activityhub/services/availability_validator.py
"""
Capacity and eligibility check for a schedule.

Read-only: the validator never writes. The booking orchestrator re-runs it
while holding the schedule's capacity lock, which is what makes the answer
binding; a standalone call (``POST /bookings/check-availability``) is only
advisory.
"""

from dataclasses import dataclass
from datetime import date
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.constants import MIN_PARTICIPANTS
from ..core.exceptions import (
    InsufficientCapacity,
    InvalidDate,
    ProviderInactive,
    ScheduleNotFound,
    ValidationException,
)
from ..models.schedule import Schedule
from ..repositories.factory import RepositoryFactory
from ..repositories.schedule_repository import ScheduleRepository
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilityResult:
    ok: bool
    available_spots: int  # before the requested booking is applied
    schedule: Optional[Schedule] = None


class AvailabilityValidator(BaseService):
    def __init__(self, db: Session, schedule_repository: Optional[ScheduleRepository] = None):
        super().__init__(db)
        self.schedule_repository = (
            schedule_repository or RepositoryFactory.create_schedule_repository(db)
        )

    @BaseService.measure_operation("check_availability")
    def check_availability(
        self,
        schedule_id: str,
        participants: int,
        requested_date: date,
        schedule: Optional[Schedule] = None,
    ) -> AvailabilityResult:
        """
        Decide whether ``participants`` more people fit on the schedule.

        Pass ``schedule`` when the caller already loaded (and locked) it.

        Raises:
            ValidationException: participants < 1
            ScheduleNotFound: Unknown schedule
            ProviderInactive: Provider subscription missing or not ACTIVE
            InvalidDate: Date outside the schedule's own date range
            InsufficientCapacity: Not enough spots left
        """
        if participants < MIN_PARTICIPANTS:
            raise ValidationException(
                f"At least {MIN_PARTICIPANTS} participant is required",
                details={"participants": participants},
            )

        if schedule is None:
            schedule = self.schedule_repository.get_by_id(schedule_id)
        if schedule is None:
            raise ScheduleNotFound(schedule_id)

        provider = schedule.activity.provider
        subscription = provider.subscription if provider is not None else None
        if subscription is None or not subscription.is_active:
            raise ProviderInactive(
                schedule.activity.provider_id,
                subscription.status if subscription is not None else None,
            )

        if schedule.has_date_range and not (
            schedule.start_date <= requested_date <= schedule.end_date
        ):
            raise InvalidDate(
                requested_date.isoformat(),
                schedule.start_date.isoformat(),
                schedule.end_date.isoformat(),
            )

        booked = self.schedule_repository.sum_booked_participants(schedule.id)
        available_spots = max(schedule.effective_max_participants - booked, 0)

        if participants > available_spots:
            self.logger.info(
                "Capacity rejected for schedule %s: requested=%s available=%s",
                schedule.id,
                participants,
                available_spots,
            )
            raise InsufficientCapacity(available_spots, participants)

        return AvailabilityResult(ok=True, available_spots=available_spots, schedule=schedule)

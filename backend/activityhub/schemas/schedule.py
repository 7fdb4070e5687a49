# backend/activityhub/schemas/schedule.py
"""Schedule schemas, including the recurring generation request."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.constants import MAX_SCHEDULE_DURATION, MIN_SCHEDULE_DURATION
from ._strict_base import StrictModel, StrictRequestModel
from .activity import HH_MM


class TimeSlotIn(StrictRequestModel):
    start_time: str = Field(..., description="Local wall-clock start, HH:MM")
    duration: int = Field(..., ge=MIN_SCHEDULE_DURATION, le=MAX_SCHEDULE_DURATION)
    max_participants: Optional[int] = Field(default=None, ge=1)

    @field_validator("start_time")
    @classmethod
    def _hh_mm(cls, value: str) -> str:
        if not HH_MM.fullmatch(value):
            raise ValueError("start_time must be HH:MM")
        return value


class RecurringScheduleRequest(StrictRequestModel):
    start_date: date
    end_date: date
    days: List[int] = Field(..., description="Weekdays, 0 = Sunday ... 6 = Saturday")
    time_slots: List[TimeSlotIn]

    @field_validator("days")
    @classmethod
    def _weekdays(cls, value: List[int]) -> List[int]:
        bad = [d for d in value if d not in range(7)]
        if bad:
            raise ValueError(f"days must be between 0 and 6, got {bad}")
        return value

    @model_validator(mode="after")
    def _range(self) -> "RecurringScheduleRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class RecurringScheduleResponse(StrictModel):
    count: int
    message: str


class ScheduleCreate(StrictRequestModel):
    start_time: datetime
    duration_minutes: Optional[int] = Field(
        default=None, ge=MIN_SCHEDULE_DURATION, le=MAX_SCHEDULE_DURATION
    )
    max_participants: Optional[int] = Field(default=None, ge=1)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ScheduleResponse(StrictModel):
    id: str
    activity_id: str
    start_time: datetime
    duration_minutes: int
    max_participants: Optional[int] = None
    price: Optional[Decimal] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    booked_participants: int = 0
    available_spots: Optional[int] = None

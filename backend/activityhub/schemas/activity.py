# backend/activityhub/schemas/activity.py
"""Activity, availability-override and pack schemas."""

from datetime import date, datetime
from decimal import Decimal
import re
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from ..core.constants import MAX_SCHEDULE_DURATION, MAX_TITLE_LENGTH, MIN_SCHEDULE_DURATION
from ..core.enums import ActivityStatus
from ._strict_base import StrictModel, StrictRequestModel

HH_MM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class ActivityCreate(StrictRequestModel):
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = None
    duration_minutes: int = Field(..., ge=MIN_SCHEDULE_DURATION, le=MAX_SCHEDULE_DURATION)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    max_participants: int = Field(..., ge=1)
    status: ActivityStatus = ActivityStatus.ACTIVE


class ActivityResponse(StrictModel):
    id: str
    provider_id: str
    title: str
    description: Optional[str] = None
    duration_minutes: int
    price: Decimal
    max_participants: int
    status: ActivityStatus
    created_at: datetime


class OperatingWindow(StrictRequestModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _hh_mm(cls, value: str) -> str:
        if not HH_MM.fullmatch(value):
            raise ValueError("must be HH:MM")
        return value


class AvailabilityUpdate(StrictRequestModel):
    """Operating hours keyed by weekday, 0 = Sunday ... 6 = Saturday."""

    operating_hours: Dict[int, List[OperatingWindow]] = Field(default_factory=dict)
    blocked_dates: List[date] = Field(default_factory=list)
    advance_booking_limit_days: Optional[int] = Field(default=None, ge=0)

    @field_validator("operating_hours")
    @classmethod
    def _weekday_keys(cls, value: Dict[int, List[OperatingWindow]]) -> Dict[int, List[OperatingWindow]]:
        bad = [day for day in value if day not in range(7)]
        if bad:
            raise ValueError(f"weekday keys must be 0-6, got {bad}")
        for windows in value.values():
            for window in windows:
                if window.end <= window.start:
                    raise ValueError("operating window end must be after start")
        return value


class AvailabilityResponse(StrictModel):
    activity_id: str
    operating_hours: Dict[str, List[Dict[str, str]]] = Field(default_factory=dict)
    blocked_dates: List[date] = Field(default_factory=list)
    advance_booking_limit_days: Optional[int] = None


class PackCreate(StrictRequestModel):
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = None
    sessions: int = Field(..., ge=1)
    validity_days: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


class PackResponse(StrictModel):
    id: str
    activity_id: str
    title: str
    description: Optional[str] = None
    sessions: int
    validity_days: int
    price: Decimal
    created_at: datetime


class PackUsageResponse(StrictModel):
    pack_id: str
    sessions: int
    used: int
    remaining: int
    valid_until: Optional[datetime] = None
    expired: bool

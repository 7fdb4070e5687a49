# backend/activityhub/models/activity.py
"""
Activity and per-activity availability overrides.

An Activity is a bookable offering owned by exactly one provider. Its
availability overrides (operating hours, advance-booking limit, blocked dates)
live in a separate one-to-one row; absence of that row means "no restriction".
"""

from datetime import date
from typing import Any, List

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ..core.enums import ActivityStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime, utcnow


class Activity(Base):
    __tablename__ = "activities"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    provider_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    max_participants = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=ActivityStatus.DRAFT.value)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    provider = relationship("User", back_populates="activities")
    schedules = relationship("Schedule", back_populates="activity")
    packs = relationship("Pack", back_populates="activity")
    availability = relationship("ActivityAvailability", back_populates="activity", uselist=False)

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_activities_duration_positive"),
        CheckConstraint("max_participants > 0", name="ck_activities_capacity_positive"),
        CheckConstraint("price >= 0", name="ck_activities_price_non_negative"),
        CheckConstraint("status IN ('DRAFT', 'ACTIVE')", name="ck_activities_status"),
    )

    def __repr__(self) -> str:
        return f"<Activity {self.id}: {self.title!r} provider={self.provider_id}>"


class ActivityAvailability(Base):
    """Availability overrides for one activity."""

    __tablename__ = "activity_availability"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    activity_id = Column(
        String(26), ForeignKey("activities.id"), nullable=False, unique=True, index=True
    )
    # {"0": [{"start": "09:00", "end": "17:00"}], ...} keyed by weekday, 0 = Sunday
    operating_hours = Column(JSON, nullable=False, default=dict)
    advance_booking_limit_days = Column(Integer, nullable=True)
    # ISO dates, e.g. ["2026-12-25"]
    blocked_dates = Column(JSON, nullable=False, default=list)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    activity = relationship("Activity", back_populates="availability")

    @property
    def blocked_days(self) -> List[date]:
        """Blocked dates parsed to ``date`` (day granularity)."""
        days: List[date] = []
        for raw in self.blocked_dates or []:
            days.append(_coerce_day(raw))
        return days


def _coerce_day(raw: Any) -> date:
    if isinstance(raw, date):
        return raw
    # Accept full ISO timestamps ("2026-12-25T00:00:00Z"); only the day matters.
    return date.fromisoformat(str(raw)[:10])

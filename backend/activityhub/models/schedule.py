# backend/activityhub/models/schedule.py
"""
Schedule model: one concrete bookable instance of an Activity.

A schedule may override the activity's capacity and price, and may carry its
own bookable date range. ``(activity_id, start_time)`` is unique so bulk
generation can skip exact duplicates.
"""

from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime, utcnow


class Schedule(Base):
    __tablename__ = "schedules"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    activity_id = Column(String(26), ForeignKey("activities.id"), nullable=False, index=True)
    start_time = Column(UTCDateTime, nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False)

    # Per-instance overrides (None = inherit from activity)
    max_participants = Column(Integer, nullable=True)
    price = Column(Numeric(10, 2), nullable=True)

    # Optional bookable date range
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    activity = relationship("Activity", back_populates="schedules")
    bookings = relationship("Booking", back_populates="schedule")

    __table_args__ = (
        UniqueConstraint("activity_id", "start_time", name="uq_schedules_activity_start"),
        CheckConstraint("duration_minutes > 0", name="ck_schedules_duration_positive"),
        CheckConstraint(
            "max_participants IS NULL OR max_participants > 0",
            name="ck_schedules_capacity_positive",
        ),
    )

    @property
    def effective_max_participants(self) -> int:
        if self.max_participants is not None:
            return int(self.max_participants)
        return int(self.activity.max_participants)

    @property
    def effective_price(self) -> Decimal:
        if self.price is not None:
            return Decimal(self.price)
        return Decimal(self.activity.price)

    @property
    def has_date_range(self) -> bool:
        return self.start_date is not None and self.end_date is not None

    def __repr__(self) -> str:
        return f"<Schedule {self.id}: activity={self.activity_id} start={self.start_time}>"

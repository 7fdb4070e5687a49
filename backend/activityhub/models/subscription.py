# backend/activityhub/models/subscription.py
"""
Provider subscription.

The booking engine only reads tier/status and increments
``monthly_booking_count``; renewals, upgrades and cancellations happen
elsewhere. ``usage_period_start`` is the first day of the month the count
belongs to, so a stale count from a previous month reads as zero.
"""

from datetime import date

from sqlalchemy import Column, Date, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..core.enums import SubscriptionStatus, SubscriptionTier
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime, utcnow


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    provider_id = Column(String(26), ForeignKey("users.id"), nullable=False, unique=True)
    tier = Column(String(20), nullable=False, default=SubscriptionTier.BASIC.value)
    status = Column(String(20), nullable=False, default=SubscriptionStatus.ACTIVE.value)

    monthly_booking_count = Column(Integer, nullable=False, default=0)
    usage_period_start = Column(Date, nullable=True)

    current_period_start = Column(UTCDateTime, nullable=True)
    current_period_end = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=utcnow)

    provider = relationship("User", back_populates="subscription")

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE.value

    def bookings_in_month(self, month_start: date) -> int:
        """Booking count attributed to the month starting ``month_start``."""
        if self.usage_period_start != month_start:
            return 0
        return int(self.monthly_booking_count or 0)

    def __repr__(self) -> str:
        return f"<Subscription provider={self.provider_id} {self.tier}/{self.status}>"

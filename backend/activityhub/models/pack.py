# backend/activityhub/models/pack.py
"""
Pack model: a prepaid bundle of sessions for one activity.

Used sessions and the validity deadline are not stored. Both are derived from
the bookings that reference the pack; the validity window starts at the first
booking, not at purchase.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime, utcnow


class Pack(Base):
    __tablename__ = "packs"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    activity_id = Column(String(26), ForeignKey("activities.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    sessions = Column(Integer, nullable=False)
    validity_days = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    activity = relationship("Activity", back_populates="packs")
    bookings = relationship("Booking", back_populates="pack")

    __table_args__ = (
        CheckConstraint("sessions > 0", name="ck_packs_sessions_positive"),
        CheckConstraint("validity_days > 0", name="ck_packs_validity_positive"),
        CheckConstraint("price >= 0", name="ck_packs_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Pack {self.id}: {self.sessions} sessions / {self.validity_days} days>"

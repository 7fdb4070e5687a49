# backend/activityhub/models/booking.py
"""
Booking model: a reservation of one or more places on a Schedule.

Lifecycle: PENDING -> CONFIRMED | CANCELLED | FAILED, with a separate
payment_status PENDING -> PAID | FAILED. Status changes come only from payment
settlement or explicit cancellation.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ..core.enums import BookingStatus, PaymentStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime, utcnow

logger = logging.getLogger(__name__)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, default=generate_ulid)

    # Core relationships
    schedule_id = Column(String(26), ForeignKey("schedules.id"), nullable=False, index=True)
    activity_id = Column(String(26), ForeignKey("activities.id"), nullable=False, index=True)
    customer_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    pack_id = Column(String(26), ForeignKey("packs.id"), nullable=True, index=True)

    participants = Column(Integer, nullable=False)
    booking_date = Column(Date, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)

    special_requests = Column(Text, nullable=True)
    contact_details = Column(JSON, nullable=True)

    # Timestamps
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=utcnow)
    confirmed_at = Column(UTCDateTime, nullable=True)
    cancelled_at = Column(UTCDateTime, nullable=True)

    # Cancellation tracking
    cancelled_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)

    schedule = relationship("Schedule", back_populates="bookings")
    activity = relationship("Activity")
    customer = relationship("User", foreign_keys=[customer_id])
    cancelled_by = relationship("User", foreign_keys=[cancelled_by_id])
    pack = relationship("Pack", back_populates="bookings")
    payment = relationship("Payment", back_populates="booking", uselist=False)

    __table_args__ = (
        CheckConstraint("participants > 0", name="ck_bookings_participants_positive"),
        CheckConstraint("total_price >= 0", name="ck_bookings_price_non_negative"),
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'CANCELLED', 'FAILED')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "payment_status IN ('PENDING', 'PAID', 'FAILED')",
            name="ck_bookings_payment_status",
        ),
        Index("ix_bookings_schedule_status", "schedule_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: schedule={self.schedule_id} customer={self.customer_id} "
            f"participants={self.participants} status={self.status}/{self.payment_status}>"
        )

    @property
    def holds_capacity(self) -> bool:
        return self.status in {s.value for s in BookingStatus.capacity_holding()}

    @property
    def is_cancellable(self) -> bool:
        # Only bookings still holding a seat can be cancelled
        return self.holds_capacity

    def cancel(self, cancelled_by_user_id: str, now: Optional[datetime] = None) -> None:
        """Cancel this booking."""
        self.status = BookingStatus.CANCELLED.value
        self.cancelled_at = now or datetime.now(timezone.utc)
        self.cancelled_by_id = cancelled_by_user_id
        logger.info("Booking %s cancelled by user %s", self.id, cancelled_by_user_id)

    def confirm(self, now: Optional[datetime] = None) -> None:
        self.status = BookingStatus.CONFIRMED.value
        self.payment_status = PaymentStatus.PAID.value
        self.confirmed_at = now or datetime.now(timezone.utc)
        logger.info("Booking %s confirmed", self.id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "schedule_id": self.schedule_id,
            "activity_id": self.activity_id,
            "customer_id": self.customer_id,
            "pack_id": self.pack_id,
            "participants": self.participants,
            "booking_date": self.booking_date.isoformat() if self.booking_date else None,
            "total_price": str(self.total_price),
            "status": self.status,
            "payment_status": self.payment_status,
            "special_requests": self.special_requests,
            "contact_details": self.contact_details,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
        }

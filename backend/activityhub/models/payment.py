# backend/activityhub/models/payment.py
"""
Payment record.

One row per payment request handed to a processor. ``reference`` is what the
processor echoes back in its settlement callback: the booking id for booking
payments, a generated id for subscription payments.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from ..core.enums import PaymentStatus, PaymentType
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime, utcnow


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    reference = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=True, unique=True)
    type = Column(String(20), nullable=False, default=PaymentType.BOOKING.value)

    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    description = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)

    processor = Column(String(32), nullable=True, comment="Processor that settled the payment")
    processor_payment_id = Column(String(255), nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=utcnow)
    paid_at = Column(UTCDateTime, nullable=True)

    user = relationship("User")
    booking = relationship("Booking", back_populates="payment")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_payments_amount_non_negative"),
        CheckConstraint("type IN ('BOOKING', 'SUBSCRIPTION')", name="ck_payments_type"),
        CheckConstraint("status IN ('PENDING', 'PAID', 'FAILED')", name="ck_payments_status"),
    )

    def __repr__(self) -> str:
        return f"<Payment {self.id}: ref={self.reference} {self.type} {self.status}>"

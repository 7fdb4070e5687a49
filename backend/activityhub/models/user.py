# backend/activityhub/models/user.py
"""
User model.

Providers and customers are both users. Authentication lives upstream; this
table only carries what the booking engine reads: contact email and the
provider's payout account linkage.
"""

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=True)

    # Payout linkage; at most one is expected to be populated
    stripe_account_id = Column(String(255), nullable=True)
    lemonsqueezy_store_id = Column(String(255), nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    subscription = relationship("Subscription", back_populates="provider", uselist=False)
    activities = relationship("Activity", back_populates="provider")

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email}>"

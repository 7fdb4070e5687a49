# backend/activityhub/models/notification.py
"""In-app notification rows; email delivery is a side effect of creating one."""

from sqlalchemy import Boolean, Column, ForeignKey, String, Text

from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime, utcnow


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    user_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(32), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    related_id = Column(String(26), nullable=True, index=True)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Notification {self.id}: {self.type} -> {self.user_id}>"

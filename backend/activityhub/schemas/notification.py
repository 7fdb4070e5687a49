"""In-app notification schemas."""

from datetime import datetime
from typing import Optional

from ._strict_base import StrictModel


class NotificationResponse(StrictModel):
    id: str
    type: str
    title: str
    message: str
    related_id: Optional[str] = None
    read: bool
    created_at: datetime

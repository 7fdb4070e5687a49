"""
Database models for the ActivityHub booking engine.

- Users (providers and customers) and provider subscriptions
- Activities, availability overrides, schedules and packs
- Bookings, payments and notifications
"""

from .activity import Activity, ActivityAvailability
from .booking import Booking
from .notification import Notification
from .pack import Pack
from .payment import Payment
from .schedule import Schedule
from .subscription import Subscription
from .user import User

__all__ = [
    "Activity",
    "ActivityAvailability",
    "Booking",
    "Notification",
    "Pack",
    "Payment",
    "Schedule",
    "Subscription",
    "User",
]

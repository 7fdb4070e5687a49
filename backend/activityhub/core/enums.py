# backend/activityhub/core/enums.py
"""
Core enums for the ActivityHub booking engine.

Values are stored verbatim in the database, so renaming a member is a
data migration.
"""

from enum import Enum


class ActivityStatus(str, Enum):
    """Activity lifecycle."""

    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "PENDING"  # Created, awaiting settlement
    CONFIRMED = "CONFIRMED"  # Payment settled
    CANCELLED = "CANCELLED"  # Cancelled by customer or provider
    FAILED = "FAILED"

    @classmethod
    def capacity_holding(cls) -> tuple["BookingStatus", ...]:
        """Statuses whose participants count against schedule capacity."""
        return (cls.PENDING, cls.CONFIRMED)


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class PaymentType(str, Enum):
    BOOKING = "BOOKING"
    SUBSCRIPTION = "SUBSCRIPTION"


class SubscriptionTier(str, Enum):
    """Provider subscription tiers, ordered from lowest to highest."""

    BASIC = "BASIC"
    PROFESSIONAL = "PROFESSIONAL"
    ENTERPRISE = "ENTERPRISE"


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAST_DUE = "PAST_DUE"
    CANCELLED = "CANCELLED"
    SUSPENDED = "SUSPENDED"
    GRACE_PERIOD = "GRACE_PERIOD"


class CallbackStatus(str, Enum):
    """Normalized settlement outcome reported by a payment processor."""

    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class NotificationType(str, Enum):
    BOOKING_CONFIRMED = "BOOKING_CONFIRMED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    USAGE_ALERT = "USAGE_ALERT"

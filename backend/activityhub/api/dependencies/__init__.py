# backend/activityhub/api/dependencies/__init__.py
"""
FastAPI dependencies, re-exported for route modules.
"""

from .auth import get_current_user_id
from .database import get_db
from .services import (
    get_activity_service,
    get_availability_validator,
    get_booking_service,
    get_email_service,
    get_notification_service,
    get_pack_tracker,
    get_payfast_client,
    get_schedule_generator,
    get_settlement_service,
    get_stripe_service,
)

__all__ = [
    "get_activity_service",
    "get_availability_validator",
    "get_booking_service",
    "get_current_user_id",
    "get_db",
    "get_email_service",
    "get_notification_service",
    "get_pack_tracker",
    "get_payfast_client",
    "get_schedule_generator",
    "get_settlement_service",
    "get_stripe_service",
]

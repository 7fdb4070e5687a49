# backend/activityhub/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Each request gets one ``NotificationService`` so the emails queued by any
service in that request are delivered together after commit.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.activity_service import ActivityService
from ...services.availability_validator import AvailabilityValidator
from ...services.booking_service import BookingService
from ...services.email import EmailService
from ...services.notification_service import NotificationService
from ...services.pack_tracker import PackTracker
from ...services.payfast_client import PayFastClient
from ...services.payment_settlement_service import PaymentSettlementService
from ...services.schedule_generator import ScheduleGeneratorService
from ...services.stripe_service import StripeService
from ...services.template_service import TemplateService
from .database import get_db


@lru_cache(maxsize=1)
def get_template_service() -> TemplateService:
    """Templates are compiled once per process."""
    return TemplateService()


def get_email_service() -> EmailService:
    return EmailService()


def get_notification_service(
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> NotificationService:
    return NotificationService(
        db, email_service=email_service, template_service=get_template_service()
    )


def get_activity_service(db: Session = Depends(get_db)) -> ActivityService:
    return ActivityService(db)


def get_schedule_generator(db: Session = Depends(get_db)) -> ScheduleGeneratorService:
    return ScheduleGeneratorService(db)


def get_availability_validator(db: Session = Depends(get_db)) -> AvailabilityValidator:
    return AvailabilityValidator(db)


def get_pack_tracker(db: Session = Depends(get_db)) -> PackTracker:
    return PackTracker(db)


def get_booking_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> BookingService:
    return BookingService(db, notification_service=notification_service)


def get_settlement_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> PaymentSettlementService:
    return PaymentSettlementService(db, notification_service=notification_service)


def get_payfast_client() -> PayFastClient:
    return PayFastClient()


def get_stripe_service() -> StripeService:
    return StripeService()

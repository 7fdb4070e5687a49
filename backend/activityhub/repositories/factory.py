# backend/activityhub/repositories/factory.py
"""
Repository Factory for the ActivityHub booking engine.

Centralizes repository creation so services can be handed either real
repositories or test doubles.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

if TYPE_CHECKING:
    from .activity_repository import ActivityRepository, AvailabilityRepository, PackRepository
    from .booking_repository import BookingRepository
    from .notification_repository import NotificationRepository
    from .payment_repository import PaymentRepository
    from .schedule_repository import ScheduleRepository
    from .subscription_repository import SubscriptionRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_activity_repository(db: Session) -> "ActivityRepository":
        from .activity_repository import ActivityRepository

        return ActivityRepository(db)

    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        from .activity_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_pack_repository(db: Session) -> "PackRepository":
        from .activity_repository import PackRepository

        return PackRepository(db)

    @staticmethod
    def create_schedule_repository(db: Session) -> "ScheduleRepository":
        from .schedule_repository import ScheduleRepository

        return ScheduleRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_subscription_repository(db: Session) -> "SubscriptionRepository":
        from .subscription_repository import SubscriptionRepository

        return SubscriptionRepository(db)

    @staticmethod
    def create_payment_repository(db: Session) -> "PaymentRepository":
        from .payment_repository import PaymentRepository

        return PaymentRepository(db)

    @staticmethod
    def create_notification_repository(db: Session) -> "NotificationRepository":
        from .notification_repository import NotificationRepository

        return NotificationRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)

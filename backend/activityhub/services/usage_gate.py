# backend/activityhub/services/usage_gate.py
"""
Subscription usage gate.

Decides whether a provider may take another booking, in a fixed order:

1. SubscriptionInactive   - no subscription, or status other than ACTIVE
2. BookingLimitReached    - this month's count is at the tier ceiling
3. PaymentSetupIncomplete - no payment processor linked

Monthly counts are attributed to ``usage_period_start`` (first day of the
month). A count stored for an earlier month reads as zero and is rolled over
the next time a confirmed booking is recorded.
"""

from datetime import date, datetime, timezone
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import TierLimits
from ..core.enums import NotificationType
from ..core.exceptions import BookingLimitReached, PaymentSetupIncomplete, SubscriptionInactive
from ..core.timezone_utils import business_day_of
from ..domain.payment_processor import (
    PaymentProcessor,
    is_configured,
    resolve_payment_processor,
)
from ..models.subscription import Subscription
from ..repositories.factory import RepositoryFactory
from ..repositories.subscription_repository import SubscriptionRepository
from ..repositories.user_repository import UserRepository
from .base import BaseService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


def month_start(moment: datetime) -> date:
    """First day of the business-local month containing ``moment``."""
    return business_day_of(moment).replace(day=1)


class UsageGate(BaseService):
    def __init__(
        self,
        db: Session,
        tier_limits: Optional[TierLimits] = None,
        subscription_repository: Optional[SubscriptionRepository] = None,
        user_repository: Optional[UserRepository] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        super().__init__(db)
        self.tier_limits = tier_limits or settings.tier_limit_table
        self.subscription_repository = (
            subscription_repository or RepositoryFactory.create_subscription_repository(db)
        )
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)
        self._notification_service = notification_service

    @property
    def notification_service(self) -> NotificationService:
        if self._notification_service is None:
            self._notification_service = NotificationService(self.db)
        return self._notification_service

    @BaseService.measure_operation("check_provider")
    def check_provider(self, provider_id: str, now: Optional[datetime] = None) -> PaymentProcessor:
        """
        Gate a provider before a booking is accepted.

        Returns:
            The provider's resolved payment processor
        """
        now = now or datetime.now(timezone.utc)
        subscription = self.subscription_repository.get_by_provider(provider_id)
        if subscription is None or not subscription.is_active:
            raise SubscriptionInactive(
                provider_id, subscription.status if subscription is not None else None
            )

        ceiling = self.tier_limits.ceiling_for(subscription.tier)
        current = subscription.bookings_in_month(month_start(now))
        if ceiling is not None and current >= ceiling:
            raise BookingLimitReached(provider_id, subscription.tier, ceiling, current)

        provider = self.user_repository.get_by_id(provider_id, load_relationships=False)
        processor = resolve_payment_processor(
            provider.stripe_account_id if provider else None,
            provider.lemonsqueezy_store_id if provider else None,
        )
        if not is_configured(processor):
            raise PaymentSetupIncomplete(provider_id)
        return processor

    def record_confirmed_booking(
        self, provider_id: str, now: Optional[datetime] = None
    ) -> Optional[Subscription]:
        """
        Count one confirmed booking against the provider's current month.

        Runs inside the caller's transaction (no commit). Emits a USAGE_ALERT
        when the count first crosses the warning or critical threshold of a
        bounded tier.
        """
        now = now or datetime.now(timezone.utc)
        subscription = self.subscription_repository.get_by_provider(provider_id, for_update=True)
        if subscription is None:
            logger.warning("No subscription to record usage for provider %s", provider_id)
            return None

        period = month_start(now)
        previous = subscription.bookings_in_month(period)
        subscription.usage_period_start = period
        subscription.monthly_booking_count = previous + 1
        self.db.flush()

        ceiling = self.tier_limits.ceiling_for(subscription.tier)
        if ceiling:
            self._maybe_alert(subscription, previous, subscription.monthly_booking_count, ceiling)
        return subscription

    def _maybe_alert(self, subscription: Subscription, before: int, after: int, ceiling: int) -> None:
        before_pct = before * 100.0 / ceiling
        after_pct = after * 100.0 / ceiling

        level = None
        threshold = None
        if before_pct < settings.usage_critical_percent <= after_pct:
            level, threshold = "CRITICAL", settings.usage_critical_percent
        elif before_pct < settings.usage_warning_percent <= after_pct:
            level, threshold = "WARNING", settings.usage_warning_percent
        if level is None:
            return

        provider = subscription.provider
        self.notification_service.notify(
            provider,
            NotificationType.USAGE_ALERT,
            title=f"Booking usage {level.lower()}",
            message=(
                f"You have used {after} of {ceiling} monthly bookings on your "
                f"{subscription.tier.title()} plan ({after_pct:.0f}%, threshold {threshold:.0f}%)."
            ),
            related_id=subscription.id,
        )
        self.log_operation(
            "usage_alert",
            provider_id=subscription.provider_id,
            level=level,
            count=after,
            ceiling=ceiling,
        )

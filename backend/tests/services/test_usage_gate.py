# backend/tests/services/test_usage_gate.py
"""
Tests for the subscription usage gate and monthly usage tracking.
"""

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select

from activityhub.core.constants import TierLimits
from activityhub.core.enums import NotificationType, SubscriptionStatus, SubscriptionTier
from activityhub.core.exceptions import (
    BookingLimitReached,
    PaymentSetupIncomplete,
    SubscriptionInactive,
)
from activityhub.domain.payment_processor import LemonSqueezyProcessor, StripeProcessor
from activityhub.models import Notification, Subscription
from activityhub.services.usage_gate import UsageGate, month_start

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
MARCH = date(2026, 3, 1)


def _gate(db, notification_service, ceilings=None) -> UsageGate:
    limits = TierLimits(ceilings=ceilings) if ceilings is not None else None
    return UsageGate(db, tier_limits=limits, notification_service=notification_service)


def _subscription(db, provider) -> Subscription:
    return db.execute(
        select(Subscription).where(Subscription.provider_id == provider.id)
    ).scalar_one()


class TestCheckProvider:
    def test_active_provider_with_stripe(self, db, notification_service, provider):
        processor = _gate(db, notification_service).check_provider(provider.id, now=NOW)
        assert processor == StripeProcessor(account_id="acct_test_123")

    def test_lemonsqueezy_when_stripe_missing(self, db, notification_service, make_provider):
        provider = make_provider(stripe_account_id=None, lemonsqueezy_store_id="store_9")
        processor = _gate(db, notification_service).check_provider(provider.id, now=NOW)
        assert processor == LemonSqueezyProcessor(store_id="store_9")

    def test_missing_subscription(self, db, notification_service, make_provider):
        provider = make_provider(status=None)
        with pytest.raises(SubscriptionInactive) as exc_info:
            _gate(db, notification_service).check_provider(provider.id, now=NOW)
        assert exc_info.value.details["subscription_status"] is None

    @pytest.mark.parametrize(
        "status",
        [
            SubscriptionStatus.PAST_DUE,
            SubscriptionStatus.CANCELLED,
            SubscriptionStatus.SUSPENDED,
            SubscriptionStatus.GRACE_PERIOD,
        ],
    )
    def test_non_active_subscription(self, db, notification_service, make_provider, status):
        provider = make_provider(status=status)
        with pytest.raises(SubscriptionInactive):
            _gate(db, notification_service).check_provider(provider.id, now=NOW)

    def test_limit_reached_for_current_month(self, db, notification_service, make_provider):
        provider = make_provider(monthly_booking_count=50, usage_period_start=MARCH)
        with pytest.raises(BookingLimitReached) as exc_info:
            _gate(db, notification_service).check_provider(provider.id, now=NOW)
        assert exc_info.value.details == {
            "provider_id": provider.id,
            "tier": "BASIC",
            "limit": 50,
            "current": 50,
        }

    def test_stale_month_count_reads_as_zero(self, db, notification_service, make_provider):
        provider = make_provider(monthly_booking_count=50, usage_period_start=date(2026, 2, 1))
        _gate(db, notification_service).check_provider(provider.id, now=NOW)

    def test_enterprise_is_unbounded(self, db, notification_service, make_provider):
        provider = make_provider(
            tier=SubscriptionTier.ENTERPRISE,
            monthly_booking_count=10_000,
            usage_period_start=MARCH,
        )
        _gate(db, notification_service).check_provider(provider.id, now=NOW)

    def test_injected_tier_limits(self, db, notification_service, make_provider):
        provider = make_provider(
            tier=SubscriptionTier.PROFESSIONAL, monthly_booking_count=5, usage_period_start=MARCH
        )
        gate = _gate(
            db, notification_service, {"BASIC": 1, "PROFESSIONAL": 5, "ENTERPRISE": None}
        )
        with pytest.raises(BookingLimitReached):
            gate.check_provider(provider.id, now=NOW)

    def test_payment_setup_incomplete(self, db, notification_service, make_provider):
        provider = make_provider(stripe_account_id="  ", lemonsqueezy_store_id=None)
        with pytest.raises(PaymentSetupIncomplete):
            _gate(db, notification_service).check_provider(provider.id, now=NOW)

    def test_limit_is_checked_before_payment_setup(
        self, db, notification_service, make_provider
    ):
        provider = make_provider(
            stripe_account_id=None, monthly_booking_count=50, usage_period_start=MARCH
        )
        with pytest.raises(BookingLimitReached):
            _gate(db, notification_service).check_provider(provider.id, now=NOW)


class TestRecordConfirmedBooking:
    def test_increments_current_month(self, db, notification_service, make_provider):
        provider = make_provider(monthly_booking_count=3, usage_period_start=MARCH)
        _gate(db, notification_service).record_confirmed_booking(provider.id, now=NOW)
        db.commit()

        subscription = _subscription(db, provider)
        assert subscription.monthly_booking_count == 4
        assert subscription.usage_period_start == MARCH

    def test_rolls_over_to_new_month(self, db, notification_service, make_provider):
        provider = make_provider(monthly_booking_count=42, usage_period_start=date(2026, 2, 1))
        _gate(db, notification_service).record_confirmed_booking(provider.id, now=NOW)
        db.commit()

        subscription = _subscription(db, provider)
        assert subscription.monthly_booking_count == 1
        assert subscription.usage_period_start == MARCH

    def test_warning_alert_when_crossing_eighty_percent(
        self, db, notification_service, make_provider, email_service
    ):
        provider = make_provider(monthly_booking_count=39, usage_period_start=MARCH)
        _gate(db, notification_service).record_confirmed_booking(provider.id, now=NOW)
        db.commit()

        alerts = db.execute(
            select(Notification).where(
                Notification.user_id == provider.id,
                Notification.type == NotificationType.USAGE_ALERT.value,
            )
        ).scalars().all()
        assert len(alerts) == 1
        assert "warning" in alerts[0].title.lower()
        assert notification_service.pending_count == 1

    def test_critical_alert_when_crossing_ninety_percent(
        self, db, notification_service, make_provider
    ):
        provider = make_provider(monthly_booking_count=44, usage_period_start=MARCH)
        _gate(db, notification_service).record_confirmed_booking(provider.id, now=NOW)
        db.commit()

        alert = db.execute(
            select(Notification).where(Notification.user_id == provider.id)
        ).scalar_one()
        assert "critical" in alert.title.lower()

    def test_no_alert_below_or_past_threshold(self, db, notification_service, make_provider):
        below = make_provider(monthly_booking_count=10, usage_period_start=MARCH)
        past = make_provider(monthly_booking_count=41, usage_period_start=MARCH)
        gate = _gate(db, notification_service)
        gate.record_confirmed_booking(below.id, now=NOW)
        gate.record_confirmed_booking(past.id, now=NOW)
        db.commit()

        assert db.execute(select(Notification)).scalars().all() == []

    def test_no_alert_for_unbounded_tier(self, db, notification_service, make_provider):
        provider = make_provider(
            tier=SubscriptionTier.ENTERPRISE, monthly_booking_count=999, usage_period_start=MARCH
        )
        _gate(db, notification_service).record_confirmed_booking(provider.id, now=NOW)
        db.commit()
        assert db.execute(select(Notification)).scalars().all() == []

    def test_missing_subscription_is_ignored(self, db, notification_service, make_provider):
        provider = make_provider(status=None)
        assert (
            _gate(db, notification_service).record_confirmed_booking(provider.id, now=NOW)
            is None
        )


def test_month_start():
    assert month_start(datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc)) == date(2026, 12, 1)

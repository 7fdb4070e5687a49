# backend/activityhub/services/payment_settlement_service.py
"""
Payment settlement.

Applies a processor callback to the payment it references. Processors retry
deliveries, so every transition is idempotent and keyed on the payment's
current status:

- COMPLETE on a PAID payment is a duplicate and changes nothing
- FAILED/CANCELLED on a FAILED payment is a duplicate and changes nothing
- FAILED/CANCELLED on a PAID payment is ignored: a settled payment is never
  downgraded

Concurrent deliveries of one reference serialize on ``payment_lock`` (and the
row lock on PostgreSQL), and the status change itself is a conditional
UPDATE, so a duplicate never increments usage twice or sends a second
notification even when the lock is unavailable.
"""

import calendar
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.enums import (
    BookingStatus,
    CallbackStatus,
    NotificationType,
    PaymentStatus,
    PaymentType,
    SubscriptionStatus,
)
from ..core.exceptions import PaymentNotFound
from ..core.schedule_lock import payment_lock
from ..domain.payments import PaymentCallbackEvent
from ..models.payment import Payment
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.payment_repository import PaymentRepository
from ..repositories.subscription_repository import SubscriptionRepository
from .base import BaseService
from .notification_service import NotificationService
from .usage_gate import UsageGate

logger = logging.getLogger(__name__)

__all__ = ["PaymentCallbackEvent", "PaymentSettlementService", "SettlementOutcome"]


def add_one_month(moment: datetime) -> datetime:
    """Same day next month, clamped to that month's last day (Jan 31 -> Feb 28/29)."""
    year, month = (moment.year + 1, 1) if moment.month == 12 else (moment.year, moment.month + 1)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class SettlementOutcome:
    reference: str
    result: str  # "confirmed" | "subscription_activated" | "failed" | "duplicate" | "ignored"
    payment_status: str
    booking_status: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.result not in ("duplicate", "ignored")


class PaymentSettlementService(BaseService):
    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        usage_gate: Optional[UsageGate] = None,
        payment_repository: Optional[PaymentRepository] = None,
        subscription_repository: Optional[SubscriptionRepository] = None,
    ):
        super().__init__(db)
        self.notification_service = notification_service or NotificationService(db)
        self.usage_gate = usage_gate or UsageGate(
            db, notification_service=self.notification_service
        )
        self.payment_repository = (
            payment_repository or RepositoryFactory.create_payment_repository(db)
        )
        self.subscription_repository = (
            subscription_repository or RepositoryFactory.create_subscription_repository(db)
        )

    @BaseService.measure_operation("handle_payment_callback")
    def handle_payment_callback(
        self, event: PaymentCallbackEvent, now: Optional[datetime] = None
    ) -> SettlementOutcome:
        """
        Apply a normalized processor callback.

        Raises:
            PaymentNotFound: No payment carries ``event.reference``
            SettlementLockTimeout: Another delivery of the reference is still running
        """
        now = now or datetime.now(timezone.utc)
        try:
            with payment_lock(event.reference), self.transaction():
                payment = self.payment_repository.get_by_reference(event.reference, for_update=True)
                if payment is None:
                    raise PaymentNotFound(event.reference)

                if event.status == CallbackStatus.COMPLETE:
                    outcome = self._settle_paid(payment, event, now)
                else:
                    outcome = self._settle_failed(payment, event)
        except Exception:
            self.notification_service.discard_pending()
            raise

        self.notification_service.deliver_pending()
        prometheus_metrics.record_settlement(event.processor, outcome.result)
        self.log_operation(
            "payment_callback",
            reference=event.reference,
            processor=event.processor,
            callback_status=event.status.value,
            result=outcome.result,
        )
        return outcome

    def _record_processor(self, payment: Payment, event: PaymentCallbackEvent) -> None:
        payment.processor = event.processor
        if event.processor_payment_id:
            payment.processor_payment_id = event.processor_payment_id

    def _settle_paid(
        self, payment: Payment, event: PaymentCallbackEvent, now: datetime
    ) -> SettlementOutcome:
        booking = payment.booking
        if payment.status == PaymentStatus.PAID.value:
            return SettlementOutcome(
                event.reference,
                "duplicate",
                payment.status,
                booking.status if booking is not None else None,
            )

        if event.amount is not None and event.amount != payment.amount:
            logger.warning(
                "Settled amount differs for %s: expected %s, got %s",
                payment.reference,
                payment.amount,
                event.amount,
            )

        if not self.payment_repository.transition_status(
            payment.id,
            (PaymentStatus.PENDING.value, PaymentStatus.FAILED.value),
            PaymentStatus.PAID.value,
            paid_at=now,
        ):
            return SettlementOutcome(
                event.reference,
                "duplicate",
                PaymentStatus.PAID.value,
                booking.status if booking is not None else None,
            )
        self._record_processor(payment, event)

        if payment.type == PaymentType.SUBSCRIPTION.value:
            return self._activate_subscription(payment, event, now)

        if booking is None:
            self.db.flush()
            return SettlementOutcome(event.reference, "confirmed", payment.status)

        booking.payment_status = PaymentStatus.PAID.value
        if booking.status == BookingStatus.PENDING.value:
            booking.confirm(now=now)
            activity = booking.schedule.activity
            self.db.flush()
            self.usage_gate.record_confirmed_booking(activity.provider_id, now=now)
            self.notification_service.notify(
                booking.customer,
                NotificationType.BOOKING_CONFIRMED,
                title="Booking Confirmed",
                message=(
                    f"Your booking for {activity.title} on "
                    f"{booking.booking_date.isoformat()} is confirmed"
                ),
                related_id=booking.id,
            )
        else:
            # Paid after cancellation: record the payment, leave the status alone
            logger.info(
                "Payment %s settled for booking %s in status %s",
                payment.reference,
                booking.id,
                booking.status,
            )
        self.db.flush()
        return SettlementOutcome(event.reference, "confirmed", payment.status, booking.status)

    def _activate_subscription(
        self, payment: Payment, event: PaymentCallbackEvent, now: datetime
    ) -> SettlementOutcome:
        subscription = self.subscription_repository.get_by_provider(payment.user_id, for_update=True)
        if subscription is None:
            subscription = self.subscription_repository.create(provider_id=payment.user_id)
        subscription.status = SubscriptionStatus.ACTIVE.value
        subscription.current_period_start = now
        subscription.current_period_end = add_one_month(now)
        self.db.flush()

        self.notification_service.notify(
            payment.user,
            NotificationType.PAYMENT_RECEIVED,
            title="Subscription Payment Successful",
            message=(
                f"Your subscription payment of {payment.currency} {payment.amount} "
                "has been processed"
            ),
            related_id=payment.id,
        )
        return SettlementOutcome(event.reference, "subscription_activated", payment.status)

    def _settle_failed(self, payment: Payment, event: PaymentCallbackEvent) -> SettlementOutcome:
        booking = payment.booking
        booking_status = booking.status if booking is not None else None
        if payment.status == PaymentStatus.FAILED.value:
            return SettlementOutcome(event.reference, "duplicate", payment.status, booking_status)
        if payment.status == PaymentStatus.PAID.value:
            logger.warning(
                "Ignoring %s callback for already paid payment %s",
                event.status.value,
                payment.reference,
            )
            return SettlementOutcome(event.reference, "ignored", payment.status, booking_status)

        if not self.payment_repository.transition_status(
            payment.id, (PaymentStatus.PENDING.value,), PaymentStatus.FAILED.value
        ):
            self.db.refresh(payment)
            result = "ignored" if payment.status == PaymentStatus.PAID.value else "duplicate"
            return SettlementOutcome(event.reference, result, payment.status, booking_status)
        self._record_processor(payment, event)
        if booking is not None:
            booking.payment_status = PaymentStatus.FAILED.value
        self.db.flush()

        self.notification_service.notify(
            payment.user,
            NotificationType.PAYMENT_FAILED,
            title="Payment Failed",
            message=(
                f"Your payment of {payment.currency} {payment.amount} for "
                f"{payment.description or 'your order'} has failed"
            ),
            related_id=booking.id if booking is not None else payment.id,
        )
        return SettlementOutcome(event.reference, "failed", payment.status, booking_status)

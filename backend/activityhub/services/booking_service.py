# backend/activityhub/services/booking_service.py
"""
Booking transaction orchestrator.

``create_booking`` is the only path that consumes schedule capacity. Under the
schedule's capacity lock (plus the customer's pack lock when a pack is
spent), inside one transaction, it:

0. loads the schedule and gates the provider (subscription, monthly limit,
   payment setup)
1. validates the pack, if one is used; the pack price replaces the slot price
2. re-checks availability (schedule row locked FOR UPDATE on PostgreSQL)
3. inserts the PENDING booking and its PENDING payment row
4. returns a ``PaymentRequest`` for the processor redirect

Any rejection aborts the whole transaction, so a rejected request persists
nothing. The locks are released only after commit, which is what keeps
concurrent requests from overselling the schedule or the pack.
"""

from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import (
    MAX_PARTICIPANTS_PER_BOOKING,
    MAX_SPECIAL_REQUESTS_LENGTH,
    MIN_PARTICIPANTS,
)
from ..core.enums import BookingStatus, NotificationType, PaymentStatus, PaymentType
from ..core.exceptions import (
    BookingNotCancellable,
    BookingNotFound,
    DomainException,
    ScheduleNotFound,
    Unauthorized,
    ValidationException,
)
from ..core.schedule_lock import pack_lock, schedule_lock
from ..domain.payments import PaymentRequest
from ..models.booking import Booking
from ..models.payment import Payment
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.base_repository import BaseRepository
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.schedule_repository import ScheduleRepository
from ..repositories.user_repository import UserRepository
from .availability_validator import AvailabilityValidator
from .base import BaseService
from .notification_service import NotificationService
from .pack_tracker import PackTracker
from .usage_gate import UsageGate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingCreation:
    booking: Booking
    payment_request: PaymentRequest


class BookingService(BaseService):
    def __init__(
        self,
        db: Session,
        availability_validator: Optional[AvailabilityValidator] = None,
        pack_tracker: Optional[PackTracker] = None,
        usage_gate: Optional[UsageGate] = None,
        notification_service: Optional[NotificationService] = None,
        schedule_repository: Optional[ScheduleRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
        user_repository: Optional[UserRepository] = None,
        payment_repository: Optional[BaseRepository[Payment]] = None,
    ):
        super().__init__(db)
        self.notification_service = notification_service or NotificationService(db)
        self.schedule_repository = (
            schedule_repository or RepositoryFactory.create_schedule_repository(db)
        )
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)
        self.payment_repository = (
            payment_repository or RepositoryFactory.create_payment_repository(db)
        )
        self.availability_validator = availability_validator or AvailabilityValidator(
            db, schedule_repository=self.schedule_repository
        )
        self.pack_tracker = pack_tracker or PackTracker(
            db, booking_repository=self.booking_repository
        )
        self.usage_gate = usage_gate or UsageGate(
            db, notification_service=self.notification_service
        )

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        schedule_id: str,
        customer_id: str,
        participants: int,
        booking_date: date,
        pack_id: Optional[str] = None,
        special_requests: Optional[str] = None,
        contact_details: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> BookingCreation:
        """
        Create a PENDING booking and its payment request.

        Raises:
            ScheduleNotFound, SubscriptionInactive, BookingLimitReached,
            PaymentSetupIncomplete, PackNotFound, PackExhausted, PackExpired,
            ProviderInactive, InvalidDate, InsufficientCapacity: Business rejections
            CapacityCheckTimeout: The schedule lock was not acquired in time (retryable)
        """
        now = now or datetime.now(timezone.utc)
        self._validate_request(participants, special_requests)

        try:
            with schedule_lock(schedule_id), self._pack_guard(pack_id, customer_id, schedule_id):
                with self.transaction():
                    creation = self._create_locked(
                        schedule_id,
                        customer_id,
                        participants,
                        booking_date,
                        pack_id,
                        special_requests,
                        contact_details,
                        now,
                    )
        except DomainException as exc:
            prometheus_metrics.record_booking_outcome(exc.code)
            raise

        prometheus_metrics.record_booking_outcome("created")
        self.log_operation(
            "booking_created",
            booking_id=creation.booking.id,
            schedule_id=schedule_id,
            customer_id=customer_id,
            participants=participants,
            pack_id=pack_id,
            total_price=str(creation.booking.total_price),
        )
        return creation

    def _pack_guard(
        self, pack_id: Optional[str], customer_id: str, schedule_id: str
    ) -> AbstractContextManager:
        if not pack_id:
            return nullcontext()
        return pack_lock(pack_id, customer_id, schedule_id)

    def _validate_request(self, participants: int, special_requests: Optional[str]) -> None:
        if participants < MIN_PARTICIPANTS:
            raise ValidationException(
                f"At least {MIN_PARTICIPANTS} participant is required",
                details={"participants": participants},
            )
        if participants > MAX_PARTICIPANTS_PER_BOOKING:
            raise ValidationException(
                f"At most {MAX_PARTICIPANTS_PER_BOOKING} participants per booking",
                details={"participants": participants},
            )
        if special_requests and len(special_requests) > MAX_SPECIAL_REQUESTS_LENGTH:
            raise ValidationException(
                "Special requests too long",
                details={"max_length": MAX_SPECIAL_REQUESTS_LENGTH},
            )

    def _create_locked(
        self,
        schedule_id: str,
        customer_id: str,
        participants: int,
        booking_date: date,
        pack_id: Optional[str],
        special_requests: Optional[str],
        contact_details: Optional[Dict[str, Any]],
        now: datetime,
    ) -> BookingCreation:
        lock_timeout_ms = int(settings.capacity_lock_timeout_seconds * 1000)
        schedule = self.schedule_repository.lock_for_booking(schedule_id, lock_timeout_ms)
        if schedule is None:
            raise ScheduleNotFound(schedule_id)
        activity = schedule.activity

        self.usage_gate.check_provider(activity.provider_id, now=now)

        price: Optional[Decimal] = None
        if pack_id:
            pack = self.pack_tracker.validate_pack_booking(pack_id, customer_id, now=now)
            price = Decimal(pack.price)

        self.availability_validator.check_availability(
            schedule_id, participants, booking_date, schedule=schedule
        )

        customer = self.user_repository.get_by_id(customer_id, load_relationships=False)
        if customer is None:
            raise ValidationException("Unknown customer", details={"customer_id": customer_id})

        total_price = price if price is not None else schedule.effective_price
        booking = self.booking_repository.create(
            schedule_id=schedule.id,
            activity_id=activity.id,
            customer_id=customer_id,
            pack_id=pack_id,
            participants=participants,
            booking_date=booking_date,
            status=BookingStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            total_price=total_price,
            special_requests=special_requests,
            contact_details=contact_details,
            created_at=now,
        )
        item_name = f"Booking for {activity.title}"
        self.payment_repository.create(
            reference=booking.id,
            user_id=customer_id,
            booking_id=booking.id,
            type=PaymentType.BOOKING.value,
            amount=total_price,
            currency=settings.currency,
            description=item_name,
            status=PaymentStatus.PENDING.value,
        )

        base_url = settings.app_base_url.rstrip("/")
        payment_request = PaymentRequest(
            amount=Decimal(total_price),
            currency=settings.currency,
            reference=booking.id,
            item_name=item_name,
            customer_email=customer.email,
            return_url=f"{base_url}/booking/success",
            cancel_url=f"{base_url}/booking/cancel",
            notify_url=settings.payment_notify_url,
        )
        return BookingCreation(booking=booking, payment_request=payment_request)

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self, booking_id: str, acting_user_id: str, now: Optional[datetime] = None
    ) -> Booking:
        """
        Cancel a booking on behalf of its customer or the activity's provider.

        The cancelled booking stops holding capacity immediately.

        Raises:
            BookingNotFound: Unknown booking
            Unauthorized: Actor is neither the customer nor the provider
            BookingNotCancellable: Already CANCELLED or FAILED
        """
        now = now or datetime.now(timezone.utc)
        try:
            with self.transaction():
                booking = self.booking_repository.get_for_update(booking_id)
                if booking is None:
                    raise BookingNotFound(booking_id)

                activity = booking.schedule.activity
                if acting_user_id not in (booking.customer_id, activity.provider_id):
                    raise Unauthorized(
                        "Not authorized to cancel this booking", booking_id=booking_id
                    )
                if not booking.is_cancellable:
                    raise BookingNotCancellable(booking_id, booking.status)

                booking.cancel(acting_user_id, now=now)
                self.db.flush()

                self.notification_service.notify(
                    booking.customer,
                    NotificationType.BOOKING_CANCELLED,
                    title="Booking Cancelled",
                    message=f"Your booking for {activity.title} has been cancelled",
                    related_id=booking.id,
                )
                self.notification_service.notify(
                    activity.provider,
                    NotificationType.BOOKING_CANCELLED,
                    title="Booking Cancelled",
                    message=f"A booking for {activity.title} has been cancelled",
                    related_id=booking.id,
                )
        except Exception:
            self.notification_service.discard_pending()
            raise

        self.notification_service.deliver_pending()
        self.log_operation(
            "booking_cancelled", booking_id=booking_id, cancelled_by=acting_user_id
        )
        return booking

# backend/tests/conftest.py
"""
Shared fixtures.

Every test gets its own SQLite file so that threads (each with their own
session) see the same data, and nothing leaks between tests. Emails are
captured by a mocked EmailService.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from itertools import count
from typing import Callable, Iterator, Optional
from unittest.mock import Mock

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from activityhub.api.dependencies.database import get_db
from activityhub.api.dependencies.services import get_email_service
from activityhub.core.config import settings
from activityhub.core.enums import (
    ActivityStatus,
    BookingStatus,
    PaymentStatus,
    PaymentType,
    SubscriptionStatus,
    SubscriptionTier,
)
from activityhub.database import init_db
from activityhub.main import app
from activityhub.models import (
    Activity,
    Booking,
    Pack,
    Payment,
    Schedule,
    Subscription,
    User,
)
from activityhub.services.email import EmailService
from activityhub.services.notification_service import NotificationService

_seq = count(1)

# Fixed clock used by most tests: Wednesday 2026-03-04 08:00 UTC
NOW = datetime(2026, 3, 4, 8, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "schedule_lock_backend", "memory")
    monkeypatch.setattr(settings, "email_provider", "console")
    monkeypatch.setattr(settings, "business_timezone", "UTC")
    monkeypatch.setattr(settings, "capacity_lock_timeout_seconds", 5.0)


@pytest.fixture
def engine(tmp_path) -> Iterator[Engine]:
    test_engine = create_engine(
        f"sqlite:///{tmp_path / 'activityhub_test.db'}",
        connect_args={"check_same_thread": False},
    )
    init_db(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def email_service() -> Mock:
    mock = Mock(spec=EmailService)
    mock.send_email.return_value = {"id": "test-email-id", "status": "sent"}
    return mock


@pytest.fixture
def notification_service(db: Session, email_service: Mock) -> NotificationService:
    return NotificationService(db, email_service=email_service)


@pytest.fixture
def client(db: Session, email_service: Mock) -> Iterator[TestClient]:
    """Create a test client with the test database."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: email_service
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()
    test_client.close()


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    def _make(
        email: Optional[str] = None,
        full_name: str = "Test User",
        stripe_account_id: Optional[str] = None,
        lemonsqueezy_store_id: Optional[str] = None,
    ) -> User:
        user = User(
            email=email or f"user{next(_seq)}@example.com",
            full_name=full_name,
            stripe_account_id=stripe_account_id,
            lemonsqueezy_store_id=lemonsqueezy_store_id,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_provider(db: Session, make_user: Callable[..., User]) -> Callable[..., User]:
    def _make(
        tier: SubscriptionTier = SubscriptionTier.BASIC,
        status: Optional[SubscriptionStatus] = SubscriptionStatus.ACTIVE,
        stripe_account_id: Optional[str] = "acct_test_123",
        lemonsqueezy_store_id: Optional[str] = None,
        monthly_booking_count: int = 0,
        usage_period_start: Optional[date] = None,
    ) -> User:
        provider = make_user(
            full_name="Test Provider",
            stripe_account_id=stripe_account_id,
            lemonsqueezy_store_id=lemonsqueezy_store_id,
        )
        if status is not None:
            db.add(
                Subscription(
                    provider_id=provider.id,
                    tier=tier.value,
                    status=status.value,
                    monthly_booking_count=monthly_booking_count,
                    usage_period_start=usage_period_start,
                )
            )
            db.commit()
        return provider

    return _make


@pytest.fixture
def provider(make_provider: Callable[..., User]) -> User:
    return make_provider()


@pytest.fixture
def customer(make_user: Callable[..., User]) -> User:
    return make_user(full_name="Test Customer")


@pytest.fixture
def make_activity(db: Session) -> Callable[..., Activity]:
    def _make(
        provider: User,
        max_participants: int = 10,
        price: Decimal = Decimal("150.00"),
        duration_minutes: int = 60,
        title: str = "Sunrise Kayak Tour",
    ) -> Activity:
        activity = Activity(
            provider_id=provider.id,
            title=title,
            description="Paddle out at dawn",
            duration_minutes=duration_minutes,
            price=price,
            max_participants=max_participants,
            status=ActivityStatus.ACTIVE.value,
        )
        db.add(activity)
        db.commit()
        return activity

    return _make


@pytest.fixture
def activity(make_activity: Callable[..., Activity], provider: User) -> Activity:
    return make_activity(provider)


@pytest.fixture
def make_schedule(db: Session) -> Callable[..., Schedule]:
    def _make(
        activity: Activity,
        start_time: datetime = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc),
        max_participants: Optional[int] = None,
        price: Optional[Decimal] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Schedule:
        schedule = Schedule(
            activity_id=activity.id,
            start_time=start_time,
            duration_minutes=activity.duration_minutes,
            max_participants=max_participants,
            price=price,
            start_date=start_date,
            end_date=end_date,
        )
        db.add(schedule)
        db.commit()
        return schedule

    return _make


@pytest.fixture
def schedule(make_schedule: Callable[..., Schedule], activity: Activity) -> Schedule:
    return make_schedule(activity)


@pytest.fixture
def make_pack(db: Session) -> Callable[..., Pack]:
    def _make(
        activity: Activity,
        sessions: int = 5,
        validity_days: int = 30,
        price: Decimal = Decimal("500.00"),
    ) -> Pack:
        pack = Pack(
            activity_id=activity.id,
            title="Five Session Pack",
            sessions=sessions,
            validity_days=validity_days,
            price=price,
        )
        db.add(pack)
        db.commit()
        return pack

    return _make


@pytest.fixture
def make_booking(db: Session) -> Callable[..., Booking]:
    """Insert a booking (and its pending payment) directly, bypassing the orchestrator."""

    def _make(
        schedule: Schedule,
        customer: User,
        participants: int = 1,
        status: BookingStatus = BookingStatus.CONFIRMED,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        pack: Optional[Pack] = None,
        created_at: Optional[datetime] = None,
        booking_date: date = date(2026, 3, 10),
    ) -> Booking:
        booking = Booking(
            schedule_id=schedule.id,
            activity_id=schedule.activity_id,
            customer_id=customer.id,
            pack_id=pack.id if pack is not None else None,
            participants=participants,
            booking_date=booking_date,
            total_price=Decimal("150.00"),
            status=status.value,
            payment_status=payment_status.value,
            created_at=created_at or NOW,
        )
        db.add(booking)
        db.flush()
        db.add(
            Payment(
                reference=booking.id,
                user_id=customer.id,
                booking_id=booking.id,
                type=PaymentType.BOOKING.value,
                amount=booking.total_price,
                currency=settings.currency,
                description="Booking for Sunrise Kayak Tour",
                status=payment_status.value,
            )
        )
        db.commit()
        return booking

    return _make

# backend/tests/services/test_notification_service.py
"""
Tests for the notification dispatcher: rows are written in the caller's
transaction, emails only go out on ``deliver_pending``.
"""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from sqlalchemy import select

from activityhub.core.enums import NotificationType
from activityhub.core.exceptions import NotificationNotFound, ServiceException
from activityhub.models import Notification
from activityhub.services.notification_service import NotificationService
from activityhub.services.template_service import TemplateService


class TestNotificationService:
    def test_notify_queues_email_until_delivery(
        self, db, notification_service, customer, email_service
    ):
        notification_service.notify(
            customer,
            NotificationType.BOOKING_CONFIRMED,
            title="Booking Confirmed",
            message="See you on the water",
            related_id="01HXYZ",
        )
        db.commit()

        email_service.send_email.assert_not_called()
        assert notification_service.pending_count == 1

        assert notification_service.deliver_pending() == 1
        to_email, subject, html = email_service.send_email.call_args.args
        assert to_email == customer.email
        assert subject == "Booking Confirmed"
        assert "See you on the water" in html
        assert notification_service.pending_count == 0

        row = db.execute(select(Notification)).scalar_one()
        assert row.type == NotificationType.BOOKING_CONFIRMED.value
        assert row.related_id == "01HXYZ"
        assert row.read is False

    def test_discard_pending_drops_queued_emails(
        self, notification_service, customer, email_service
    ):
        notification_service.notify(customer, NotificationType.PAYMENT_FAILED, "Failed", "No")
        notification_service.discard_pending()
        assert notification_service.deliver_pending() == 0
        email_service.send_email.assert_not_called()

    def test_email_failures_are_logged_not_raised(self, db, customer, make_user):
        failing = Mock()
        failing.send_email.side_effect = [ServiceException("provider down"), {"id": "ok"}]
        service = NotificationService(db, email_service=failing)
        service.notify(customer, NotificationType.PAYMENT_FAILED, "Failed", "No")
        service.notify(make_user(), NotificationType.PAYMENT_FAILED, "Failed", "No")

        assert service.deliver_pending() == 1

    def test_list_for_user(self, db, notification_service, customer):
        notification_service.notify(customer, NotificationType.USAGE_ALERT, "A", "first")
        notification_service.notify(customer, NotificationType.USAGE_ALERT, "B", "second")
        db.commit()
        assert len(notification_service.list_for_user(customer.id)) == 2

    def test_list_for_user_newest_first_with_filters(self, db, notification_service, customer):
        for minute, read in ((1, True), (2, False), (3, False)):
            db.add(
                Notification(
                    user_id=customer.id,
                    type=NotificationType.USAGE_ALERT.value,
                    title=f"Alert {minute}",
                    message="usage",
                    read=read,
                    created_at=datetime(2026, 3, 4, 8, minute, tzinfo=timezone.utc),
                )
            )
        db.commit()

        titles = [n.title for n in notification_service.list_for_user(customer.id)]
        assert titles == ["Alert 3", "Alert 2", "Alert 1"]

        unread = notification_service.list_for_user(customer.id, unread_only=True)
        assert [n.title for n in unread] == ["Alert 3", "Alert 2"]

        page = notification_service.list_for_user(customer.id, limit=1, offset=1)
        assert [n.title for n in page] == ["Alert 2"]

    def test_mark_read(self, db, notification_service, customer):
        notification = notification_service.notify(
            customer, NotificationType.USAGE_ALERT, "Usage", "80% used"
        )
        db.commit()

        updated = notification_service.mark_read(notification.id, customer.id)

        assert updated.read is True
        assert notification_service.list_for_user(customer.id, unread_only=True) == []

    def test_mark_read_of_someone_elses_notification(
        self, db, notification_service, customer, make_user
    ):
        notification = notification_service.notify(
            customer, NotificationType.USAGE_ALERT, "Usage", "80% used"
        )
        db.commit()

        with pytest.raises(NotificationNotFound):
            notification_service.mark_read(notification.id, make_user().id)
        with pytest.raises(NotificationNotFound):
            notification_service.mark_read("missing", customer.id)


class TestTemplateService:
    def test_notification_template_renders_common_context(self):
        html = TemplateService().render_template(
            "email/notification.html",
            title="Booking Cancelled",
            message="Your booking was cancelled",
            recipient_name="Thandi",
            action_url="https://example.com/bookings/1",
        )
        assert "Hi Thandi" in html
        assert "https://example.com/bookings/1" in html
        assert "ActivityHub" in html

    def test_money_filter(self):
        template = TemplateService().env.from_string("{{ amount | money }}")
        assert template.render(amount=1234.5) == "ZAR 1,234.50"

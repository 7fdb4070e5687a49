# backend/tests/routes/test_notification_routes.py
"""
Tests for /api/v1/notifications.
"""

import pytest

from activityhub.core.enums import NotificationType

BASE = "/api/v1/notifications"


def _auth(user) -> dict:
    return {"X-User-Id": user.id}


@pytest.fixture
def usage_alert(db, notification_service, customer):
    notification = notification_service.notify(
        customer, NotificationType.USAGE_ALERT, "Usage Alert", "You have used 80% of your plan"
    )
    db.commit()
    return notification


class TestNotificationRoutes:
    def test_requires_caller(self, client):
        assert client.get(BASE).status_code == 401

    def test_lists_only_callers_notifications(self, client, usage_alert, customer, make_user):
        response = client.get(BASE, headers=_auth(customer))
        assert response.status_code == 200
        body = response.json()
        assert [n["id"] for n in body] == [usage_alert.id]
        assert body[0]["type"] == "USAGE_ALERT"
        assert body[0]["read"] is False

        assert client.get(BASE, headers=_auth(make_user())).json() == []

    def test_mark_read_then_filter_unread(self, client, usage_alert, customer):
        response = client.patch(f"{BASE}/{usage_alert.id}/read", headers=_auth(customer))
        assert response.status_code == 200
        assert response.json()["read"] is True

        unread = client.get(BASE, params={"unread_only": "true"}, headers=_auth(customer))
        assert unread.json() == []

    def test_mark_read_of_other_users_notification(self, client, usage_alert, make_user):
        response = client.patch(f"{BASE}/{usage_alert.id}/read", headers=_auth(make_user()))
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOTIFICATION_NOT_FOUND"

    def test_limit_is_bounded(self, client, customer):
        response = client.get(BASE, params={"limit": 0}, headers=_auth(customer))
        assert response.status_code == 422

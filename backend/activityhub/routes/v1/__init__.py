# backend/activityhub/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import activities, bookings, notifications, packs, webhooks

__all__ = ["activities", "bookings", "notifications", "packs", "webhooks"]

# backend/activityhub/routes/v1/notifications.py
"""
Notification routes - API v1

Endpoints:
    GET / - The caller's in-app notifications, newest first
    PATCH /{notification_id}/read - Mark one of the caller's notifications as read
"""

import asyncio
from typing import List

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_current_user_id, get_notification_service
from ...api.errors import handle_domain_exception
from ...core.exceptions import DomainException
from ...schemas.notification import NotificationResponse
from ...services.notification_service import NotificationService

router = APIRouter(tags=["notifications-v1"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service),
) -> List[NotificationResponse]:
    notifications = await asyncio.to_thread(
        notification_service.list_for_user,
        user_id,
        unread_only=unread_only,
        limit=limit,
        offset=offset,
    )
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service),
) -> NotificationResponse:
    try:
        notification = await asyncio.to_thread(
            notification_service.mark_read, notification_id, user_id
        )
    except DomainException as e:
        handle_domain_exception(e)
    return NotificationResponse.model_validate(notification)

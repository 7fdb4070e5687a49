# backend/activityhub/services/notification_service.py
"""
Notification dispatcher.

Every notification is an in-app ``Notification`` row written inside the
caller's transaction. A matching email is queued and only delivered once the
caller has committed (``deliver_pending``); a rolled-back transaction
``discard_pending``s its queue so nothing is emailed for work that never
happened. Email failures are logged, never raised.
"""

from dataclasses import dataclass
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import NotificationType
from ..core.exceptions import NotificationNotFound, ServiceException
from ..models.notification import Notification
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..repositories.notification_repository import NotificationRepository
from .base import BaseService
from .email import EmailService
from .template_service import TemplateService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _QueuedEmail:
    to_email: str
    subject: str
    html: str


class NotificationService(BaseService):
    def __init__(
        self,
        db: Session,
        email_service: Optional[EmailService] = None,
        repository: Optional[NotificationRepository] = None,
        template_service: Optional[TemplateService] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_notification_repository(db)
        self.email_service = email_service or EmailService()
        self.template_service = template_service or TemplateService()
        self._pending: List[_QueuedEmail] = []

    def notify(
        self,
        user: User,
        notification_type: NotificationType,
        title: str,
        message: str,
        related_id: Optional[str] = None,
        action_url: Optional[str] = None,
    ) -> Notification:
        """Persist an in-app notification and queue its email. Does not commit."""
        notification = self.repository.create(
            user_id=user.id,
            type=notification_type.value,
            title=title,
            message=message,
            related_id=related_id,
        )
        if user.email:
            html = self.template_service.render_template(
                "email/notification.html",
                subject=title,
                title=title,
                message=message,
                recipient_name=user.full_name,
                action_url=action_url,
            )
            self._pending.append(_QueuedEmail(to_email=user.email, subject=title, html=html))
        self.log_operation(
            "notification_created",
            user_id=user.id,
            notification_type=notification_type.value,
            related_id=related_id,
        )
        return notification

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def discard_pending(self) -> None:
        self._pending.clear()

    def deliver_pending(self) -> int:
        """Send queued emails; call only after the owning transaction committed."""
        queued, self._pending = self._pending, []
        delivered = 0
        for item in queued:
            try:
                self.email_service.send_email(item.to_email, item.subject, item.html)
                delivered += 1
            except ServiceException as exc:
                logger.error(
                    "Notification email failed for %s: %s",
                    item.to_email,
                    exc,
                    extra={"to_email": item.to_email, "subject": item.subject},
                )
        return delivered

    def list_for_user(
        self, user_id: str, unread_only: bool = False, limit: int = 50, offset: int = 0
    ) -> List[Notification]:
        return self.repository.list_for_user(
            user_id, unread_only=unread_only, limit=limit, offset=offset
        )

    def mark_read(self, notification_id: str, user_id: str) -> Notification:
        """
        Mark one of the user's notifications as read.

        Raises:
            NotificationNotFound: Unknown id, or it belongs to someone else
        """
        with self.transaction():
            notification = self.repository.get_by_id(notification_id, load_relationships=False)
            if notification is None or notification.user_id != user_id:
                raise NotificationNotFound(notification_id)
            notification.read = True
        return notification

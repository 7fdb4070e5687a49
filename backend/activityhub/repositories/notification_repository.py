# backend/activityhub/repositories/notification_repository.py
"""In-app notification persistence."""

from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.notification import Notification
from .base_repository import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    def __init__(self, db: Session):
        super().__init__(db, Notification)

    def list_for_user(
        self, user_id: str, unread_only: bool = False, limit: int = 50, offset: int = 0
    ) -> List[Notification]:
        """Newest first."""
        try:
            query = select(Notification).where(Notification.user_id == user_id)
            if unread_only:
                query = query.where(Notification.read.is_(False))
            return list(
                self.db.execute(
                    query.order_by(Notification.created_at.desc(), Notification.id.desc())
                    .offset(offset)
                    .limit(limit)
                ).scalars()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing notifications for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to list notifications: {str(e)}") from e

# backend/activityhub/repositories/subscription_repository.py
"""Provider subscription data access."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.subscription import Subscription
from .base_repository import BaseRepository


class SubscriptionRepository(BaseRepository[Subscription]):
    def __init__(self, db: Session):
        super().__init__(db, Subscription)

    def get_by_provider(self, provider_id: str, for_update: bool = False) -> Optional[Subscription]:
        stmt = select(Subscription).where(Subscription.provider_id == provider_id)
        if for_update and self.dialect_name == "postgresql":
            stmt = stmt.with_for_update()
        try:
            return self.db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading subscription for {provider_id}: {str(e)}")
            raise RepositoryException(f"Failed to load subscription: {str(e)}") from e

# backend/activityhub/repositories/user_repository.py
"""User data access."""

from sqlalchemy.orm import Query, Session, joinedload

from ..models.user import User
from .base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(joinedload(User.subscription))

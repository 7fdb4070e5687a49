# backend/activityhub/repositories/activity_repository.py
"""Activity, availability-override and pack data access."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.enums import BookingStatus
from ..core.exceptions import RepositoryException
from ..models.activity import Activity, ActivityAvailability
from ..models.booking import Booking
from ..models.pack import Pack
from ..models.payment import Payment
from ..models.schedule import Schedule
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ActivityRepository(BaseRepository[Activity]):
    def __init__(self, db: Session):
        super().__init__(db, Activity)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(Activity.provider).joinedload(User.subscription),
            joinedload(Activity.availability),
        )

    def count_active_bookings(self, activity_id: str) -> int:
        """Bookings in a non-cancelled state (PENDING or CONFIRMED)."""
        holding = [s.value for s in BookingStatus.capacity_holding()]
        try:
            return int(
                self.db.execute(
                    select(func.count(Booking.id)).where(
                        Booking.activity_id == activity_id,
                        Booking.status.in_(holding),
                    )
                ).scalar_one()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting bookings for activity {activity_id}: {str(e)}")
            raise RepositoryException(f"Failed to count activity bookings: {str(e)}") from e

    def delete_with_dependents(self, activity_id: str) -> None:
        """
        Delete an activity with its schedules, packs, overrides and inactive bookings.

        Callers must first make sure no PENDING/CONFIRMED bookings remain.
        """
        booking_ids = select(Booking.id).where(Booking.activity_id == activity_id)
        try:
            self.db.execute(delete(Payment).where(Payment.booking_id.in_(booking_ids)))
            self.db.execute(delete(Booking).where(Booking.activity_id == activity_id))
            self.db.execute(delete(Schedule).where(Schedule.activity_id == activity_id))
            self.db.execute(delete(Pack).where(Pack.activity_id == activity_id))
            self.db.execute(
                delete(ActivityAvailability).where(ActivityAvailability.activity_id == activity_id)
            )
            self.db.execute(delete(Activity).where(Activity.id == activity_id))
            self.db.expire_all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting activity {activity_id}: {str(e)}")
            raise RepositoryException(f"Failed to delete activity: {str(e)}") from e


class AvailabilityRepository(BaseRepository[ActivityAvailability]):
    def __init__(self, db: Session):
        super().__init__(db, ActivityAvailability)

    def get_for_activity(self, activity_id: str) -> Optional[ActivityAvailability]:
        return self.find_one_by(activity_id=activity_id)

    def upsert_for_activity(self, activity_id: str, values: Dict[str, Any]) -> ActivityAvailability:
        """Create or replace the overrides row for an activity."""
        existing = self.get_for_activity(activity_id)
        if existing is None:
            return self.create(activity_id=activity_id, **values)
        try:
            for key, value in values.items():
                setattr(existing, key, value)
            self.db.flush()
            return existing
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating availability for {activity_id}: {str(e)}")
            raise RepositoryException(f"Failed to update availability: {str(e)}") from e


class PackRepository(BaseRepository[Pack]):
    def __init__(self, db: Session):
        super().__init__(db, Pack)

    def list_for_activity(self, activity_id: str) -> List[Pack]:
        try:
            return list(
                self.db.execute(
                    select(Pack).where(Pack.activity_id == activity_id).order_by(Pack.created_at)
                ).scalars()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing packs for activity {activity_id}: {str(e)}")
            raise RepositoryException(f"Failed to list packs: {str(e)}") from e

    def lock_for_consumption(self, pack_id: str) -> Optional[Pack]:
        """Load the pack and, on PostgreSQL, hold its row lock until commit."""
        try:
            if self.dialect_name == "postgresql":
                self.db.execute(select(Pack.id).where(Pack.id == pack_id).with_for_update())
            return self.get_by_id(pack_id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking pack {pack_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock pack: {str(e)}") from e

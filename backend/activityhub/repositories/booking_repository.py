# backend/activityhub/repositories/booking_repository.py
"""
Booking Repository for the ActivityHub booking engine.

This repository handles:
- Booking lookups with schedule/activity/provider eager loaded
- Pack consumption queries (a customer's active bookings on a pack)
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.enums import BookingStatus
from ..core.exceptions import RepositoryException
from ..models.activity import Activity
from ..models.booking import Booking
from ..models.schedule import Schedule
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(Booking.customer),
            joinedload(Booking.schedule)
            .joinedload(Schedule.activity)
            .joinedload(Activity.provider)
            .joinedload(User.subscription),
        )

    def get_for_update(self, booking_id: str) -> Optional[Booking]:
        """Fetch a booking, row-locked on PostgreSQL."""
        try:
            if self.dialect_name == "postgresql":
                self.db.execute(
                    select(Booking.id).where(Booking.id == booking_id).with_for_update()
                )
            return self.get_by_id(booking_id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock booking: {str(e)}") from e

    def list_active_for_pack(self, pack_id: str, customer_id: str) -> List[Booking]:
        """The customer's PENDING/CONFIRMED bookings on a pack, oldest first."""
        holding = [s.value for s in BookingStatus.capacity_holding()]
        try:
            return list(
                self.db.execute(
                    select(Booking)
                    .where(
                        Booking.pack_id == pack_id,
                        Booking.customer_id == customer_id,
                        Booking.status.in_(holding),
                    )
                    .order_by(Booking.created_at.asc(), Booking.id.asc())
                ).scalars()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing pack bookings for {pack_id}: {str(e)}")
            raise RepositoryException(f"Failed to list pack bookings: {str(e)}") from e

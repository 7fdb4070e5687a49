# backend/activityhub/repositories/schedule_repository.py
"""
Schedule Repository for the ActivityHub booking engine.

Handles:
- Schedule lookups with the activity/provider graph eager loaded
- Capacity accounting (participants held by PENDING and CONFIRMED bookings)
- Row locking of a schedule for the duration of a booking transaction
- Bulk insertion that skips exact (activity_id, start_time) duplicates
"""

from datetime import datetime
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.enums import BookingStatus
from ..core.exceptions import CapacityCheckTimeout, RepositoryException
from ..core.ulid_helper import generate_ulid
from ..models.activity import Activity
from ..models.booking import Booking
from ..models.schedule import Schedule
from ..models.types import utcnow
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

_HOLDING_STATUSES = [s.value for s in BookingStatus.capacity_holding()]


def is_lock_not_available(exc: OperationalError) -> bool:
    """True for PostgreSQL ``lock_timeout`` expiry (SQLSTATE 55P03)."""
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode == "55P03":
        return True
    return "lock timeout" in str(exc).lower()


class ScheduleRepository(BaseRepository[Schedule]):
    def __init__(self, db: Session):
        super().__init__(db, Schedule)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(Schedule.activity)
            .joinedload(Activity.provider)
            .joinedload(User.subscription)
        )

    def lock_for_booking(self, schedule_id: str, lock_timeout_ms: int) -> Optional[Schedule]:
        """
        Load the schedule and, on PostgreSQL, hold its row lock until commit.

        Raises:
            CapacityCheckTimeout: The row lock was not granted within ``lock_timeout_ms``
        """
        try:
            if self.dialect_name == "postgresql":
                self.db.execute(text(f"SET LOCAL lock_timeout = '{int(lock_timeout_ms)}ms'"))
                locked = self.db.execute(
                    select(Schedule.id).where(Schedule.id == schedule_id).with_for_update()
                ).scalar_one_or_none()
                if locked is None:
                    return None
            return self.get_by_id(schedule_id)
        except OperationalError as exc:
            if is_lock_not_available(exc):
                raise CapacityCheckTimeout(schedule_id, lock_timeout_ms / 1000.0) from exc
            self.logger.error("Error locking schedule %s: %s", schedule_id, exc)
            raise RepositoryException(f"Failed to lock schedule: {exc}") from exc
        except SQLAlchemyError as exc:
            self.logger.error("Error locking schedule %s: %s", schedule_id, exc)
            raise RepositoryException(f"Failed to lock schedule: {exc}") from exc

    def sum_booked_participants(self, schedule_id: str) -> int:
        """Participants held by PENDING/CONFIRMED bookings on the schedule."""
        try:
            total = self.db.execute(
                select(func.coalesce(func.sum(Booking.participants), 0)).where(
                    Booking.schedule_id == schedule_id,
                    Booking.status.in_(_HOLDING_STATUSES),
                )
            ).scalar_one()
            return int(total)
        except SQLAlchemyError as e:
            self.logger.error(f"Error summing participants for schedule {schedule_id}: {str(e)}")
            raise RepositoryException(f"Failed to count booked participants: {str(e)}") from e

    def count_bookings(self, schedule_id: str) -> int:
        """Bookings of any status referencing the schedule."""
        try:
            return int(
                self.db.execute(
                    select(func.count(Booking.id)).where(Booking.schedule_id == schedule_id)
                ).scalar_one()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting bookings for schedule {schedule_id}: {str(e)}")
            raise RepositoryException(f"Failed to count bookings: {str(e)}") from e

    def list_for_activity(
        self,
        activity_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Tuple[Schedule, int]]:
        """
        Schedules of an activity (optionally within [start, end)) with booked counts.

        Returns (schedule, booked_participants) ordered by start time.
        """
        booked = (
            select(
                Booking.schedule_id.label("schedule_id"),
                func.sum(Booking.participants).label("booked"),
            )
            .where(Booking.status.in_(_HOLDING_STATUSES))
            .group_by(Booking.schedule_id)
            .subquery()
        )
        stmt = (
            select(Schedule, func.coalesce(booked.c.booked, 0))
            .outerjoin(booked, booked.c.schedule_id == Schedule.id)
            .where(Schedule.activity_id == activity_id)
            .order_by(Schedule.start_time.asc())
        )
        if start is not None:
            stmt = stmt.where(Schedule.start_time >= start)
        if end is not None:
            stmt = stmt.where(Schedule.start_time < end)
        try:
            return [(row[0], int(row[1])) for row in self.db.execute(stmt).all()]
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing schedules for activity {activity_id}: {str(e)}")
            raise RepositoryException(f"Failed to list schedules: {str(e)}") from e

    def bulk_create_skip_duplicates(self, rows: Sequence[Dict[str, Any]]) -> int:
        """
        Insert schedules, skipping any whose (activity_id, start_time) already exists.

        Returns the number of rows actually created.
        """
        if not rows:
            return 0

        unique: Dict[Tuple[str, datetime], Dict[str, Any]] = {}
        for row in rows:
            unique.setdefault((row["activity_id"], row["start_time"]), row)

        now = utcnow()
        payload = [
            {"id": generate_ulid(), "created_at": now, **row} for row in unique.values()
        ]

        try:
            dialect = self.dialect_name
            if dialect in ("postgresql", "sqlite"):
                insert_fn = pg_insert if dialect == "postgresql" else sqlite_insert
                stmt = (
                    insert_fn(Schedule)
                    .values(payload)
                    .on_conflict_do_nothing(index_elements=["activity_id", "start_time"])
                    .returning(Schedule.id)
                )
                created = self.db.execute(stmt).scalars().all()
                return len(created)

            created_count = 0
            for data in payload:
                exists = self.db.execute(
                    select(Schedule.id).where(
                        Schedule.activity_id == data["activity_id"],
                        Schedule.start_time == data["start_time"],
                    )
                ).first()
                if exists is None:
                    self.db.add(Schedule(**data))
                    created_count += 1
            self.db.flush()
            return created_count
        except SQLAlchemyError as e:
            self.logger.error(f"Error bulk creating schedules: {str(e)}")
            raise RepositoryException(f"Failed to bulk create schedules: {str(e)}") from e

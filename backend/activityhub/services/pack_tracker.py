# backend/activityhub/services/pack_tracker.py
"""
Pack consumption tracking.

A pack's usage is derived, never stored: it is the number of the customer's
PENDING/CONFIRMED bookings that reference the pack. The validity window
opens at the customer's first such booking (not at purchase) and lasts
``validity_days``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import PackExhausted, PackExpired, PackNotFound
from ..models.booking import Booking
from ..models.pack import Pack
from ..repositories.activity_repository import PackRepository
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackUsage:
    pack_id: str
    sessions: int
    used: int
    remaining: int
    valid_until: Optional[datetime]  # None until the first booking anchors the window
    expired: bool


def _valid_until(pack: Pack, bookings: List[Booking]) -> Optional[datetime]:
    if not bookings:
        return None
    return bookings[0].created_at + timedelta(days=int(pack.validity_days))


class PackTracker(BaseService):
    def __init__(
        self,
        db: Session,
        pack_repository: Optional[PackRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
    ):
        super().__init__(db)
        self.pack_repository = pack_repository or RepositoryFactory.create_pack_repository(db)
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )

    @BaseService.measure_operation("validate_pack_booking")
    def validate_pack_booking(
        self, pack_id: str, customer_id: str, now: Optional[datetime] = None
    ) -> Pack:
        """
        Check that the customer can spend one more session of the pack.

        The caller must hold ``pack_lock`` for the pack and customer until the
        booking that spends the session has committed.

        Raises:
            PackNotFound: Unknown pack
            PackExhausted: Every session already used
            PackExpired: Validity window (anchored on the first booking) has passed
        """
        now = now or datetime.now(timezone.utc)
        pack = self.pack_repository.lock_for_consumption(pack_id)
        if pack is None:
            raise PackNotFound(pack_id)

        bookings = self.booking_repository.list_active_for_pack(pack_id, customer_id)
        if len(bookings) >= pack.sessions:
            raise PackExhausted(pack_id, pack.sessions)

        valid_until = _valid_until(pack, bookings)
        if valid_until is not None and now > valid_until:
            raise PackExpired(pack_id, valid_until.isoformat())

        return pack

    def get_pack_usage(
        self, pack_id: str, customer_id: str, now: Optional[datetime] = None
    ) -> PackUsage:
        now = now or datetime.now(timezone.utc)
        pack = self.pack_repository.get_by_id(pack_id)
        if pack is None:
            raise PackNotFound(pack_id)

        bookings = self.booking_repository.list_active_for_pack(pack_id, customer_id)
        used = len(bookings)
        valid_until = _valid_until(pack, bookings)
        return PackUsage(
            pack_id=pack.id,
            sessions=pack.sessions,
            used=used,
            remaining=max(pack.sessions - used, 0),
            valid_until=valid_until,
            expired=valid_until is not None and now > valid_until,
        )

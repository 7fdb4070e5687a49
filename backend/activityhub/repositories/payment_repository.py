# backend/activityhub/repositories/payment_repository.py
"""Payment data access; settlement looks payments up by processor reference."""

from typing import Any, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from ..models.payment import Payment
from ..models.schedule import Schedule
from .base_repository import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self, db: Session):
        super().__init__(db, Payment)

    def get_by_reference(self, reference: str, for_update: bool = False) -> Optional[Payment]:
        """
        Look up a payment by reference.

        With ``for_update`` on PostgreSQL the row stays locked until commit so
        duplicate callback deliveries serialize.
        """
        try:
            if for_update and self.dialect_name == "postgresql":
                self.db.execute(
                    select(Payment.id).where(Payment.reference == reference).with_for_update()
                )
            return self.db.execute(
                select(Payment)
                .options(
                    joinedload(Payment.user),
                    joinedload(Payment.booking)
                    .joinedload(Booking.schedule)
                    .joinedload(Schedule.activity),
                )
                .where(Payment.reference == reference)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading payment {reference}: {str(e)}")
            raise RepositoryException(f"Failed to load payment: {str(e)}") from e

    def transition_status(
        self, payment_id: str, expected: Iterable[str], new_status: str, **values: Any
    ) -> bool:
        """
        Move the payment to ``new_status`` only if it is still in one of ``expected``.

        A single conditional UPDATE, so on any backend exactly one of several
        concurrent callers wins. Returns False when another caller already moved it.
        """
        try:
            result = self.db.execute(
                update(Payment)
                .where(Payment.id == payment_id, Payment.status.in_(list(expected)))
                .values(status=new_status, **values)
            )
            return result.rowcount == 1
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating payment {payment_id}: {str(e)}")
            raise RepositoryException(f"Failed to update payment: {str(e)}") from e

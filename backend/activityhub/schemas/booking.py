# backend/activityhub/schemas/booking.py
"""Booking request/response schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import Field

from ..core.constants import (
    MAX_PARTICIPANTS_PER_BOOKING,
    MAX_SPECIAL_REQUESTS_LENGTH,
    MIN_PARTICIPANTS,
)
from ..core.enums import BookingStatus, PaymentStatus
from ._strict_base import StrictModel, StrictRequestModel


class AvailabilityCheckRequest(StrictRequestModel):
    schedule_id: str
    participants: int = Field(..., ge=MIN_PARTICIPANTS, le=MAX_PARTICIPANTS_PER_BOOKING)
    booking_date: date


class AvailabilityCheckResponse(StrictModel):
    ok: bool
    available_spots: int


class BookingCreate(StrictRequestModel):
    schedule_id: str
    participants: int = Field(..., ge=MIN_PARTICIPANTS, le=MAX_PARTICIPANTS_PER_BOOKING)
    booking_date: date
    pack_id: Optional[str] = None
    special_requests: Optional[str] = Field(default=None, max_length=MAX_SPECIAL_REQUESTS_LENGTH)
    contact_details: Optional[Dict[str, Any]] = None


class BookingResponse(StrictModel):
    id: str
    schedule_id: str
    activity_id: str
    customer_id: str
    pack_id: Optional[str] = None
    participants: int
    booking_date: date
    status: BookingStatus
    payment_status: PaymentStatus
    total_price: Decimal
    special_requests: Optional[str] = None
    contact_details: Optional[Dict[str, Any]] = None
    created_at: datetime
    cancelled_at: Optional[datetime] = None
    cancelled_by_id: Optional[str] = None


class PaymentRedirect(StrictModel):
    """Processor redirect: POST ``data`` as a form to ``url``."""

    url: str
    data: Dict[str, str]


class PaymentRequestResponse(StrictModel):
    amount: Decimal
    currency: str
    reference: str
    item_name: str
    customer_email: str
    return_url: str
    cancel_url: str
    notify_url: str
    redirect: Optional[PaymentRedirect] = None


class BookingCreateResponse(StrictModel):
    booking: BookingResponse
    payment: PaymentRequestResponse

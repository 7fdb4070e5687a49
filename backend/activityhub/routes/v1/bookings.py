# backend/activityhub/routes/v1/bookings.py
"""
Customer booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService.

Endpoints:
    POST /check-availability - Check whether participants fit on a schedule
    POST / - Create a PENDING booking and its payment redirect
    POST /{booking_id}/cancel - Cancel a booking (customer or provider)
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, status

from ...api.dependencies import (
    get_availability_validator,
    get_booking_service,
    get_current_user_id,
    get_payfast_client,
)
from ...api.errors import handle_domain_exception
from ...core.exceptions import DomainException
from ...schemas.booking import (
    AvailabilityCheckRequest,
    AvailabilityCheckResponse,
    BookingCreate,
    BookingCreateResponse,
    BookingResponse,
    PaymentRedirect,
    PaymentRequestResponse,
)
from ...services.availability_validator import AvailabilityValidator
from ...services.booking_service import BookingService
from ...services.payfast_client import PayFastClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings-v1"])


@router.post("/check-availability", response_model=AvailabilityCheckResponse)
async def check_availability(
    payload: AvailabilityCheckRequest,
    validator: AvailabilityValidator = Depends(get_availability_validator),
) -> AvailabilityCheckResponse:
    """
    Check capacity without reserving it.

    Rejections come back with their code (e.g. ``INSUFFICIENT_CAPACITY`` with
    ``details.available_spots``).
    """
    try:
        result = await asyncio.to_thread(
            validator.check_availability,
            payload.schedule_id,
            payload.participants,
            payload.booking_date,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return AvailabilityCheckResponse(ok=result.ok, available_spots=result.available_spots)


@router.post("", response_model=BookingCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
    payfast: PayFastClient = Depends(get_payfast_client),
) -> BookingCreateResponse:
    try:
        creation = await asyncio.to_thread(
            booking_service.create_booking,
            payload.schedule_id,
            user_id,
            payload.participants,
            payload.booking_date,
            pack_id=payload.pack_id,
            special_requests=payload.special_requests,
            contact_details=payload.contact_details,
        )
    except DomainException as e:
        handle_domain_exception(e)

    request = creation.payment_request
    redirect = payfast.create_payment_request(request)
    return BookingCreateResponse(
        booking=BookingResponse.model_validate(creation.booking),
        payment=PaymentRequestResponse(
            amount=request.amount,
            currency=request.currency,
            reference=request.reference,
            item_name=request.item_name,
            customer_email=request.customer_email,
            return_url=request.return_url,
            cancel_url=request.cancel_url,
            notify_url=request.notify_url,
            redirect=PaymentRedirect(url=redirect.url, data=redirect.data),
        ),
    )


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.cancel_booking, booking_id, user_id)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)

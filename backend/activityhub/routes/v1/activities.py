# backend/activityhub/routes/v1/activities.py
"""
Activity routes - API v1

Provider-facing management of activities, schedules, availability overrides
and packs under /api/v1/activities. Business logic lives in ActivityService
and ScheduleGeneratorService.

Endpoints:
    POST / - Create an activity
    GET /{activity_id} - Activity details
    DELETE /{activity_id} - Delete an activity without active bookings
    POST /{activity_id}/schedules/recurring - Generate schedules from a pattern
    POST /{activity_id}/schedules - Create one schedule
    GET /{activity_id}/schedules - List schedules with remaining capacity
    DELETE /{activity_id}/schedules/{schedule_id} - Delete an unbooked schedule
    GET /{activity_id}/availability - Availability overrides
    PUT /{activity_id}/availability - Replace availability overrides
    POST /{activity_id}/packs - Create a session pack
    GET /{activity_id}/packs - List packs
"""

import asyncio
from datetime import date
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ...api.dependencies import (
    get_activity_service,
    get_current_user_id,
    get_schedule_generator,
)
from ...api.errors import handle_domain_exception
from ...core.exceptions import DomainException
from ...schemas.activity import (
    ActivityCreate,
    ActivityResponse,
    AvailabilityResponse,
    AvailabilityUpdate,
    PackCreate,
    PackResponse,
)
from ...schemas.schedule import (
    RecurringScheduleRequest,
    RecurringScheduleResponse,
    ScheduleCreate,
    ScheduleResponse,
)
from ...services.activity_service import ActivityService, ScheduleSlot
from ...services.schedule_generator import ScheduleGeneratorService, TimeSlot

logger = logging.getLogger(__name__)

router = APIRouter(tags=["activities-v1"])


def _schedule_response(slot: ScheduleSlot) -> ScheduleResponse:
    schedule = slot.schedule
    return ScheduleResponse(
        id=schedule.id,
        activity_id=schedule.activity_id,
        start_time=schedule.start_time,
        duration_minutes=schedule.duration_minutes,
        max_participants=schedule.max_participants,
        price=schedule.price,
        start_date=schedule.start_date,
        end_date=schedule.end_date,
        booked_participants=slot.booked_participants,
        available_spots=slot.available_spots,
    )


@router.post("", response_model=ActivityResponse, status_code=status.HTTP_201_CREATED)
async def create_activity(
    payload: ActivityCreate,
    user_id: str = Depends(get_current_user_id),
    activity_service: ActivityService = Depends(get_activity_service),
) -> ActivityResponse:
    try:
        activity = await asyncio.to_thread(
            activity_service.create_activity,
            provider_id=user_id,
            title=payload.title,
            description=payload.description,
            duration_minutes=payload.duration_minutes,
            price=payload.price,
            max_participants=payload.max_participants,
            status=payload.status,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ActivityResponse.model_validate(activity)


@router.get("/{activity_id}", response_model=ActivityResponse)
async def get_activity(
    activity_id: str,
    activity_service: ActivityService = Depends(get_activity_service),
) -> ActivityResponse:
    try:
        activity = await asyncio.to_thread(activity_service.get_activity, activity_id)
    except DomainException as e:
        handle_domain_exception(e)
    return ActivityResponse.model_validate(activity)


@router.delete(
    "/{activity_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response
)
async def delete_activity(
    activity_id: str,
    user_id: str = Depends(get_current_user_id),
    activity_service: ActivityService = Depends(get_activity_service),
) -> Response:
    try:
        await asyncio.to_thread(activity_service.delete_activity, activity_id, user_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Schedules


@router.post(
    "/{activity_id}/schedules/recurring",
    response_model=RecurringScheduleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_recurring_schedules(
    activity_id: str,
    payload: RecurringScheduleRequest,
    user_id: str = Depends(get_current_user_id),
    generator: ScheduleGeneratorService = Depends(get_schedule_generator),
) -> RecurringScheduleResponse:
    """Expand a weekly pattern into concrete schedules; existing starts are skipped."""
    try:
        slots = [
            TimeSlot.parse(slot.start_time, slot.duration, slot.max_participants)
            for slot in payload.time_slots
        ]
        count = await asyncio.to_thread(
            generator.generate_schedules,
            activity_id,
            payload.start_date,
            payload.end_date,
            payload.days,
            slots,
            acting_user_id=user_id,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return RecurringScheduleResponse(count=count, message=f"Created {count} schedules")


@router.post(
    "/{activity_id}/schedules",
    response_model=ScheduleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_schedule(
    activity_id: str,
    payload: ScheduleCreate,
    user_id: str = Depends(get_current_user_id),
    activity_service: ActivityService = Depends(get_activity_service),
) -> ScheduleResponse:
    try:
        schedule = await asyncio.to_thread(
            activity_service.create_schedule,
            activity_id,
            user_id,
            payload.start_time,
            duration_minutes=payload.duration_minutes,
            max_participants=payload.max_participants,
            price=payload.price,
            start_date=payload.start_date,
            end_date=payload.end_date,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return _schedule_response(ScheduleSlot(schedule, 0))


@router.get("/{activity_id}/schedules", response_model=List[ScheduleResponse])
async def list_schedules(
    activity_id: str,
    day: Optional[date] = Query(None, alias="date", description="Business-local day"),
    activity_service: ActivityService = Depends(get_activity_service),
) -> List[ScheduleResponse]:
    try:
        slots = await asyncio.to_thread(activity_service.list_schedules, activity_id, day)
    except DomainException as e:
        handle_domain_exception(e)
    return [_schedule_response(slot) for slot in slots]


@router.delete(
    "/{activity_id}/schedules/{schedule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_schedule(
    activity_id: str,
    schedule_id: str,
    user_id: str = Depends(get_current_user_id),
    activity_service: ActivityService = Depends(get_activity_service),
) -> Response:
    try:
        await asyncio.to_thread(
            activity_service.delete_schedule, activity_id, schedule_id, user_id
        )
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Availability overrides


@router.get("/{activity_id}/availability", response_model=AvailabilityResponse)
async def get_availability(
    activity_id: str,
    activity_service: ActivityService = Depends(get_activity_service),
) -> AvailabilityResponse:
    try:
        availability = await asyncio.to_thread(activity_service.get_availability, activity_id)
    except DomainException as e:
        handle_domain_exception(e)
    if availability is None:
        return AvailabilityResponse(activity_id=activity_id)
    return AvailabilityResponse.model_validate(availability)


@router.put("/{activity_id}/availability", response_model=AvailabilityResponse)
async def update_availability(
    activity_id: str,
    payload: AvailabilityUpdate,
    user_id: str = Depends(get_current_user_id),
    activity_service: ActivityService = Depends(get_activity_service),
) -> AvailabilityResponse:
    operating_hours = {
        str(day): [window.model_dump() for window in windows]
        for day, windows in payload.operating_hours.items()
    }
    try:
        availability = await asyncio.to_thread(
            activity_service.update_availability,
            activity_id,
            user_id,
            operating_hours,
            payload.blocked_dates,
            advance_booking_limit_days=payload.advance_booking_limit_days,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return AvailabilityResponse.model_validate(availability)


# Packs


@router.post(
    "/{activity_id}/packs", response_model=PackResponse, status_code=status.HTTP_201_CREATED
)
async def create_pack(
    activity_id: str,
    payload: PackCreate,
    user_id: str = Depends(get_current_user_id),
    activity_service: ActivityService = Depends(get_activity_service),
) -> PackResponse:
    try:
        pack = await asyncio.to_thread(
            activity_service.create_pack,
            activity_id,
            user_id,
            title=payload.title,
            description=payload.description,
            sessions=payload.sessions,
            validity_days=payload.validity_days,
            price=payload.price,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return PackResponse.model_validate(pack)


@router.get("/{activity_id}/packs", response_model=List[PackResponse])
async def list_packs(
    activity_id: str,
    activity_service: ActivityService = Depends(get_activity_service),
) -> List[PackResponse]:
    try:
        packs = await asyncio.to_thread(activity_service.list_packs, activity_id)
    except DomainException as e:
        handle_domain_exception(e)
    return [PackResponse.model_validate(pack) for pack in packs]

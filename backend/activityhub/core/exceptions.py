# backend/activityhub/core/exceptions.py
"""
Domain-specific exceptions for the ActivityHub booking engine.

Every booking rejection is a typed exception carrying a machine-readable
``code``, a human-readable ``message`` and structured ``details``. The API
layer converts them with ``to_http_exception()``; callers surface the code and
message verbatim.

Business rejections are never retryable. Infrastructure failures
(``RepositoryException``, ``ServiceException``, ``CapacityCheckTimeout``) are
retryable with backoff.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: Optional[str] = None
    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "retryable": self.retryable,
        }

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.http_status, detail=self.to_dict())


class ValidationException(DomainException):
    """Raised when business validation fails."""

    http_status = status.HTTP_400_BAD_REQUEST
    default_code = "VALIDATION_ERROR"


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    http_status = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    http_status = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    http_status = HTTP_422_UNPROCESSABLE


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    http_status = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    retryable = True

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["message"] = self.message or "An error occurred processing your request"
        return payload


# Booking engine rejections


class ScheduleNotFound(NotFoundException):
    def __init__(self, schedule_id: str):
        super().__init__(
            message="Schedule not found",
            code="SCHEDULE_NOT_FOUND",
            details={"schedule_id": schedule_id},
        )


class BookingNotFound(NotFoundException):
    def __init__(self, booking_id: str):
        super().__init__(
            message="Booking not found",
            code="BOOKING_NOT_FOUND",
            details={"booking_id": booking_id},
        )


class ActivityNotFound(NotFoundException):
    def __init__(self, activity_id: str):
        super().__init__(
            message="Activity not found",
            code="ACTIVITY_NOT_FOUND",
            details={"activity_id": activity_id},
        )


class PackNotFound(NotFoundException):
    def __init__(self, pack_id: str):
        super().__init__(
            message="Pack not found",
            code="PACK_NOT_FOUND",
            details={"pack_id": pack_id},
        )


class NotificationNotFound(NotFoundException):
    def __init__(self, notification_id: str):
        super().__init__(
            message="Notification not found",
            code="NOTIFICATION_NOT_FOUND",
            details={"notification_id": notification_id},
        )


class PaymentNotFound(NotFoundException):
    def __init__(self, reference: str):
        super().__init__(
            message="Payment not found",
            code="PAYMENT_NOT_FOUND",
            details={"reference": reference},
        )


class ProviderInactive(BusinessRuleException):
    """The schedule's provider cannot take bookings right now."""

    def __init__(self, provider_id: str, subscription_status: Optional[str]):
        super().__init__(
            message="This activity is currently unavailable",
            code="PROVIDER_INACTIVE",
            details={"provider_id": provider_id, "subscription_status": subscription_status},
        )


class InvalidDate(ValidationException):
    def __init__(self, requested: str, start: str, end: str):
        super().__init__(
            message="Selected date is outside schedule range",
            code="INVALID_DATE",
            details={"requested_date": requested, "start_date": start, "end_date": end},
        )


class InsufficientCapacity(ConflictException):
    def __init__(self, available_spots: int, requested: int):
        super().__init__(
            message=f"Only {available_spots} spots available",
            code="INSUFFICIENT_CAPACITY",
            details={"available_spots": available_spots, "requested_participants": requested},
        )

    @property
    def available_spots(self) -> int:
        return int(self.details["available_spots"])


class PackExhausted(BusinessRuleException):
    def __init__(self, pack_id: str, sessions: int):
        super().__init__(
            message="All sessions in this pack have been used",
            code="PACK_EXHAUSTED",
            details={"pack_id": pack_id, "sessions": sessions},
        )


class PackExpired(BusinessRuleException):
    def __init__(self, pack_id: str, valid_until: str):
        super().__init__(
            message="Pack has expired",
            code="PACK_EXPIRED",
            details={"pack_id": pack_id, "valid_until": valid_until},
        )


class SubscriptionInactive(BusinessRuleException):
    def __init__(self, provider_id: str, subscription_status: Optional[str]):
        super().__init__(
            message="Provider subscription inactive",
            code="SUBSCRIPTION_INACTIVE",
            details={"provider_id": provider_id, "subscription_status": subscription_status},
        )


class BookingLimitReached(BusinessRuleException):
    def __init__(self, provider_id: str, tier: str, limit: int, current: int):
        super().__init__(
            message="Monthly booking limit reached",
            code="BOOKING_LIMIT_REACHED",
            details={
                "provider_id": provider_id,
                "tier": tier,
                "limit": limit,
                "current": current,
            },
        )


class PaymentSetupIncomplete(BusinessRuleException):
    def __init__(self, provider_id: str):
        super().__init__(
            message="Provider payment setup incomplete",
            code="PAYMENT_SETUP_INCOMPLETE",
            details={"provider_id": provider_id},
        )


class Unauthorized(ForbiddenException):
    def __init__(self, message: str = "Not authorized to perform this action", **details: Any):
        super().__init__(message=message, code="UNAUTHORIZED", details=details)


class BookingNotCancellable(BusinessRuleException):
    def __init__(self, booking_id: str, current_status: str):
        super().__init__(
            message=f"Booking cannot be cancelled - current status: {current_status}",
            code="BOOKING_NOT_CANCELLABLE",
            details={"booking_id": booking_id, "status": current_status},
        )


class ScheduleHasBookings(ConflictException):
    def __init__(self, schedule_id: str, booking_count: int):
        super().__init__(
            message="Cannot delete schedule with existing bookings",
            code="SCHEDULE_HAS_BOOKINGS",
            details={"schedule_id": schedule_id, "booking_count": booking_count},
        )


class ActivityHasBookings(ConflictException):
    def __init__(self, activity_id: str, booking_count: int):
        super().__init__(
            message="Cannot delete activity with active bookings",
            code="ACTIVITY_HAS_BOOKINGS",
            details={"activity_id": activity_id, "booking_count": booking_count},
        )


class InvalidSignature(ValidationException):
    def __init__(self, source: str):
        super().__init__(
            message="Invalid signature",
            code="INVALID_SIGNATURE",
            details={"source": source},
        )


class CapacityCheckTimeout(DomainException):
    """A booking lock could not be acquired in time. Safe to retry."""

    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True

    def __init__(self, schedule_id: str, waited_seconds: float, resource: Optional[str] = None):
        details: Dict[str, Any] = {
            "schedule_id": schedule_id,
            "waited_seconds": round(waited_seconds, 3),
        }
        if resource is not None:
            details["resource"] = resource
        super().__init__(
            message="Could not verify capacity in time, please retry",
            code="CAPACITY_CHECK_TIMEOUT",
            details=details,
        )

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.http_status,
            detail=self.to_dict(),
            headers={"Retry-After": "1"},
        )


class SettlementLockTimeout(DomainException):
    """Another delivery of the same payment callback is still being applied. Safe to retry."""

    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True

    def __init__(self, reference: str, waited_seconds: float):
        super().__init__(
            message="Payment settlement in progress, please retry",
            code="SETTLEMENT_IN_PROGRESS",
            details={"reference": reference, "waited_seconds": round(waited_seconds, 3)},
        )

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.http_status,
            detail=self.to_dict(),
            headers={"Retry-After": "1"},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """

    retryable = True


class ScheduleAlreadyExists(ConflictException):
    def __init__(self, activity_id: str, start_time: str):
        super().__init__(
            message="A schedule already starts at this time",
            code="SCHEDULE_EXISTS",
            details={"activity_id": activity_id, "start_time": start_time},
        )

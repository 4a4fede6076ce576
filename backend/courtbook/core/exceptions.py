# backend/courtbook/core/exceptions.py
"""
Domain-specific exceptions for the court booking platform.

These exceptions carry an HTTP-style status code and a user-facing message
so they can be raised deep inside the booking engine and converted exactly
once at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again."


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found for the tenant."""

    status_code = status.HTTP_404_NOT_FOUND


class InvalidReferenceException(ValidationException):
    """Raised when a court or client reference is missing or belongs elsewhere."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_REFERENCE", details=details)


class SlotConflictException(ValidationException):
    """Raised when a requested interval overlaps a booking or a foreign buffer zone."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            code="SLOT_CONFLICT",
            details=details,
        )


class ImmutableBookingException(ValidationException):
    """Raised when a frozen booking (attended or paid in-app) would be modified."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="IMMUTABLE_BOOKING", details=details)


class AlreadyCancelledException(ValidationException):
    """Raised when cancelling a booking that is already cancelled."""

    def __init__(self, message: str = "This booking has already been cancelled"):
        super().__init__(message=message, code="ALREADY_CANCELLED")


class PastBookingException(ValidationException):
    """Raised when cancelling a booking whose date has already passed."""

    def __init__(self, message: str = "Past bookings cannot be cancelled"):
        super().__init__(message=message, code="PAST_BOOKING")


class ServiceException(DomainException):
    """Raised when a service operation fails unexpectedly."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or GENERIC_ERROR_MESSAGE,
                "code": self.code,
                "details": {},
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Used when data access operations fail, such as connection issues,
    query failures, or constraint violations.
    """


class BookingBusyException(DomainException):
    """Raised when the court/day lock could not be acquired in time."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(
        self,
        message: str = "This court is being booked by someone else, please try again",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="BOOKING_BUSY", details=details)

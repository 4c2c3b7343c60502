# backend/drivebook/core/exceptions.py
"""
Domain-specific exceptions for the booking and settlement pipeline.

Every exception carries an error ``kind`` so callers can tell a
"try again" situation from a "contact support" one:

- availability: the payment gateway host is unreachable or still starting
- validation: the input (cart, identifiers) must be fixed by the user
- conflict: the slot is no longer available
- gateway: the payment hand-off exhausted its retries
- consistency: payment was captured but the bookings could not be verified

Best-effort failures (revert/cleanup) are never raised; they are logged.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class ErrorKind:
    AVAILABILITY = "availability"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    GATEWAY = "gateway"
    CONSISTENCY = "consistency"
    BEST_EFFORT = "best-effort"


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    kind: str = ErrorKind.CONSISTENCY
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

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "kind": self.kind,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class ValidationException(DomainException):
    """Raised when business validation fails."""

    kind = ErrorKind.VALIDATION
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    kind = ErrorKind.VALIDATION
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenException(DomainException):
    """Raised when a user acts on a resource they do not own."""

    kind = ErrorKind.VALIDATION
    status_code = status.HTTP_403_FORBIDDEN


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    kind = ErrorKind.CONFLICT
    status_code = status.HTTP_409_CONFLICT


class SlotConflictException(ConflictException):
    """Raised when a slot transition is attempted from a disallowed state."""

    def __init__(
        self,
        slot_id: str,
        *,
        current_status: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(
            message=message or "This slot is no longer available",
            code="SLOT_CONFLICT",
            details={"slot_id": slot_id, "current_status": current_status},
        )
        self.slot_id = slot_id
        self.current_status = current_status


class AvailabilityException(DomainException):
    """Raised when the payment gateway host cannot be reached."""

    kind = ErrorKind.AVAILABILITY
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class GatewayWakeException(AvailabilityException):
    """The gateway host could not be started."""

    def __init__(self, error: Optional[str] = None) -> None:
        super().__init__(
            message="The payment service could not be started",
            code="GATEWAY_DOWN",
            details={"error": error or "Unknown error"},
        )


class GatewayNotReadyException(AvailabilityException):
    """The gateway host is running but never reported healthy."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            message="The payment service is starting, please try again shortly",
            code="GATEWAY_STARTING",
            details={"attempts": attempts},
        )


class GatewayException(DomainException):
    """Raised when the payment hand-off exhausts its retries."""

    kind = ErrorKind.GATEWAY
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, last_error: str, *, attempts: int) -> None:
        super().__init__(
            message=f"Could not obtain a payment redirect after {attempts} attempts. Last error: {last_error}",
            code="GATEWAY_HANDOFF_FAILED",
            details={"last_error": last_error, "attempts": attempts},
        )
        self.last_error = last_error


class ConsistencyException(DomainException):
    """Raised when a captured payment cannot be matched to finalized bookings."""

    kind = ErrorKind.CONSISTENCY
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """


class ServiceException(DomainException):
    """Raised when a service-level database operation fails."""

    kind = ErrorKind.CONSISTENCY
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

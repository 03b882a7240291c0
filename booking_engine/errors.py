"""
Error taxonomy for the booking and availability engine.

Every error carries a stable ``code`` and the HTTP status a controller
should map it to. None of these are retried by the engine.
"""

from typing import Optional


class BookingEngineError(Exception):
    """Base class for all engine errors."""

    code = "INTERNAL_ERROR"
    http_status = 500
    default_message = "Unexpected booking engine error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


# --- Not found ---

class NotFoundError(BookingEngineError):
    code = "NOT_FOUND"
    http_status = 404
    default_message = "Resource not found"


class BookingNotFoundError(NotFoundError):
    code = "BOOKING_NOT_FOUND"
    default_message = "Booking not found"


class ProfessionalNotFoundError(NotFoundError):
    code = "PROFESSIONAL_NOT_FOUND"
    default_message = "Professional not found"


# --- Validation ---

class ValidationError(BookingEngineError, ValueError):
    """Malformed input. Also a ValueError so pydantic validators can raise it."""

    code = "VALIDATION_ERROR"
    http_status = 400
    default_message = "Invalid input"


class InvalidTimeFormatError(ValidationError):
    code = "INVALID_TIME_FORMAT"
    default_message = "Time must be in HH:MM 24-hour format"


class InvalidDurationError(ValidationError):
    code = "INVALID_DURATION"
    default_message = "Duration must be a positive number of minutes"


# --- Conflict ---

class ConflictError(BookingEngineError):
    code = "CONFLICT"
    http_status = 409
    default_message = "Conflicting resource state"


class SlotUnavailableError(ConflictError):
    code = "BOOKING_SLOT_UNAVAILABLE"
    default_message = "The selected time slot is not available"


# --- State machine ---

class InvalidTransitionError(BookingEngineError):
    """Raised when an action is not valid from the booking's current status."""

    code = "INVALID_TRANSITION"
    http_status = 409

    def __init__(self, current: str, attempted: str, message: Optional[str] = None) -> None:
        self.current = current
        self.attempted = attempted
        super().__init__(
            message or f"Cannot {attempted} a booking that is '{current}'"
        )


class BookingCannotCancelError(InvalidTransitionError):
    code = "BOOKING_CANNOT_CANCEL"


class BookingCannotRescheduleError(InvalidTransitionError):
    code = "BOOKING_CANNOT_RESCHEDULE"


# --- Policy ---

class PolicyError(BookingEngineError):
    code = "POLICY_VIOLATION"
    http_status = 422
    default_message = "Request violates booking policy"


class ProfessionalNotApprovedError(PolicyError):
    code = "PROFESSIONAL_NOT_APPROVED"
    default_message = "Professional is not approved for bookings"


class TooFarInAdvanceError(PolicyError):
    code = "BOOKING_TOO_FAR_IN_ADVANCE"
    default_message = "Date is too far in advance"


class InsufficientNoticeError(PolicyError):
    code = "BOOKING_INSUFFICIENT_NOTICE"
    default_message = "Insufficient notice time"

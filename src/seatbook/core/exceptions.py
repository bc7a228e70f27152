"""Standardized exception hierarchy for the booking service."""

from typing import Any


class SeatbookError(Exception):
    """Base exception for all booking service errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransientError(SeatbookError):
    """Errors that may succeed on retry."""

    pass


class ConcurrencyConflictError(TransientError):
    """A concurrent writer changed the row between read and write, or the lock wait timed out."""

    pass


class PersistenceError(TransientError):
    """Database write failed for a reason unrelated to the request."""

    pass


class PermanentError(SeatbookError):
    """Errors that will not succeed on retry."""

    pass


class ValidationError(PermanentError):
    """Invalid input or data format."""

    pass


class InvalidSeatCountError(ValidationError):
    """Requested seat count is not a positive integer within limits."""

    pass


class NotFoundError(PermanentError):
    """Requested entity does not exist."""

    pass


class StateError(PermanentError):
    """Invalid state transition."""

    pass


class RideNotActiveError(StateError):
    """Ride is completed, cancelled or already departed."""

    pass


class NotModifiableError(StateError):
    """Booking can no longer be edited or cancelled."""

    pass


class DuplicateBookingError(StateError):
    """Passenger already holds a confirmed booking on the ride."""

    pass


class DuplicateReviewError(StateError):
    """A review already exists for this booking and direction."""

    pass


class InsufficientSeatsError(PermanentError):
    """Ride does not have enough available seats for the request."""

    def __init__(self, requested: int, available: int, ride_id: str | None = None):
        super().__init__(
            f"Requested {requested} seat(s) but only {available} available",
            details={"requested": requested, "available": available, "ride_id": ride_id},
        )
        self.requested = requested
        self.available = available


class AuthenticationError(PermanentError):
    """Credentials or token are missing or invalid."""

    pass


class AuthorizationError(PermanentError):
    """Principal is banned, has the wrong role, or does not own the resource."""

    pass


class ConfigurationError(PermanentError):
    """Missing or invalid configuration."""

    pass

"""Domain exceptions for trip and booking operations."""


class EcoRideError(Exception):
    """Base class. Carries the HTTP status the API layer should answer with."""

    status_code = 400
    error_code = "bad_request"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailedError(EcoRideError):
    """Raised when input is malformed or violates a domain rule."""

    error_code = "validation_error"


class AuthorizationError(EcoRideError):
    """Raised when the caller lacks the required capability or ownership."""

    status_code = 403
    error_code = "forbidden"


class NotFoundError(EcoRideError):
    """Raised when a trip, booking, user or notification cannot be found."""

    status_code = 404
    error_code = "not_found"


class CapacityError(EcoRideError):
    """Raised when a trip does not have enough seats for a request."""

    status_code = 409
    error_code = "not_enough_seats"


class SeatsUnavailableError(CapacityError):
    """Raised when the atomic seat reservation fails at accept time."""

    error_code = "seats_no_longer_available"


class InvalidTransitionError(EcoRideError):
    """Raised when a state machine does not allow the requested move."""

    status_code = 409
    error_code = "invalid_transition"


class RewardNotAppliedError(EcoRideError):
    """Raised inside a post-commit task when reward accounting had no effect."""

    status_code = 500
    error_code = "reward_not_applied"

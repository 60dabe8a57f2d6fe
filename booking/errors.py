"""
Domain exceptions raised by booking services.

Each exception carries the error code and HTTP status the API layer maps it
to (see api/main.py exception handlers):

- AuthorizationError      -> 403 forbidden
- NotFoundError           -> 404 not_found
- BookingValidationError  -> 400 validation_error
- ExternalServiceError    -> 502 connection_error
"""


class BookingError(Exception):
    """Base class for domain errors."""

    error_code = "server_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(BookingError):
    """Entity does not exist or is not visible to the acting user."""

    error_code = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: int | str | None = None) -> None:
        message = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id


class AuthorizationError(BookingError):
    """Acting user is not allowed to perform the operation."""

    error_code = "forbidden"
    status_code = 403


class BookingValidationError(BookingError):
    """Malformed input or a rule violation."""

    error_code = "validation_error"
    status_code = 400


class InvalidTransitionError(BookingValidationError):
    """Requested appointment status change is not allowed from the current state."""

    def __init__(self, current: str, requested: str, reason: str | None = None) -> None:
        message = f"Cannot change appointment status from {current} to {requested}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.current = current
        self.requested = requested


class ExternalServiceError(BookingError):
    """A call to an external dependency failed."""

    error_code = "connection_error"
    status_code = 502


class PaymentProviderError(ExternalServiceError):
    """Stripe rejected or failed a request."""

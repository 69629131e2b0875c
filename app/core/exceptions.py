"""Domain errors.

Every failure a booking operation can report is one of these. Services raise
them; the API layer turns them into ``{"success": false, "error": ...}``
responses, so callers only ever see the message, never a traceback.
"""


class BookingPlatformError(Exception):
    """Base class for all reportable failures."""

    code = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookingPlatformError):
    """Malformed input: bad time range, bad percentage, cap exceeded."""

    code = "validation_error"
    status_code = 400


class AuthError(BookingPlatformError):
    """No authenticated caller."""

    code = "auth_error"
    status_code = 401


class AuthorizationError(BookingPlatformError):
    """Caller has the wrong role or does not own the resource."""

    code = "authorization_error"
    status_code = 403


class NotFoundError(BookingPlatformError):
    code = "not_found"
    status_code = 404


class ConflictError(BookingPlatformError):
    """Slot unavailable or the user already holds an overlapping booking."""

    code = "conflict"
    status_code = 409


class InvalidStateError(ConflictError):
    """The booking's current status does not allow the requested transition."""

    code = "invalid_state"


class PolicyViolationError(BookingPlatformError):
    """Cancellation or reschedule requested too close to the start time."""

    code = "policy_violation"
    status_code = 422


class InsufficientBalanceError(BookingPlatformError):
    code = "insufficient_balance"
    status_code = 422


class PaymentFailure(BookingPlatformError):
    """The payment gateway declined or could not be reached."""

    code = "payment_failed"
    status_code = 402

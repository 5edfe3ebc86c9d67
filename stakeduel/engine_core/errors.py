"""
Session errors.

Every error aborts the current call with no partial state change.
The error_code is stable and is what the dispatcher and API report.
"""


class SessionError(Exception):
    """Base class for all errors raised by the session state machine."""
    error_code = "INTERNAL_ERROR"


class InvalidState(SessionError):
    """Wrong lifecycle phase for the requested operation."""
    error_code = "INVALID_STATE"


class Unauthorized(SessionError):
    """Caller is not a registered, not-yet-moved participant."""
    error_code = "UNAUTHORIZED"


class InsufficientPayment(SessionError):
    error_code = "INSUFFICIENT_PAYMENT"


class InvalidMove(SessionError):
    error_code = "INVALID_MOVE"


class Reentrant(SessionError):
    """The reentrancy guard is already held."""
    error_code = "REENTRANT"


class TooEarly(SessionError):
    """Forced termination attempted before the session deadline."""
    error_code = "TOO_EARLY"


ERROR_TYPES = {
    cls.error_code: cls
    for cls in (InvalidState, Unauthorized, InsufficientPayment, InvalidMove, Reentrant, TooEarly)
}

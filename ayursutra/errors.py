"""
Domain errors for the booking service.

Services raise these; the app factory maps each one to a JSON response with
its HTTP status, a machine-readable ``error`` code and a human ``detail``.
"""

from typing import Any, Optional


class BookingError(Exception):
    """Base class for errors the API reports to clients"""

    status_code = 400
    code = "booking_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "error": self.code}


class ValidationError(BookingError):
    status_code = 400
    code = "validation_error"


class NotFoundError(BookingError):
    status_code = 404
    code = "not_found"


class ConflictError(BookingError):
    """Requested time range overlaps existing appointments"""

    status_code = 409
    code = "conflict"

    def __init__(self, message: str, conflicts: Optional[list[dict]] = None):
        super().__init__(message)
        self.conflicts = conflicts or []

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["conflicts"] = self.conflicts
        return body


class ForbiddenError(BookingError):
    status_code = 403
    code = "forbidden"


class TerminalStateError(BookingError):
    """Appointment is completed or cancelled and can no longer change"""

    status_code = 409
    code = "terminal_state"


class NotCancellableError(BookingError):
    status_code = 400
    code = "not_cancellable"


class AuthenticationError(BookingError):
    status_code = 401
    code = "not_authenticated"


class ServiceUnavailableError(BookingError):
    status_code = 503
    code = "service_unavailable"

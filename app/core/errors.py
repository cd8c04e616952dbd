"""Core exception classes for the application."""


class ShiftBoardError(Exception):
    """Base class for errors surfaced to API callers.

    Each subclass carries the HTTP status it maps to and a short,
    machine-stable ``code`` that clients can branch on.
    """

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, code: str | None = None, **extra):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.extra = extra


class ValidationError(ShiftBoardError):
    """Raised when validation fails."""

    status_code = 400
    code = "validation_error"


class NotFoundError(ShiftBoardError):
    """Raised when a resource is not found."""

    status_code = 404
    code = "not_found"


class ForbiddenError(ShiftBoardError):
    """Raised when an agent acts on a task it does not own."""

    status_code = 403
    code = "not_owner"


class ConflictError(ShiftBoardError):
    """Raised when a concurrent actor already holds the resource."""

    status_code = 409
    code = "already_claimed"


class InvalidStateError(ShiftBoardError):
    """Raised when the task status does not allow the requested transition."""

    status_code = 400
    code = "invalid_state"

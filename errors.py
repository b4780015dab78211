# errors.py
"""
Domain errors raised by the service layer.

Every error carries a stable `code` and an HTTP status so that main.py can
render them uniformly as {"detail": ..., "code": ...}. Callers branch on the
code, not on the message text.
"""


class KanduError(Exception):
    """Base class for every error the services raise on purpose."""

    status_code = 400
    code = "error"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(KanduError):
    """Required field missing or malformed. Raised before any write."""

    status_code = 422
    code = "validation_error"


class AuthenticationError(KanduError):
    status_code = 401
    code = "not_authenticated"


class AuthorizationError(KanduError):
    """Caller lacks the role or ownership the operation needs."""

    status_code = 403
    code = "forbidden"


class NotFoundError(KanduError):
    status_code = 404
    code = "not_found"


class ConflictError(KanduError):
    """A unique key already exists in the store."""

    status_code = 409
    code = "conflict"


class DuplicateApplicationError(ConflictError):
    code = "duplicate_application"


class InvalidTransitionError(KanduError):
    """The job or application is not in a state that allows this action."""

    status_code = 409
    code = "invalid_transition"

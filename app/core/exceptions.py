"""
Domain exceptions raised by the service layer.

Services never build HTTP responses themselves; the handler registered in
app.main turns these into JSON bodies with the matching status code.
"""


class AppError(Exception):
    """Base exception for all domain errors"""
    status_code = 500

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class UnauthorizedError(AppError):
    """No session, or the token could not be validated"""
    status_code = 401


class ForbiddenError(AppError):
    """Session present but the caller may not touch this resource"""
    status_code = 403


class NotFoundError(AppError):
    """Referenced record does not exist"""
    status_code = 404


class ValidationFailedError(AppError):
    """Missing or malformed input"""
    status_code = 400


class StateConflictError(AppError):
    """Operation is not allowed in the record's current state"""
    status_code = 400


class UpstreamServiceError(AppError):
    """An external collaborator (upload, storage) failed"""
    status_code = 502

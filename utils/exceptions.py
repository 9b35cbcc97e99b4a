from typing import Dict, List, Optional


class AppError(Exception):
    """Base for errors that map onto a client-facing response."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    message = "Validation error"

    def __init__(self, errors: Dict[str, List[str]], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message)


class NotFoundError(AppError):
    # Public token lookups must not reveal why a lookup failed
    status_code = 404
    message = "Not found"


class RenderError(AppError):
    status_code = 502
    message = "Document generation failed"


class PersistenceConflict(AppError):
    status_code = 409
    message = "Record already exists"


class InvalidTransition(AppError):
    status_code = 409
    message = "Invalid status transition"

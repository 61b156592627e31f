"""
utils/errors.py

Application error taxonomy. Services raise these, and
middlewares/error_handler.py turns them into the standard ErrorResponse JSON.
"""

from typing import Any, List, Optional


class AppError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: Optional[str] = None, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details


class ValidationError(AppError):
    """Bad input shape or value (400)."""
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(AppError):
    """Sheet, student or subject missing (404). `code` tells which one."""
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    """A sheet already exists for the identity (409)."""
    status_code = 409
    code = "CONFLICT"


class AuthenticationError(AppError):
    """Missing or wrong admin bearer token (401)."""
    status_code = 401
    code = "UNAUTHORIZED"
    headers = {"WWW-Authenticate": "Bearer"}


class RateLimitError(AppError):
    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, reset_time: int, message: str = "Rate limit exceeded"):
        super().__init__(message)
        self.reset_time = reset_time  # epoch ms when the window reopens


class UnclassifiedServerError(AppError):
    """Store or unexpected failure. The message stays generic."""
    status_code = 500
    code = "INTERNAL_ERROR"

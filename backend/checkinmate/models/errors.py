"""Error types shared by the services and the API layer."""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in error responses."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    API_ERROR = "API_ERROR"


class AppError(Exception):
    """Base application error.

    Carries everything the exception handler needs to build a response:
    an error code, an HTTP status, a technical message and a message
    that is safe to show to end users.
    """

    code: ErrorCode = ErrorCode.API_ERROR
    status_code: int = 500
    user_message: str = "Something went wrong. Please try again."

    def __init__(
        self,
        message: str,
        *,
        user_message: Optional[str] = None,
        details: Optional[list[dict]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if user_message is not None:
            self.user_message = user_message
        self.details = details


class InvalidCoordinatesError(AppError):
    """Coordinates or radius outside the accepted range."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 400
    user_message = "Invalid coordinates or radius provided."


class ExternalSourceError(AppError):
    """The external place source failed and no fallback data exists."""

    code = ErrorCode.UPSTREAM_ERROR
    status_code = 503
    user_message = "Place data is temporarily unavailable. Please try again later."


class RateLimitedError(AppError):
    """Client exceeded the request budget for the current window."""

    code = ErrorCode.RATE_LIMITED
    status_code = 429
    user_message = "Too many requests. Please try again later."

    def __init__(self, message: str, *, headers: Optional[dict[str, str]] = None) -> None:
        super().__init__(message)
        self.headers = headers or {}

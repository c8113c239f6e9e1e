"""
Domain errors raised by the reading core.

Each error carries the HTTP status it maps to and a stable ``code`` the
reader UI branches on (for example ``DAILY_LIMIT_REACHED`` sends the child to
the "come back tomorrow" screen instead of showing an error toast).
"""

from typing import Any, Dict, Optional


class ReadingCoreError(Exception):
    """Base class for every error the services raise on purpose."""

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Unexpected server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationError(ReadingCoreError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class NotFoundError(ReadingCoreError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ChildNotFound(NotFoundError):
    code = "CHILD_NOT_FOUND"
    default_message = "Child profile not found"


class BookNotFound(NotFoundError):
    code = "BOOK_NOT_FOUND"
    default_message = "Book not found"


class SessionNotFound(NotFoundError):
    code = "SESSION_NOT_FOUND"
    default_message = "Reading session not found"


class ForbiddenError(ReadingCoreError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Not authorized"


class NotAllowedError(ForbiddenError):
    code = "BOOK_NOT_ALLOWED"
    default_message = "This book is not allowed for this child"


class ChildInactiveError(ForbiddenError):
    code = "CHILD_INACTIVE"
    default_message = "Child profile is inactive"


class ScheduleBlockedError(ForbiddenError):
    code = "SCHEDULE_BLOCKED"
    default_message = "Reading is not allowed at this time"


class DailyLimitReachedError(ForbiddenError):
    code = "DAILY_LIMIT_REACHED"
    default_message = "Daily reading limit reached"


class SessionAlreadyEndedError(ReadingCoreError):
    status_code = 409
    code = "SESSION_ALREADY_ENDED"
    default_message = "Reading session already ended"

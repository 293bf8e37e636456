"""Custom application exceptions."""

from datetime import datetime
from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

    def extra_content(self) -> dict[str, Any]:
        """Additional fields rendered in the JSON error body."""
        return {}


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error", field: str | None = None):
        """Initialize with 422 status code."""
        self.field = field
        super().__init__(message, status_code=422)

    def extra_content(self) -> dict[str, Any]:
        return {"field": self.field} if self.field else {}


class SchedulingConflictException(ConflictException):
    """A candidate appointment overlaps an existing one on the same calendar."""

    def __init__(
        self,
        title: str,
        start: datetime,
        end: datetime,
        appointment_id: str | None = None,
        source: str = "local",
    ):
        """Initialize with the colliding appointment's details."""
        self.title = title
        self.start = start
        self.end = end
        self.appointment_id = appointment_id
        self.source = source
        super().__init__(f"Time slot conflicts with '{title}'")

    def extra_content(self) -> dict[str, Any]:
        return {
            "conflict": {
                "id": self.appointment_id,
                "title": self.title,
                "start": self.start.isoformat(),
                "end": self.end.isoformat(),
                "source": self.source,
            }
        }


class DuplicatePatientException(ConflictException):
    """A patient with the same name and/or phone already exists."""

    def __init__(self, fields: list[str]):
        """Initialize with the list of colliding fields."""
        self.fields = fields
        if fields == ["name", "phone"]:
            message = "A patient with this name and phone already exists"
        elif fields == ["name"]:
            message = "A patient with this name already exists"
        else:
            message = "A patient with this phone already exists"
        super().__init__(message)

    def extra_content(self) -> dict[str, Any]:
        return {"fields": self.fields}


class CalendarReauthRequiredException(UnauthorizedException):
    """The stored calendar credential was rejected by the provider."""

    def __init__(self, message: str = "Calendar access expired, reconnect your calendar account"):
        """Initialize with 401 status code."""
        super().__init__(message)


class CalendarUnavailableException(AppException):
    """The calendar provider could not be reached or refused the request."""

    def __init__(self, message: str = "Calendar provider unavailable"):
        """Initialize with 502 status code."""
        super().__init__(message, status_code=502)

"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, Field, field_validator, model_validator


class AppointmentStatus(str, Enum):
    """Appointment status tag. Any value may replace any other."""

    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"


def intervals_overlap(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime,
) -> bool:
    """Half-open overlap test: ``[s1, e1)`` and ``[s2, e2)`` overlap iff s1 < e2 and e1 > s2."""
    return start_a < end_b and end_a > start_b


class Appointment(BaseModel):
    """Canonical appointment record shared by the store, the calendar and the API."""

    id: str = Field(..., min_length=1)
    title: str
    start: AwareDatetime
    end: AwareDatetime
    # None means the appointment is not attributed to any specialist
    specialist_id: UUID | None = None
    calendar_id: str = Field(..., min_length=1)
    patient_name: str = ""
    patient_phone: str = ""
    description: str | None = None
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    google_event_id: str | None = None

    @model_validator(mode="after")
    def validate_interval(self) -> "Appointment":
        """Validate end time is after start time."""
        if self.end <= self.start:
            raise ValueError("End time must be after start time")
        return self

    @property
    def is_synced(self) -> bool:
        return self.google_event_id is not None

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return intervals_overlap(self.start, self.end, start, end)


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment."""

    title: str = Field(..., min_length=1, max_length=200)
    specialist_id: UUID | None = None
    calendar_id: str | None = Field(None, min_length=1)
    start: AwareDatetime
    end: AwareDatetime | None = None
    patient_name: str = Field(..., min_length=1, max_length=200)
    patient_phone: str = Field("", max_length=32)
    notes: str = Field("", max_length=1000)
    status: AppointmentStatus = AppointmentStatus.CONFIRMED

    @field_validator("title", "patient_name")
    @classmethod
    def strip_required(cls, v: str) -> str:
        """Reject values that are only whitespace."""
        if not v.strip():
            raise ValueError("Field is required")
        return v.strip()

    @model_validator(mode="after")
    def validate_interval(self) -> "AppointmentCreate":
        """Validate end time is after start time."""
        if self.end is not None and self.end <= self.start:
            raise ValueError("End time must be after start time")
        if self.specialist_id is None and self.calendar_id is None:
            raise ValueError("Either specialist_id or calendar_id is required")
        return self


class AppointmentUpdate(BaseModel):
    """Schema for editing an existing appointment."""

    title: str | None = Field(None, min_length=1, max_length=200)
    start: AwareDatetime | None = None
    end: AwareDatetime | None = None
    patient_name: str | None = Field(None, min_length=1, max_length=200)
    patient_phone: str | None = Field(None, max_length=32)
    notes: str | None = Field(None, max_length=1000)
    status: AppointmentStatus | None = None


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus


class ConflictCheckRequest(BaseModel):
    """Dry-run conflict check for a candidate interval."""

    calendar_id: str = Field(..., min_length=1)
    start: AwareDatetime
    end: AwareDatetime
    exclude_id: str | None = None

    @model_validator(mode="after")
    def validate_interval(self) -> "ConflictCheckRequest":
        """Validate end time is after start time."""
        if self.end <= self.start:
            raise ValueError("End time must be after start time")
        return self


class Notice(BaseModel):
    """User-visible notice attached to a successful response."""

    code: str
    message: str


class CalendarViewResponse(BaseModel):
    """Appointments for a display window."""

    items: list[Appointment]
    # remote: every calendar answered; local: none did; mixed: some did
    source: str
    notices: list[Notice] = Field(default_factory=list)


class AppointmentWriteResponse(BaseModel):
    """Result of a create/update: the stored appointment plus any degradation notices."""

    appointment: Appointment
    synced: bool
    notices: list[Notice] = Field(default_factory=list)


class ConflictCheckResponse(BaseModel):
    """Dry-run conflict check result."""

    available: bool
    remote_checked: bool
    conflict: dict[str, Any] | None = None

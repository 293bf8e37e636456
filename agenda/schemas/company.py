"""Company settings schemas."""

import re
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class Weekday(str, Enum):
    """Day of the week."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class BusinessDay(BaseModel):
    """Opening hours of one weekday, as ``HH:MM`` local times."""

    day: Weekday
    open: bool = False
    start: str = "08:00"
    end: str = "18:00"

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, v: str) -> str:
        """Validate HH:MM format."""
        if not _HHMM.match(v):
            raise ValueError("Time must use the HH:MM format")
        return v

    @model_validator(mode="after")
    def validate_hours(self) -> "BusinessDay":
        """An open day must close after it opens."""
        if self.open and self.end <= self.start:
            raise ValueError("Closing time must be after opening time")
        return self


def default_business_hours() -> list[BusinessDay]:
    """Monday to Friday open 08:00-18:00, weekends closed."""
    return [
        BusinessDay(day=day, open=day not in (Weekday.SATURDAY, Weekday.SUNDAY))
        for day in Weekday
    ]


class CompanySettingsUpdate(BaseModel):
    """Schema for updating the clinic profile. Only provided fields change."""

    name: str | None = Field(None, min_length=1, max_length=200)
    whatsapp_phone: str | None = Field(None, max_length=32)
    address: str | None = None
    business_hours: list[BusinessDay] | None = None

    @field_validator("business_hours")
    @classmethod
    def unique_days(cls, v: list[BusinessDay] | None) -> list[BusinessDay] | None:
        """Each weekday may appear once."""
        if v is not None and len({d.day for d in v}) != len(v):
            raise ValueError("Each weekday may appear only once")
        return v


class CompanySettingsResponse(BaseModel):
    """Clinic profile."""

    name: str = ""
    whatsapp_phone: str | None = None
    address: str | None = None
    business_hours: list[BusinessDay] = Field(default_factory=default_business_hours)

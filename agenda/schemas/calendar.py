"""Google Calendar payload schemas.

Remote events are validated into these models at the adapter boundary so the
rest of the application never handles raw provider dictionaries.
"""

from datetime import UTC, date, datetime, time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EventDateTime(BaseModel):
    """Start or end of an event: a timed instant or an all-day date."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date_time: datetime | None = Field(None, alias="dateTime")
    all_day: date | None = Field(None, alias="date")
    time_zone: str | None = Field(None, alias="timeZone")

    @model_validator(mode="after")
    def require_one(self) -> "EventDateTime":
        """Either ``dateTime`` or ``date`` must be present."""
        if self.date_time is None and self.all_day is None:
            raise ValueError("Event time requires dateTime or date")
        return self

    @classmethod
    def from_datetime(cls, value: datetime) -> "EventDateTime":
        return cls(date_time=value.astimezone(UTC))

    def to_datetime(self) -> datetime:
        """Resolve to an aware instant; all-day dates start at midnight UTC."""
        if self.date_time is not None:
            if self.date_time.utcoffset() is None:
                return self.date_time.replace(tzinfo=UTC)
            return self.date_time
        return datetime.combine(self.all_day, time.min, tzinfo=UTC)  # type: ignore[arg-type]


class CalendarEvent(BaseModel):
    """A single event on a remote calendar."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = None
    summary: str = ""
    description: str | None = None
    start: EventDateTime
    end: EventDateTime
    # confirmed | tentative | cancelled
    status: str | None = None
    color_id: str | None = Field(None, alias="colorId")
    extended_properties: dict[str, dict[str, str]] | None = Field(None, alias="extendedProperties")

    def private_property(self, key: str) -> str | None:
        """Read an app-private extended property."""
        return ((self.extended_properties or {}).get("private") or {}).get(key)

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the provider's request body."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"id"}, mode="json")


class CalendarListEntry(BaseModel):
    """A calendar visible to the connected account."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    summary: str = ""
    description: str | None = None
    background_color: str | None = Field(None, alias="backgroundColor")
    foreground_color: str | None = Field(None, alias="foregroundColor")
    primary: bool = False

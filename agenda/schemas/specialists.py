"""Specialist schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class SpecialistBase(BaseModel):
    """Base schema for specialist."""

    name: str = Field(..., min_length=1, max_length=200)
    specialty: str = Field(..., min_length=1, max_length=200)
    color: str = Field("#3b82f6", max_length=32)
    avatar_url: str | None = None
    calendar_id: str | None = Field(None, min_length=1)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=32)
    treatments: list[str] = Field(default_factory=list)

    @field_validator("treatments")
    @classmethod
    def clean_treatments(cls, v: list[str]) -> list[str]:
        """Drop blank treatment names."""
        return [t.strip() for t in v if t.strip()]


class SpecialistCreate(SpecialistBase):
    """Schema for creating a specialist."""


class SpecialistUpdate(BaseModel):
    """Schema for updating a specialist."""

    name: str | None = Field(None, min_length=1, max_length=200)
    specialty: str | None = Field(None, min_length=1, max_length=200)
    color: str | None = Field(None, max_length=32)
    avatar_url: str | None = None
    calendar_id: str | None = Field(None, min_length=1)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=32)
    treatments: list[str] | None = None


class SpecialistResponse(SpecialistBase):
    """Specialist response schema."""

    id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

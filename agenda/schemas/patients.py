"""Patient schemas for request/response validation."""

import re
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(value: str) -> str:
    """Keep only digits, dropping any messaging-service suffix."""
    return _NON_DIGITS.sub("", value.split("@", 1)[0])


class PatientStatus(str, Enum):
    """Patient status enumeration."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class PatientFields(BaseModel):
    """Optional registration fields shared by create and update."""

    email: EmailStr | None = None
    plan: str | None = Field(None, max_length=100)
    cpf: str | None = Field(None, max_length=20)
    rg: str | None = Field(None, max_length=20)
    date_of_birth: date | None = None
    gender: str | None = Field(None, max_length=20)
    marital_status: str | None = Field(None, max_length=30)
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = Field(None, max_length=32)
    postal_code: str | None = Field(None, max_length=20)
    street: str | None = None
    street_number: str | None = Field(None, max_length=20)
    district: str | None = Field(None, max_length=100)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    address_complement: str | None = None
    insurance_card_number: str | None = Field(None, max_length=100)
    insurance_card_valid_until: date | None = None
    allergy_notes: str | None = None


class PatientCreate(PatientFields):
    """Schema for registering a patient."""

    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=7, max_length=40)
    status: PatientStatus = PatientStatus.ACTIVE
    has_allergies: bool = False

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Collapse surrounding whitespace."""
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        """Validate and normalize phone number."""
        cleaned = normalize_phone(v)
        if len(cleaned) < 7:
            raise ValueError("Phone number must have at least 7 digits")
        return cleaned


class PatientUpdate(PatientFields):
    """Schema for updating a patient."""

    name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, min_length=7, max_length=40)
    status: PatientStatus | None = None
    has_allergies: bool | None = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        """Validate and normalize phone number."""
        if v is None:
            return v
        cleaned = normalize_phone(v)
        if len(cleaned) < 7:
            raise ValueError("Phone number must have at least 7 digits")
        return cleaned


class PatientResponse(PatientFields):
    """Patient response schema."""

    id: UUID
    name: str
    phone: str
    status: PatientStatus
    has_allergies: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PatientListResponse(BaseModel):
    """Schema for paginated patient list response."""

    total: int
    page: int
    page_size: int
    items: list[PatientResponse]

"""User schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class UserRole(str, Enum):
    """Dashboard user role."""

    ADMIN = "admin"
    USER = "user"


class UserPermissions(BaseModel):
    """Write permissions of a non-admin user."""

    can_create: bool = True
    can_edit: bool = True
    can_delete: bool = False


class UserCreate(UserPermissions):
    """Schema for adding a dashboard user."""

    email: EmailStr
    full_name: str | None = Field(None, max_length=200)
    role: UserRole = UserRole.USER


class UserUpdate(BaseModel):
    """Schema for updating a dashboard user."""

    full_name: str | None = Field(None, max_length=200)
    role: UserRole | None = None
    is_active: bool | None = None
    can_create: bool | None = None
    can_edit: bool | None = None
    can_delete: bool | None = None


class UserResponse(BaseModel):
    """User schema for API responses."""

    id: UUID
    email: str
    full_name: str | None = None
    role: UserRole
    is_active: bool
    can_create: bool
    can_edit: bool
    can_delete: bool
    google_email: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

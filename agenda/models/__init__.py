"""Database models."""

from agenda.models.appointments import appointments
from agenda.models.base import metadata
from agenda.models.company import company_settings
from agenda.models.patients import patients
from agenda.models.specialists import specialists
from agenda.models.users import users

__all__ = [
    "appointments",
    "company_settings",
    "metadata",
    "patients",
    "specialists",
    "users",
]

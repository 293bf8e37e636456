"""Patient model definition using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

from agenda.models.base import metadata

patients = Table(
    "patients",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column("name", Text, nullable=False, index=True),
    # Digits only
    Column("phone", String(32), nullable=False, index=True),
    Column("email", String(255)),
    Column("plan", String(100)),
    Column("status", String(20), nullable=False, server_default="active"),
    # Documents
    Column("cpf", String(20)),
    Column("rg", String(20)),
    Column("date_of_birth", Date),
    Column("gender", String(20)),
    Column("marital_status", String(30)),
    # Emergency contact
    Column("emergency_contact_name", Text),
    Column("emergency_contact_phone", String(32)),
    # Address information
    Column("postal_code", String(20)),
    Column("street", Text),
    Column("street_number", String(20)),
    Column("district", String(100)),
    Column("city", String(100)),
    Column("state", String(100)),
    Column("address_complement", Text),
    # Insurance card
    Column("insurance_card_number", String(100)),
    Column("insurance_card_valid_until", Date),
    # Allergies
    Column("has_allergies", Boolean, nullable=False, server_default=text("false")),
    Column("allergy_notes", Text),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
)

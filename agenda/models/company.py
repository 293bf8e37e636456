"""Company settings model definition using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    Table,
    Text,
    text,
)

from agenda.models.base import metadata

# The clinic's own profile; a single row with id 1
company_settings = Table(
    "company_settings",
    metadata,
    Column("id", Integer, primary_key=True, server_default=text("1")),
    Column("name", Text, nullable=False, server_default=text("''")),
    Column("whatsapp_phone", String(32)),
    Column("address", Text),
    # [{"day": "monday", "open": true, "start": "08:00", "end": "18:00"}, ...]
    Column("business_hours", JSON, nullable=False, server_default=text("'[]'")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint("id = 1", name="check_company_settings_singleton"),
)

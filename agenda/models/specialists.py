"""Specialist model definition using SQLAlchemy Core."""

from sqlalchemy import JSON, Column, DateTime, String, Table, Text, text
from sqlalchemy.dialects.postgresql import UUID

from agenda.models.base import metadata

specialists = Table(
    "specialists",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column("name", Text, nullable=False, index=True),
    Column("specialty", String(200), nullable=False),
    Column("color", String(32), nullable=False, server_default="#3b82f6"),
    Column("avatar_url", Text),
    # Remote calendar owned by this specialist (at most one)
    Column("calendar_id", Text, unique=True),
    Column("email", String(255)),
    Column("phone", String(32)),
    Column("treatments", JSON, nullable=False, server_default=text("'[]'")),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
)

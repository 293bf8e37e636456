"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID, VARCHAR

from agenda.models.base import metadata

# Local mirror of calendar events. Synced rows use the remote event id as
# primary key, so ``id == google_event_id`` whenever the latter is set.
appointments = Table(
    "appointments",
    metadata,
    Column("id", Text, primary_key=True),
    Column("google_event_id", Text, nullable=True, unique=True),
    # Ownership
    Column("calendar_id", Text, nullable=False),
    Column(
        "specialist_id",
        UUID(as_uuid=True),
        ForeignKey("specialists.id", ondelete="SET NULL"),
        nullable=True,
    ),
    # Appointment details
    Column("title", Text, nullable=False),
    Column("start_at", TIMESTAMP(timezone=True), nullable=False),
    Column("end_at", TIMESTAMP(timezone=True), nullable=False),
    # Snapshot of the patient at booking time (not a reference)
    Column("patient_name", Text, nullable=False, server_default=""),
    Column("patient_phone", VARCHAR(32), nullable=False, server_default=""),
    Column("description", Text, nullable=True),
    Column("status", Text, nullable=False, server_default="confirmed"),
    # Audit fields
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    # Constraints
    CheckConstraint(
        "status IN ('confirmed', 'pending', 'cancelled')",
        name="appointments_status_check",
    ),
    CheckConstraint("end_at > start_at", name="appointments_interval_check"),
    Index("idx_appointments_calendar_start", "calendar_id", "start_at"),
)

"""Initial schema - users, specialists, patients, appointments, company settings.

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    # Enable pgcrypto extension
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.create_table(
        "users",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("role", sa.Text(), server_default=sa.text("'user'"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("can_create", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("can_edit", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("can_delete", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("google_email", sa.Text(), nullable=True),
        sa.Column("google_access_token", sa.Text(), nullable=True),
        sa.Column("google_refresh_token", sa.Text(), nullable=True),
        sa.Column("google_token_expires_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        *_audit_columns(),
        sa.CheckConstraint("role IN ('admin', 'user')", name="check_user_role"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "specialists",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("specialty", sa.VARCHAR(length=200), nullable=False),
        sa.Column("color", sa.VARCHAR(length=32), server_default="#3b82f6", nullable=False),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("calendar_id", sa.Text(), nullable=True),
        sa.Column("email", sa.VARCHAR(length=255), nullable=True),
        sa.Column("phone", sa.VARCHAR(length=32), nullable=True),
        sa.Column("treatments", sa.JSON(), server_default=sa.text("'[]'"), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("calendar_id"),
    )
    op.create_index("ix_specialists_name", "specialists", ["name"])

    op.create_table(
        "patients",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("phone", sa.VARCHAR(length=32), nullable=False),
        sa.Column("email", sa.VARCHAR(length=255), nullable=True),
        sa.Column("plan", sa.VARCHAR(length=100), nullable=True),
        sa.Column("status", sa.VARCHAR(length=20), server_default="active", nullable=False),
        sa.Column("cpf", sa.VARCHAR(length=20), nullable=True),
        sa.Column("rg", sa.VARCHAR(length=20), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", sa.VARCHAR(length=20), nullable=True),
        sa.Column("marital_status", sa.VARCHAR(length=30), nullable=True),
        sa.Column("emergency_contact_name", sa.Text(), nullable=True),
        sa.Column("emergency_contact_phone", sa.VARCHAR(length=32), nullable=True),
        sa.Column("postal_code", sa.VARCHAR(length=20), nullable=True),
        sa.Column("street", sa.Text(), nullable=True),
        sa.Column("street_number", sa.VARCHAR(length=20), nullable=True),
        sa.Column("district", sa.VARCHAR(length=100), nullable=True),
        sa.Column("city", sa.VARCHAR(length=100), nullable=True),
        sa.Column("state", sa.VARCHAR(length=100), nullable=True),
        sa.Column("address_complement", sa.Text(), nullable=True),
        sa.Column("insurance_card_number", sa.VARCHAR(length=100), nullable=True),
        sa.Column("insurance_card_valid_until", sa.Date(), nullable=True),
        sa.Column("has_allergies", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("allergy_notes", sa.Text(), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_patients_name", "patients", ["name"])
    op.create_index("ix_patients_phone", "patients", ["phone"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("google_event_id", sa.Text(), nullable=True),
        sa.Column("calendar_id", sa.Text(), nullable=False),
        sa.Column("specialist_id", postgresql.UUID(), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("start_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("end_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("patient_name", sa.Text(), server_default="", nullable=False),
        sa.Column("patient_phone", sa.VARCHAR(length=32), server_default="", nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), server_default="confirmed", nullable=False),
        *_audit_columns(),
        sa.CheckConstraint(
            "status IN ('confirmed', 'pending', 'cancelled')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint("end_at > start_at", name="appointments_interval_check"),
        sa.ForeignKeyConstraint(["specialist_id"], ["specialists.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("google_event_id"),
    )
    op.create_index(
        "idx_appointments_calendar_start", "appointments", ["calendar_id", "start_at"]
    )

    op.create_table(
        "company_settings",
        sa.Column("id", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("name", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("whatsapp_phone", sa.VARCHAR(length=32), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("business_hours", sa.JSON(), server_default=sa.text("'[]'"), nullable=False),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint("id = 1", name="check_company_settings_singleton"),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table("company_settings")

    op.drop_index("idx_appointments_calendar_start", table_name="appointments")
    op.drop_table("appointments")

    op.drop_index("ix_patients_phone", table_name="patients")
    op.drop_index("ix_patients_name", table_name="patients")
    op.drop_table("patients")

    op.drop_index("ix_specialists_name", table_name="specialists")
    op.drop_table("specialists")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

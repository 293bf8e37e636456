"""User model definition using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

from agenda.models.base import metadata

# Dashboard operators. Identity lives with the hosted auth provider; the row
# carries account state, write permissions and the Google Calendar credential.
users = Table(
    "users",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column("email", Text, nullable=False, unique=True, index=True),
    Column("full_name", Text),
    Column("role", Text, nullable=False, server_default=text("'user'")),
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    # Write permissions; admins hold all of them implicitly
    Column("can_create", Boolean, nullable=False, server_default=text("false")),
    Column("can_edit", Boolean, nullable=False, server_default=text("false")),
    Column("can_delete", Boolean, nullable=False, server_default=text("false")),
    # Google Calendar credential
    Column("google_email", Text),
    Column("google_access_token", Text),
    Column("google_refresh_token", Text),
    Column("google_token_expires_at", DateTime(timezone=True)),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint("role IN ('admin', 'user')", name="check_user_role"),
)

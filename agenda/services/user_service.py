"""Dashboard user management."""

from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.exceptions import ConflictException, ForbiddenException, NotFoundException
from agenda.models.users import users
from agenda.schemas.users import UserCreate, UserRole, UserUpdate

logger = structlog.get_logger()

_PUBLIC_COLUMNS = (
    users.c.id,
    users.c.email,
    users.c.full_name,
    users.c.role,
    users.c.is_active,
    users.c.can_create,
    users.c.can_edit,
    users.c.can_delete,
    users.c.google_email,
    users.c.created_at,
)


class UserService:
    """Service for dashboard user operations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def list_users(self) -> list[dict]:
        """List users, admins first, then by creation time."""
        query = select(*_PUBLIC_COLUMNS).order_by(users.c.role, users.c.created_at)
        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings().all()]

    async def get_user(self, user_id: UUID) -> dict:
        """
        Get a user by ID.

        Raises:
            NotFoundException: If user not found
        """
        result = await self.db.execute(select(*_PUBLIC_COLUMNS).where(users.c.id == user_id))
        user = result.mappings().first()
        if not user:
            raise NotFoundException("User not found")
        return dict(user)

    async def create_user(self, data: UserCreate) -> dict:
        """
        Add a dashboard user.

        Raises:
            ConflictException: If the email is already registered
        """
        query = (
            users.insert()
            .values(**data.model_dump(mode="json"))
            .returning(*_PUBLIC_COLUMNS)
        )
        try:
            result = await self.db.execute(query)
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictException("A user with this email already exists") from e

        user = result.mappings().first()
        if not user:
            raise ValueError("Failed to create user")
        await self.db.commit()

        logger.info("user_created", user_id=str(user["id"]), role=user["role"])
        return dict(user)

    async def update_user(self, user_id: UUID, data: UserUpdate) -> dict:
        """
        Update a user's profile, role or permissions.

        Raises:
            NotFoundException: If user not found
        """
        values = data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        if not values:
            return await self.get_user(user_id)

        values["updated_at"] = datetime.now(UTC)
        query = (
            update(users)
            .where(users.c.id == user_id)
            .values(**values)
            .returning(*_PUBLIC_COLUMNS)
        )
        result = await self.db.execute(query)
        user = result.mappings().first()
        if not user:
            raise NotFoundException("User not found")
        await self.db.commit()

        logger.info("user_updated", user_id=str(user_id), fields=sorted(values))
        return dict(user)

    async def delete_user(self, user_id: UUID) -> None:
        """
        Remove a user.

        Raises:
            NotFoundException: If user not found
            ForbiddenException: If the user is an administrator
        """
        user = await self.get_user(user_id)
        if user["role"] == UserRole.ADMIN.value:
            raise ForbiddenException("The main administrator cannot be deleted")

        await self.db.execute(delete(users).where(users.c.id == user_id))
        await self.db.commit()
        logger.info("user_deleted", user_id=str(user_id))

"""Specialist service for business logic."""

from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.exceptions import ConflictException
from agenda.core.redis_client import CacheManager
from agenda.models.specialists import specialists
from agenda.schemas.specialists import SpecialistCreate, SpecialistUpdate

logger = structlog.get_logger()


class SpecialistService:
    """Service for specialist operations."""

    # Cache TTL in seconds
    SPECIALIST_CACHE_TTL = 900  # 15 minutes for individual specialists
    SPECIALIST_LIST_CACHE_TTL = 300  # 5 minutes for the list

    LIST_CACHE_KEY = "specialist:list"

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def _get_specialist_cache_key(specialist_id: UUID) -> str:
        """Generate cache key for specialist."""
        return f"specialist:{specialist_id}"

    def _invalidate(self, specialist_id: UUID | None = None) -> None:
        if not self.cache:
            return
        self.cache.delete(self.LIST_CACHE_KEY)
        if specialist_id is not None:
            self.cache.delete(self._get_specialist_cache_key(specialist_id))

    async def get_specialists(self, db: AsyncSession) -> list[dict]:
        """Get all specialists ordered by name."""
        if self.cache:
            cached = self.cache.get_json(self.LIST_CACHE_KEY)
            if cached is not None:
                return cached

        result = await db.execute(select(specialists).order_by(specialists.c.name))
        specialist_list = [dict(s) for s in result.mappings().all()]

        if self.cache:
            self.cache.set_json(
                self.LIST_CACHE_KEY, specialist_list, ttl=self.SPECIALIST_LIST_CACHE_TTL
            )

        return specialist_list

    async def get_specialist_by_id(self, db: AsyncSession, specialist_id: UUID) -> dict | None:
        """Get specialist by ID with caching."""
        if self.cache:
            cached = self.cache.get_json(self._get_specialist_cache_key(specialist_id))
            if cached:
                return cached

        result = await db.execute(select(specialists).where(specialists.c.id == specialist_id))
        specialist = result.mappings().first()
        if not specialist:
            return None

        specialist_dict = dict(specialist)
        if self.cache:
            self.cache.set_json(
                self._get_specialist_cache_key(specialist_id),
                specialist_dict,
                ttl=self.SPECIALIST_CACHE_TTL,
            )

        return specialist_dict

    async def get_calendar_owners(self, db: AsyncSession) -> dict[str, UUID]:
        """Map each linked calendar id to the specialist that owns it."""
        query = select(specialists.c.calendar_id, specialists.c.id).where(
            specialists.c.calendar_id.isnot(None)
        )
        result = await db.execute(query)
        return {row.calendar_id: row.id for row in result.all()}

    async def create_specialist(self, db: AsyncSession, specialist_data: SpecialistCreate) -> dict:
        """
        Create a new specialist.

        Raises:
            ConflictException: If the calendar is already linked to another specialist
        """
        query = (
            specialists.insert()
            .values(**specialist_data.model_dump(mode="json"))
            .returning(specialists)
        )

        try:
            result = await db.execute(query)
        except IntegrityError as e:
            await db.rollback()
            raise ConflictException("Calendar is already linked to another specialist") from e

        specialist = result.mappings().first()
        if not specialist:
            raise ValueError("Failed to create specialist")

        await db.commit()
        self._invalidate()

        logger.info("specialist_created", specialist_id=str(specialist["id"]))
        return dict(specialist)

    async def update_specialist(
        self, db: AsyncSession, specialist_id: UUID, specialist_data: SpecialistUpdate
    ) -> dict | None:
        """Update specialist information."""
        existing = await self.get_specialist_by_id(db, specialist_id)
        if not existing:
            return None

        update_values = specialist_data.model_dump(exclude_unset=True, mode="json")
        if not update_values:
            return existing
        update_values["updated_at"] = datetime.now(UTC)

        query = (
            update(specialists)
            .where(specialists.c.id == specialist_id)
            .values(**update_values)
            .returning(specialists)
        )

        try:
            result = await db.execute(query)
        except IntegrityError as e:
            await db.rollback()
            raise ConflictException("Calendar is already linked to another specialist") from e

        updated = result.mappings().first()
        await db.commit()
        self._invalidate(specialist_id)

        return dict(updated) if updated else None

    async def delete_specialist(self, db: AsyncSession, specialist_id: UUID) -> bool:
        """Delete a specialist; their appointments become unassigned."""
        result = await db.execute(delete(specialists).where(specialists.c.id == specialist_id))
        await db.commit()

        deleted = bool(result.rowcount)
        if deleted:
            self._invalidate(specialist_id)
            logger.info("specialist_deleted", specialist_id=str(specialist_id))
        return deleted

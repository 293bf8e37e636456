"""Clinic profile and opening hours."""

from datetime import UTC, datetime

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.models.company import company_settings
from agenda.schemas.company import CompanySettingsResponse, CompanySettingsUpdate

logger = structlog.get_logger()

SETTINGS_ROW_ID = 1


class CompanyService:
    """Reads and writes the single clinic settings row."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_settings(self) -> CompanySettingsResponse:
        """Get the clinic profile; defaults apply until it is first saved."""
        result = await self.db.execute(
            select(company_settings).where(company_settings.c.id == SETTINGS_ROW_ID)
        )
        row = result.mappings().first()
        if not row:
            return CompanySettingsResponse()

        data = {key: value for key, value in row.items() if key not in ("id", "updated_at")}
        if not data["business_hours"]:
            data.pop("business_hours")
        return CompanySettingsResponse.model_validate(data)

    async def update_settings(self, data: CompanySettingsUpdate) -> CompanySettingsResponse:
        """Merge the provided fields into the clinic profile."""
        current = await self.get_settings()
        changes = data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        merged = {**current.model_dump(mode="json"), **changes}

        stmt = pg_insert(company_settings).values(id=SETTINGS_ROW_ID, **merged)
        stmt = stmt.on_conflict_do_update(
            index_elements=[company_settings.c.id],
            set_={**merged, "updated_at": datetime.now(UTC)},
        )
        await self.db.execute(stmt)
        await self.db.commit()

        logger.info("company_settings_updated", fields=sorted(changes))
        return CompanySettingsResponse.model_validate(merged)

"""Dashboard counters."""

from datetime import UTC, datetime, timedelta, tzinfo

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.models.appointments import appointments
from agenda.models.patients import patients
from agenda.schemas.appointments import AppointmentStatus
from agenda.schemas.dashboard import DashboardStats

RECENT_PATIENT_DAYS = 7


def day_bounds(day_offset: int, now: datetime, tz: tzinfo = UTC) -> tuple[datetime, datetime]:
    """Return ``[midnight, next midnight)`` of the day ``day_offset`` days from ``now`` in ``tz``."""
    local = now.astimezone(tz)
    start = datetime(local.year, local.month, local.day, tzinfo=tz) + timedelta(days=day_offset)
    return start, start + timedelta(days=1)


class DashboardService:
    """Aggregates counters shown on the dashboard."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _count_appointments(self, start: datetime, end: datetime) -> int:
        query = (
            select(func.count())
            .select_from(appointments)
            .where(
                and_(
                    appointments.c.start_at < end,
                    appointments.c.end_at > start,
                    appointments.c.status != AppointmentStatus.CANCELLED.value,
                )
            )
        )
        return (await self.db.execute(query)).scalar_one()

    async def get_stats(self, now: datetime | None = None, tz: tzinfo = UTC) -> DashboardStats:
        """Count patients and the non-cancelled appointments of today and tomorrow."""
        now = now or datetime.now(UTC)

        total_patients = (
            await self.db.execute(select(func.count()).select_from(patients))
        ).scalar_one()
        recent_patients = (
            await self.db.execute(
                select(func.count())
                .select_from(patients)
                .where(patients.c.created_at >= now - timedelta(days=RECENT_PATIENT_DAYS))
            )
        ).scalar_one()

        return DashboardStats(
            total_patients=total_patients,
            today_appointments=await self._count_appointments(*day_bounds(0, now, tz)),
            tomorrow_appointments=await self._count_appointments(*day_bounds(1, now, tz)),
            recent_patients=recent_patients,
        )

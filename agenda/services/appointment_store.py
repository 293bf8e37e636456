"""Local appointment store backed by the relational database."""

from collections.abc import Collection, Mapping, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import and_, delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.models.appointments import appointments
from agenda.schemas.appointments import Appointment, AppointmentStatus

# Columns rewritten when an upsert hits an existing row
_UPSERT_COLUMNS = (
    "google_event_id",
    "calendar_id",
    "specialist_id",
    "title",
    "start_at",
    "end_at",
    "patient_name",
    "patient_phone",
    "description",
    "status",
)


def to_row(appointment: Appointment) -> dict[str, Any]:
    """Map an appointment to its table columns."""
    return {
        "id": appointment.id,
        "google_event_id": appointment.google_event_id,
        "calendar_id": appointment.calendar_id,
        "specialist_id": appointment.specialist_id,
        "title": appointment.title,
        "start_at": appointment.start,
        "end_at": appointment.end,
        "patient_name": appointment.patient_name,
        "patient_phone": appointment.patient_phone,
        "description": appointment.description,
        "status": appointment.status.value,
    }


def from_row(row: Mapping[str, Any]) -> Appointment:
    """Map a table row back to an appointment."""
    return Appointment(
        id=row["id"],
        google_event_id=row["google_event_id"],
        calendar_id=row["calendar_id"],
        specialist_id=row["specialist_id"],
        title=row["title"],
        start=row["start_at"],
        end=row["end_at"],
        patient_name=row["patient_name"] or "",
        patient_phone=row["patient_phone"] or "",
        description=row["description"],
        status=AppointmentStatus(row["status"]),
    )


class AppointmentStore:
    """
    Reads and writes appointment rows.

    Writes commit the session. Reads and ``lock_calendar`` do not, so a
    caller can hold a calendar lock across a conflict check and the write
    that follows it.
    """

    def __init__(self, db: AsyncSession):
        """Initialize store with database session."""
        self.db = db

    async def get(self, appointment_id: str) -> Appointment | None:
        """Get a single appointment by id."""
        result = await self.db.execute(select(appointments).where(appointments.c.id == appointment_id))
        row = result.mappings().first()
        return from_row(row) if row else None

    async def fetch_in_range(
        self,
        start: datetime,
        end: datetime,
        calendar_ids: Sequence[str] | None = None,
    ) -> list[Appointment]:
        """
        Get appointments intersecting a window.

        Args:
            start: Window start
            end: Window end
            calendar_ids: Restrict to these calendars (None means all)

        Returns:
            Appointments ordered by start time
        """
        conditions = [
            appointments.c.start_at < end,
            appointments.c.end_at > start,
        ]
        if calendar_ids is not None:
            if not calendar_ids:
                return []
            conditions.append(appointments.c.calendar_id.in_(list(calendar_ids)))

        stmt = select(appointments).where(and_(*conditions)).order_by(appointments.c.start_at)
        result = await self.db.execute(stmt)
        return [from_row(row) for row in result.mappings().all()]

    async def find_overlapping(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
        exclude_ids: Collection[str] = (),
    ) -> Appointment | None:
        """Find the earliest non-cancelled appointment overlapping ``[start, end)``."""
        conditions = [
            appointments.c.calendar_id == calendar_id,
            appointments.c.start_at < end,
            appointments.c.end_at > start,
            appointments.c.status != AppointmentStatus.CANCELLED.value,
        ]
        if exclude_ids:
            conditions.append(appointments.c.id.notin_(list(exclude_ids)))

        stmt = (
            select(appointments)
            .where(and_(*conditions))
            .order_by(appointments.c.start_at)
            .limit(1)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        return from_row(row) if row else None

    async def lock_calendar(self, calendar_id: str) -> None:
        """Take a transaction-scoped advisory lock serializing writes to one calendar."""
        await self.db.execute(select(func.pg_advisory_xact_lock(func.hashtext(calendar_id))))

    async def upsert(self, items: Sequence[Appointment]) -> None:
        """
        Insert or overwrite appointments keyed by id.

        Synced appointments use the remote event id as their id, so replaying
        the same remote events never duplicates rows.
        """
        if not items:
            return

        # A single INSERT cannot touch the same key twice
        rows = list({item.id: to_row(item) for item in items}.values())

        stmt = pg_insert(appointments).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=[appointments.c.id],
            set_={
                **{column: stmt.excluded[column] for column in _UPSERT_COLUMNS},
                "updated_at": func.now(),
            },
        )
        await self.db.execute(stmt)
        await self.db.commit()

    async def replace(self, old_id: str, appointment: Appointment) -> None:
        """Swap a local-only row for its synced copy in one transaction."""
        await self.db.execute(delete(appointments).where(appointments.c.id == old_id))
        await self.upsert([appointment])

    async def delete_by_id(self, appointment_id: str) -> bool:
        """Delete an appointment; returns False when nothing was deleted."""
        result = await self.db.execute(delete(appointments).where(appointments.c.id == appointment_id))
        await self.db.commit()
        return bool(result.rowcount)

    async def delete_by_ids(self, appointment_ids: Collection[str]) -> int:
        """Delete several appointments at once; returns the number removed."""
        if not appointment_ids:
            return 0
        result = await self.db.execute(
            delete(appointments).where(appointments.c.id.in_(list(appointment_ids)))
        )
        await self.db.commit()
        return result.rowcount

    async def rollback(self) -> None:
        """Abandon the open transaction, releasing any calendar lock."""
        await self.db.rollback()

"""Patient service for business logic."""

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.exceptions import DuplicatePatientException, NotFoundException
from agenda.models.patients import patients
from agenda.schemas.patients import PatientCreate, PatientUpdate

logger = structlog.get_logger()


def _same_name(a: str, b: str) -> bool:
    return " ".join(a.split()).casefold() == " ".join(b.split()).casefold()


def find_duplicate_fields(
    candidates: Iterable[Mapping[str, Any]],
    name: str,
    phone: str,
) -> list[str]:
    """
    Report which identifying fields of a patient already belong to someone else.

    Names compare case-insensitively with whitespace collapsed; phones compare
    as stored (digits only).

    Returns:
        ``["name", "phone"]`` when one existing patient matches both, otherwise
        whichever single fields matched any patient (possibly empty)
    """
    fields: set[str] = set()
    for candidate in candidates:
        name_hit = _same_name(candidate["name"], name)
        phone_hit = candidate["phone"] == phone
        if name_hit and phone_hit:
            return ["name", "phone"]
        if name_hit:
            fields.add("name")
        if phone_hit:
            fields.add("phone")
    return [field for field in ("name", "phone") if field in fields]


class PatientService:
    """Service for patient operations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _ensure_unique(self, name: str, phone: str, exclude_id: UUID | None = None) -> None:
        normalized = " ".join(name.split()).lower()
        conditions = [
            or_(
                func.lower(func.regexp_replace(func.trim(patients.c.name), r"\s+", " ", "g"))
                == normalized,
                patients.c.phone == phone,
            )
        ]
        if exclude_id is not None:
            conditions.append(patients.c.id != exclude_id)

        query = select(patients.c.name, patients.c.phone).where(*conditions)
        result = await self.db.execute(query)
        fields = find_duplicate_fields(result.mappings().all(), name, phone)
        if fields:
            raise DuplicatePatientException(fields)

    async def list_patients(
        self,
        page: int = 1,
        page_size: int = 20,
        search: str | None = None,
    ) -> tuple[list[dict], int]:
        """
        List patients, newest first.

        Args:
            page: 1-based page number
            page_size: Items per page
            search: Case-insensitive name fragment or phone digits

        Returns:
            Tuple of (patients, total count)
        """
        conditions = []
        if search:
            term = search.strip()
            digits = "".join(ch for ch in term if ch.isdigit())
            matches = [patients.c.name.ilike(f"%{term}%")]
            if digits:
                matches.append(patients.c.phone.contains(digits))
            conditions.append(or_(*matches))

        count_query = select(func.count()).select_from(patients).where(*conditions)
        total = (await self.db.execute(count_query)).scalar_one()

        query = (
            select(patients)
            .where(*conditions)
            .order_by(patients.c.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.db.execute(query)
        return [dict(p) for p in result.mappings().all()], total

    async def get_patient(self, patient_id: UUID) -> dict:
        """
        Get patient by ID.

        Raises:
            NotFoundException: If patient not found
        """
        result = await self.db.execute(select(patients).where(patients.c.id == patient_id))
        patient = result.mappings().first()
        if not patient:
            raise NotFoundException("Patient not found")
        return dict(patient)

    async def create_patient(self, patient_data: PatientCreate) -> dict:
        """
        Register a patient.

        Raises:
            DuplicatePatientException: If the name or phone is already registered
        """
        await self._ensure_unique(patient_data.name, patient_data.phone)

        query = patients.insert().values(**patient_data.model_dump()).returning(patients)
        result = await self.db.execute(query)
        patient = result.mappings().first()
        await self.db.commit()

        logger.info("patient_created", patient_id=str(patient["id"]))
        return dict(patient)

    async def update_patient(self, patient_id: UUID, patient_data: PatientUpdate) -> dict:
        """
        Update patient information.

        Raises:
            NotFoundException: If patient not found
            DuplicatePatientException: If the new name or phone collides
        """
        existing = await self.get_patient(patient_id)
        update_values = patient_data.model_dump(exclude_unset=True)
        if not update_values:
            return existing

        if "name" in update_values or "phone" in update_values:
            await self._ensure_unique(
                update_values.get("name") or existing["name"],
                update_values.get("phone") or existing["phone"],
                exclude_id=patient_id,
            )

        update_values["updated_at"] = datetime.now(UTC)
        query = (
            update(patients)
            .where(patients.c.id == patient_id)
            .values(**update_values)
            .returning(patients)
        )
        result = await self.db.execute(query)
        patient = result.mappings().first()
        await self.db.commit()

        return dict(patient)

    async def delete_patient(self, patient_id: UUID) -> None:
        """
        Delete a patient.

        Raises:
            NotFoundException: If patient not found
        """
        result = await self.db.execute(delete(patients).where(patients.c.id == patient_id))
        if not result.rowcount:
            await self.db.rollback()
            raise NotFoundException("Patient not found")
        await self.db.commit()
        logger.info("patient_deleted", patient_id=str(patient_id))

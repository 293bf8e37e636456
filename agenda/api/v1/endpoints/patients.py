"""Patient endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from agenda.dependencies import CanCreate, CanDelete, CanEdit, CurrentUser, DatabaseSession
from agenda.schemas.patients import (
    PatientCreate,
    PatientListResponse,
    PatientResponse,
    PatientUpdate,
)
from agenda.services.patient_service import PatientService

router = APIRouter()


@router.get("/", response_model=PatientListResponse)
async def list_patients(
    current_user: CurrentUser,
    db: DatabaseSession,
    search: str | None = Query(None, description="Name fragment or phone digits"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PatientListResponse:
    """List patients, newest first."""
    service = PatientService(db)
    items, total = await service.list_patients(page=page, page_size=page_size, search=search)
    return PatientListResponse(
        total=total,
        page=page,
        page_size=page_size,
        items=[PatientResponse.model_validate(p) for p in items],
    )


@router.post("/", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
async def create_patient(
    data: PatientCreate,
    current_user: CanCreate,
    db: DatabaseSession,
):
    """
    Register a patient.

    Responds 409 naming the colliding field(s) when a patient with the same
    name or phone already exists.
    """
    return await PatientService(db).create_patient(data)


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(patient_id: UUID, current_user: CurrentUser, db: DatabaseSession):
    """Get a patient by ID."""
    return await PatientService(db).get_patient(patient_id)


@router.put("/{patient_id}", response_model=PatientResponse)
async def update_patient(
    patient_id: UUID,
    data: PatientUpdate,
    current_user: CanEdit,
    db: DatabaseSession,
):
    """Update a patient's registration."""
    return await PatientService(db).update_patient(patient_id, data)


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_patient(
    patient_id: UUID, current_user: CanDelete, db: DatabaseSession
) -> Response:
    """Delete a patient."""
    await PatientService(db).delete_patient(patient_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

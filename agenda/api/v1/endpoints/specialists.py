"""Specialist management endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status

from agenda.core.redis_client import CacheManager
from agenda.dependencies import (
    CanCreate,
    CanDelete,
    CanEdit,
    CurrentUser,
    DatabaseSession,
    get_cache_manager,
)
from agenda.schemas.specialists import SpecialistCreate, SpecialistResponse, SpecialistUpdate
from agenda.services.specialist_service import SpecialistService

router = APIRouter()


def get_specialist_service(
    cache_manager: CacheManager = Depends(get_cache_manager),
) -> SpecialistService:
    """Get specialist service instance."""
    return SpecialistService(cache_manager=cache_manager)


@router.get("/", response_model=list[SpecialistResponse])
async def list_specialists(
    current_user: CurrentUser,
    db: DatabaseSession,
    specialist_service: SpecialistService = Depends(get_specialist_service),
):
    """List all specialists ordered by name."""
    specialist_list = await specialist_service.get_specialists(db)
    return [SpecialistResponse.model_validate(s) for s in specialist_list]


@router.post("/", response_model=SpecialistResponse, status_code=status.HTTP_201_CREATED)
async def create_specialist(
    specialist_data: SpecialistCreate,
    current_user: CanCreate,
    db: DatabaseSession,
    specialist_service: SpecialistService = Depends(get_specialist_service),
):
    """
    Create a specialist.

    - **name**: Display name
    - **specialty**: Area of practice
    - **color**: Colour used for the specialist's appointments
    - **calendar_id**: Remote calendar holding the specialist's appointments
    - **treatments**: Treatments offered
    """
    return await specialist_service.create_specialist(db, specialist_data)


@router.get("/{specialist_id}", response_model=SpecialistResponse)
async def get_specialist(
    specialist_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
    specialist_service: SpecialistService = Depends(get_specialist_service),
):
    """Get a specialist by ID."""
    specialist = await specialist_service.get_specialist_by_id(db, specialist_id)
    if not specialist:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Specialist not found")
    return specialist


@router.put("/{specialist_id}", response_model=SpecialistResponse)
async def update_specialist(
    specialist_id: UUID,
    specialist_data: SpecialistUpdate,
    current_user: CanEdit,
    db: DatabaseSession,
    specialist_service: SpecialistService = Depends(get_specialist_service),
):
    """Update a specialist. Only provided fields are changed."""
    specialist = await specialist_service.update_specialist(db, specialist_id, specialist_data)
    if not specialist:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Specialist not found")
    return specialist


@router.delete("/{specialist_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_specialist(
    specialist_id: UUID,
    current_user: CanDelete,
    db: DatabaseSession,
    specialist_service: SpecialistService = Depends(get_specialist_service),
) -> Response:
    """Delete a specialist. Their appointments stay on the agenda, unassigned."""
    if not await specialist_service.delete_specialist(db, specialist_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Specialist not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""Clinic settings endpoints."""

from fastapi import APIRouter

from agenda.dependencies import AdminUser, CurrentUser, DatabaseSession
from agenda.schemas.company import CompanySettingsResponse, CompanySettingsUpdate
from agenda.services.company_service import CompanyService

router = APIRouter()


@router.get("/", response_model=CompanySettingsResponse)
async def get_company_settings(current_user: CurrentUser, db: DatabaseSession):
    """Get the clinic profile and opening hours."""
    return await CompanyService(db).get_settings()


@router.put("/", response_model=CompanySettingsResponse)
async def update_company_settings(
    data: CompanySettingsUpdate,
    admin_user: AdminUser,
    db: DatabaseSession,
):
    """Update the clinic profile. Only provided fields change."""
    return await CompanyService(db).update_settings(data)

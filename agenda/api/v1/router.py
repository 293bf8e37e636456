"""API v1 router configuration."""

from fastapi import APIRouter

from agenda.api.v1.endpoints import (
    appointments,
    company,
    dashboard,
    health,
    integrations,
    patients,
    specialists,
    users,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(specialists.router, prefix="/specialists", tags=["Specialists"])
api_router.include_router(patients.router, prefix="/patients", tags=["Patients"])
api_router.include_router(
    integrations.router,
    prefix="/integrations/google",
    tags=["Integrations"],
)
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(company.router, prefix="/company", tags=["Company"])

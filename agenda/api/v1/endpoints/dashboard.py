"""Dashboard endpoints."""

from fastapi import APIRouter

from agenda.dependencies import CurrentUser, DatabaseSession
from agenda.schemas.dashboard import DashboardStats
from agenda.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
async def get_stats(current_user: CurrentUser, db: DatabaseSession) -> DashboardStats:
    """Patient totals and today's/tomorrow's appointment counts."""
    return await DashboardService(db).get_stats()

"""Dashboard schemas."""

from pydantic import BaseModel


class DashboardStats(BaseModel):
    """Headline counters for the dashboard."""

    total_patients: int
    today_appointments: int
    tomorrow_appointments: int
    recent_patients: int

"""Tests for the calendar integration and health endpoints."""

import httpx
import pytest
import pytest_asyncio
from conftest import TEST_TOKEN
from httpx import AsyncClient

from agenda.dependencies import get_calendar_client, get_google_auth_service
from agenda.main import app
from agenda.schemas.integrations import AuthUrlResponse, IntegrationStatusResponse
from agenda.services.google_calendar_client import GoogleCalendarClient

BASE = "/api/v1/integrations/google"


class FakeAuthService:
    def __init__(self):
        self.disconnected = []

    def build_auth_url(self, user_id, redirect_uri=None):
        return AuthUrlResponse(url=f"https://accounts.example/auth?user={user_id}", state="s")

    async def get_status(self, user_id):
        return IntegrationStatusResponse(connected=True, google_email="clinic@example.com")

    async def disconnect(self, user_id):
        self.disconnected.append(user_id)


@pytest.fixture
def auth_service() -> FakeAuthService:
    return FakeAuthService()


@pytest_asyncio.fixture
async def connected(client: AsyncClient, google, auth_service) -> AsyncClient:
    """Client whose user has a connected calendar account."""
    app.dependency_overrides[get_google_auth_service] = lambda: auth_service
    app.dependency_overrides[get_calendar_client] = lambda: GoogleCalendarClient(
        TEST_TOKEN, http_client=httpx.AsyncClient(transport=httpx.MockTransport(google.handler))
    )
    return client


@pytest.mark.asyncio
async def test_auth_url(connected: AsyncClient, current_user) -> None:
    response = await connected.get(f"{BASE}/auth-url")

    assert response.status_code == 200
    assert str(current_user["id"]) in response.json()["url"]


@pytest.mark.asyncio
async def test_status_and_disconnect(connected: AsyncClient, auth_service, current_user) -> None:
    status = await connected.get(f"{BASE}/status")
    assert status.json() == {"connected": True, "google_email": "clinic@example.com"}

    response = await connected.post(f"{BASE}/disconnect")

    assert response.status_code == 204
    assert auth_service.disconnected == [current_user["id"]]


@pytest.mark.asyncio
async def test_create_list_and_delete_calendars(connected: AsyncClient, google) -> None:
    created = await connected.post(f"{BASE}/calendars", json={"summary": "Dr. Rafael"})
    assert created.status_code == 201
    calendar_id = created.json()["id"]

    listed = await connected.get(f"{BASE}/calendars")
    assert {c["id"] for c in listed.json()} == {"primary", calendar_id}

    deleted = await connected.delete(f"{BASE}/calendars/{calendar_id}")
    assert deleted.status_code == 204
    assert calendar_id not in google.calendars


@pytest.mark.asyncio
async def test_calendar_errors_are_translated(connected: AsyncClient, google) -> None:
    google.scripted = [401]
    rejected = await connected.get(f"{BASE}/calendars")
    assert rejected.status_code == 401
    assert rejected.json()["error"] == "CalendarReauthRequiredException"

    google.scripted = [503]
    unavailable = await connected.get(f"{BASE}/calendars")
    assert unavailable.status_code == 502


@pytest.mark.asyncio
async def test_calendars_without_connected_account(client: AsyncClient, auth_service) -> None:
    app.dependency_overrides[get_google_auth_service] = lambda: auth_service
    app.dependency_overrides[get_calendar_client] = lambda: None

    response = await client.get(f"{BASE}/calendars")

    assert response.status_code == 401
    assert response.json()["message"] == "No calendar account connected"


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert "database" not in data
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_detailed_health_reports_degraded_dependencies(client: AsyncClient, monkeypatch) -> None:
    from agenda.api.v1.endpoints import health

    async def up() -> bool:
        return True

    async def down() -> bool:
        return False

    monkeypatch.setattr(health, "check_database_connection", up)
    monkeypatch.setattr(health, "check_redis_connection", down)

    response = await client.get("/api/v1/health/detailed")

    data = response.json()
    assert data["status"] == "degraded"
    assert data["database"] == "healthy"
    assert data["redis"] == "unhealthy"

"""Google Calendar integration endpoints."""

from fastapi import APIRouter, Query, Response, status

from agenda.core.exceptions import CalendarReauthRequiredException, CalendarUnavailableException
from agenda.dependencies import CalendarClient, CurrentUser, GoogleAuth
from agenda.schemas.calendar import CalendarListEntry
from agenda.schemas.integrations import (
    AuthUrlResponse,
    CalendarCreateRequest,
    IntegrationStatusResponse,
    TokenExchangeRequest,
)
from agenda.services.google_calendar_client import (
    CalendarAuthError,
    CalendarError,
    GoogleCalendarClient,
)

router = APIRouter()


def _require_client(client: GoogleCalendarClient | None) -> GoogleCalendarClient:
    if client is None:
        raise CalendarReauthRequiredException("No calendar account connected")
    return client


def _translate(error: CalendarError) -> Exception:
    if isinstance(error, CalendarAuthError):
        return CalendarReauthRequiredException()
    return CalendarUnavailableException()


@router.get("/auth-url", response_model=AuthUrlResponse)
async def get_auth_url(
    current_user: CurrentUser,
    auth_service: GoogleAuth,
    redirect_uri: str | None = Query(None, description="Override the configured redirect URI"),
) -> AuthUrlResponse:
    """Get the Google consent URL for connecting a calendar account."""
    return auth_service.build_auth_url(current_user["id"], redirect_uri)


@router.post("/exchange", response_model=IntegrationStatusResponse)
async def exchange_code(
    data: TokenExchangeRequest,
    current_user: CurrentUser,
    auth_service: GoogleAuth,
) -> IntegrationStatusResponse:
    """Complete the consent flow with the authorization code."""
    return await auth_service.exchange_code(current_user, data.code, data.state, data.redirect_uri)


@router.get("/status", response_model=IntegrationStatusResponse)
async def get_status(current_user: CurrentUser, auth_service: GoogleAuth) -> IntegrationStatusResponse:
    """Report whether a usable calendar credential is stored."""
    return await auth_service.get_status(current_user["id"])


@router.post("/disconnect", status_code=status.HTTP_204_NO_CONTENT)
async def disconnect(current_user: CurrentUser, auth_service: GoogleAuth) -> Response:
    """Forget the stored calendar credential."""
    await auth_service.disconnect(current_user["id"])
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/calendars", response_model=list[CalendarListEntry])
async def list_calendars(current_user: CurrentUser, client: CalendarClient) -> list[CalendarListEntry]:
    """List calendars visible to the connected account."""
    try:
        return await _require_client(client).list_calendars()
    except CalendarError as e:
        raise _translate(e) from e


@router.post("/calendars", response_model=CalendarListEntry, status_code=status.HTTP_201_CREATED)
async def create_calendar(
    data: CalendarCreateRequest,
    current_user: CurrentUser,
    client: CalendarClient,
) -> CalendarListEntry:
    """Create a secondary calendar, e.g. for a new specialist."""
    try:
        return await _require_client(client).create_calendar(data.summary)
    except CalendarError as e:
        raise _translate(e) from e


@router.delete("/calendars/{calendar_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_calendar(
    calendar_id: str,
    current_user: CurrentUser,
    client: CalendarClient,
) -> Response:
    """Delete a secondary calendar."""
    try:
        await _require_client(client).delete_calendar(calendar_id)
    except CalendarError as e:
        raise _translate(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""Google Calendar v3 REST adapter."""

from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from agenda.config import settings
from agenda.schemas.calendar import CalendarEvent, CalendarListEntry

logger = structlog.get_logger()


class CalendarError(Exception):
    """Base error raised by the calendar adapter."""


class CalendarAuthError(CalendarError):
    """The bearer credential is missing, expired or revoked."""


class CalendarTransportError(CalendarError):
    """Network failure, provider error status or malformed response."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


def to_rfc3339(value: datetime) -> str:
    """Format an aware instant the way the provider expects (UTC, ``Z`` suffix)."""
    if value.utcoffset() is None:
        raise ValueError("Calendar time bounds must be timezone-aware")
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _segment(value: str) -> str:
    return quote(value, safe="")


class GoogleCalendarClient:
    """
    Thin async client over the Google Calendar REST API.

    A client is bound to one access token. When the token is ``None`` the
    listing operations return nothing without touching the network, and the
    mutating operations raise ``CalendarAuthError``.
    """

    PAGE_SIZE = 250

    def __init__(
        self,
        access_token: str | None,
        http_client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        """Initialize client with a bearer token and optional shared HTTP client."""
        self.access_token = access_token
        self.base_url = (base_url or settings.google_calendar_api_url).rstrip("/")
        self.timeout = timeout or settings.google_calendar_timeout
        self._http = http_client

    async def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        if not self.access_token:
            raise CalendarAuthError("No calendar credential available")

        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {self.access_token}"}

        try:
            if self._http is not None:
                response = await self._http.request(
                    method, url, params=params, json=json, headers=headers
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(
                        method, url, params=params, json=json, headers=headers
                    )
        except httpx.HTTPError as e:
            logger.warning("calendar_request_failed", method=method, path=path, error=str(e))
            raise CalendarTransportError(f"Calendar request failed: {e!s}") from e

        if response.status_code == 401:
            logger.warning("calendar_credential_rejected", method=method, path=path)
            raise CalendarAuthError("Calendar credential rejected")

        return response

    @staticmethod
    def _ensure_success(response: httpx.Response, allowed: tuple[int, ...] = ()) -> None:
        if response.is_success or response.status_code in allowed:
            return
        logger.warning(
            "calendar_request_rejected",
            status_code=response.status_code,
            body=response.text[:500],
        )
        raise CalendarTransportError(
            f"Calendar provider returned {response.status_code}",
            status_code=response.status_code,
        )

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise CalendarTransportError("Calendar provider returned non-JSON body") from e
        if not isinstance(data, dict):
            raise CalendarTransportError("Calendar provider returned unexpected body")
        return data

    @staticmethod
    def _event(data: dict[str, Any]) -> CalendarEvent:
        try:
            return CalendarEvent.model_validate(data)
        except ValidationError as e:
            raise CalendarTransportError(f"Calendar provider returned malformed event: {e}") from e

    async def _paginate(self, path: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        params = dict(params)
        while True:
            response = await self._send("GET", path, params=params)
            self._ensure_success(response)
            data = self._json(response)
            items.extend(data.get("items") or [])
            page_token = data.get("nextPageToken")
            if not page_token:
                return items
            params["pageToken"] = page_token

    async def list_events(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
    ) -> list[CalendarEvent]:
        """
        List single-occurrence events intersecting ``[start, end]``.

        Args:
            calendar_id: Remote calendar identifier
            start: Window start (aware)
            end: Window end (aware)

        Returns:
            Events ordered by start time; malformed entries are skipped
        """
        if not self.access_token:
            return []

        items = await self._paginate(
            f"/calendars/{_segment(calendar_id)}/events",
            {
                "timeMin": to_rfc3339(start),
                "timeMax": to_rfc3339(end),
                "singleEvents": "true",
                "orderBy": "startTime",
                "maxResults": str(self.PAGE_SIZE),
            },
        )

        events: list[CalendarEvent] = []
        for item in items:
            try:
                events.append(CalendarEvent.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    "calendar_event_skipped",
                    calendar_id=calendar_id,
                    event_id=item.get("id") if isinstance(item, dict) else None,
                    error=str(e),
                )
        return events

    async def create_event(self, calendar_id: str, event: CalendarEvent) -> CalendarEvent:
        """Create an event and return the provider's copy (with its id)."""
        response = await self._send(
            "POST",
            f"/calendars/{_segment(calendar_id)}/events",
            json=event.to_payload(),
        )
        self._ensure_success(response)
        return self._event(self._json(response))

    async def update_event(
        self,
        calendar_id: str,
        event_id: str,
        event: CalendarEvent,
    ) -> CalendarEvent:
        """Replace an event's fields."""
        response = await self._send(
            "PUT",
            f"/calendars/{_segment(calendar_id)}/events/{_segment(event_id)}",
            json=event.to_payload(),
        )
        self._ensure_success(response)
        return self._event(self._json(response))

    async def delete_event(self, calendar_id: str, event_id: str) -> None:
        """Delete an event. Already-deleted events count as success."""
        response = await self._send(
            "DELETE",
            f"/calendars/{_segment(calendar_id)}/events/{_segment(event_id)}",
        )
        self._ensure_success(response, allowed=(404, 410))

    async def list_calendars(self) -> list[CalendarListEntry]:
        """List calendars visible to the connected account."""
        if not self.access_token:
            return []

        items = await self._paginate("/users/me/calendarList", {})
        calendars = []
        for item in items:
            try:
                calendars.append(CalendarListEntry.model_validate(item))
            except ValidationError as e:
                logger.warning("calendar_entry_skipped", error=str(e))
        return calendars

    async def create_calendar(self, summary: str) -> CalendarListEntry:
        """Create a secondary calendar owned by the connected account."""
        response = await self._send("POST", "/calendars", json={"summary": summary})
        self._ensure_success(response)
        try:
            return CalendarListEntry.model_validate(self._json(response))
        except ValidationError as e:
            raise CalendarTransportError("Calendar provider returned malformed calendar") from e

    async def delete_calendar(self, calendar_id: str) -> None:
        """Delete a secondary calendar."""
        response = await self._send("DELETE", f"/calendars/{_segment(calendar_id)}")
        self._ensure_success(response, allowed=(404, 410))

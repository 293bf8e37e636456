"""Appointment scheduling against the local store and the remote calendars.

Reads merge the remote calendars (authoritative when reachable) with the local
store (always available). Writes are guarded by a two-stage overlap check, the
local store first and then the remote calendar, before being pushed to both.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from agenda.config import settings
from agenda.core.exceptions import (
    NotFoundException,
    SchedulingConflictException,
    ValidationException,
)
from agenda.schemas.appointments import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
    AppointmentWriteResponse,
    CalendarViewResponse,
    ConflictCheckRequest,
    ConflictCheckResponse,
    Notice,
    intervals_overlap,
)
from agenda.schemas.calendar import CalendarEvent, EventDateTime
from agenda.services import description_codec
from agenda.services.appointment_store import AppointmentStore
from agenda.services.description_codec import DescriptionFields
from agenda.services.google_calendar_client import (
    CalendarAuthError,
    CalendarError,
    CalendarTransportError,
    GoogleCalendarClient,
)

logger = structlog.get_logger()

TokenProvider = Callable[[], Awaitable[str | None]]
CalendarFactory = Callable[[str], GoogleCalendarClient]

LOCAL_ID_PREFIX = "local-"

REAUTH_NOTICE = Notice(
    code="calendar_reauth_required",
    message="Calendar access expired, reconnect your calendar account",
)
NOT_SYNCED_NOTICE = Notice(
    code="appointment_not_synced",
    message="Saved, but the calendar could not be updated",
)
NOT_CONNECTED_NOTICE = Notice(
    code="calendar_not_connected",
    message="Saved locally; no calendar account is connected",
)

# The provider treats "cancelled" events as deleted, so the appointment status
# travels in a private extended property and the event itself stays visible.
STATUS_PROPERTY = "agendaStatus"

_FROM_REMOTE_STATUS = {
    "confirmed": AppointmentStatus.CONFIRMED,
    "tentative": AppointmentStatus.PENDING,
    "cancelled": AppointmentStatus.CANCELLED,
}


def event_status(event: CalendarEvent) -> AppointmentStatus:
    """Appointment status of a remote event, preferring the private property."""
    private = event.private_property(STATUS_PROPERTY)
    if private in {status.value for status in AppointmentStatus}:
        return AppointmentStatus(private)
    return _FROM_REMOTE_STATUS.get(event.status or "", AppointmentStatus.CONFIRMED)


@dataclass(frozen=True)
class RemoteDeletion:
    """A remote event left to delete after the local row is gone."""

    calendar_id: str
    event_id: str
    access_token: str


def new_local_id() -> str:
    """Identifier for an appointment that has no remote event yet."""
    return f"{LOCAL_ID_PREFIX}{uuid4().hex}"


def event_to_appointment(
    event: CalendarEvent,
    calendar_id: str,
    specialist_id: UUID | None,
) -> Appointment:
    """
    Map a remote event to an appointment.

    Raises:
        ValueError: If the event has no id or an empty interval
    """
    if not event.id:
        raise ValueError("Remote event has no id")

    fields = description_codec.decode(event.description)
    return Appointment(
        id=event.id,
        google_event_id=event.id,
        calendar_id=calendar_id,
        specialist_id=specialist_id,
        title=event.summary,
        start=event.start.to_datetime(),
        end=event.end.to_datetime(),
        patient_name=fields.patient_name,
        patient_phone=fields.phone,
        description=event.description,
        status=event_status(event),
    )


def appointment_to_event(appointment: Appointment) -> CalendarEvent:
    """Map an appointment to the remote event body."""
    return CalendarEvent(
        summary=appointment.title,
        description=appointment.description,
        start=EventDateTime.from_datetime(appointment.start),
        end=EventDateTime.from_datetime(appointment.end),
        status="tentative" if appointment.status == AppointmentStatus.PENDING else "confirmed",
        extended_properties={"private": {STATUS_PROPERTY: appointment.status.value}},
    )


class CalendarSyncService:
    """Service reconciling appointments between the local store and remote calendars."""

    def __init__(
        self,
        store: AppointmentStore,
        token_provider: TokenProvider,
        calendar_factory: CalendarFactory = GoogleCalendarClient,
        delete_attempts: int | None = None,
        delete_backoff: float | None = None,
    ):
        """
        Initialize service.

        Args:
            store: Local appointment store
            token_provider: Returns the caller's calendar access token or None
            calendar_factory: Builds a calendar client for a token
            delete_attempts: Attempts for background remote deletion
            delete_backoff: Exponential backoff multiplier in seconds
        """
        self.store = store
        self.token_provider = token_provider
        self.calendar_factory = calendar_factory
        self.delete_attempts = delete_attempts or settings.remote_delete_max_attempts
        self.delete_backoff = (
            settings.remote_delete_backoff_seconds if delete_backoff is None else delete_backoff
        )

    async def _calendar(self) -> GoogleCalendarClient | None:
        token = await self.token_provider()
        if not token:
            return None
        return self.calendar_factory(token)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    @staticmethod
    async def _list_remote(
        client: GoogleCalendarClient,
        calendar_id: str,
        start: datetime,
        end: datetime,
    ) -> list[CalendarEvent] | CalendarError:
        try:
            return await client.list_events(calendar_id, start, end)
        except CalendarError as e:
            logger.warning(
                "calendar_fetch_failed",
                calendar_id=calendar_id,
                error=str(e),
                reauth_required=isinstance(e, CalendarAuthError),
            )
            return e

    @staticmethod
    def _map_events(
        events: Sequence[CalendarEvent],
        calendar_id: str,
        specialist_id: UUID | None,
    ) -> list[Appointment]:
        mapped = []
        for event in events:
            try:
                mapped.append(event_to_appointment(event, calendar_id, specialist_id))
            except (ValueError, ValidationError) as e:
                logger.warning(
                    "calendar_event_unmappable",
                    calendar_id=calendar_id,
                    event_id=event.id,
                    error=str(e),
                )
        return mapped

    async def fetch_events(
        self,
        start: datetime,
        end: datetime,
        calendars: Mapping[str, UUID | None],
    ) -> CalendarViewResponse:
        """
        Build the appointment view for a window.

        Args:
            start: Window start
            end: Window end
            calendars: Calendar id to owning specialist id (None when unassigned)

        Returns:
            Remote events of every calendar that answered, plus local
            appointments the remote side cannot account for: those never
            pushed and those on calendars that could not be read.
        """
        if end <= start:
            raise ValidationException("Window end must be after its start", field="end")

        calendar_ids = list(calendars)
        local = await self.store.fetch_in_range(start, end, calendar_ids)

        client = await self._calendar()
        if client is None or not calendar_ids:
            return CalendarViewResponse(items=local, source="local")

        outcomes = await asyncio.gather(
            *(self._list_remote(client, calendar_id, start, end) for calendar_id in calendar_ids)
        )

        remote: list[Appointment] = []
        answered: set[str] = set()
        reauth_required = False
        for calendar_id, outcome in zip(calendar_ids, outcomes):
            if isinstance(outcome, CalendarAuthError):
                reauth_required = True
            elif isinstance(outcome, CalendarError):
                continue
            else:
                answered.add(calendar_id)
                remote.extend(self._map_events(outcome, calendar_id, calendars[calendar_id]))

        remote_ids = {appointment.id for appointment in remote}
        # Synced rows an answered calendar no longer lists were deleted remotely
        vanished = [
            appointment.id
            for appointment in local
            if appointment.is_synced
            and appointment.calendar_id in answered
            and appointment.id not in remote_ids
        ]
        if remote or vanished:
            try:
                await self.store.delete_by_ids(vanished)
                await self.store.upsert(remote)
            except SQLAlchemyError as e:
                logger.error(
                    "calendar_cache_write_failed",
                    count=len(remote),
                    vanished=len(vanished),
                    error=str(e),
                )
                await self.store.rollback()
            else:
                if vanished:
                    logger.info("calendar_cache_pruned", count=len(vanished))

        items = remote + [
            appointment
            for appointment in local
            if appointment.id not in remote_ids
            and (not appointment.is_synced or appointment.calendar_id not in answered)
        ]
        items.sort(key=lambda appointment: (appointment.start, appointment.id))

        if not answered:
            source = "local"
        elif len(answered) == len(calendar_ids):
            source = "remote"
        else:
            source = "mixed"

        notices = []
        if reauth_required:
            logger.warning("calendar_reauth_required")
            notices.append(REAUTH_NOTICE)

        return CalendarViewResponse(items=items, source=source, notices=notices)

    # ------------------------------------------------------------------
    # Conflict detection
    # ------------------------------------------------------------------

    async def _check_conflicts(
        self,
        client: GoogleCalendarClient | None,
        calendar_id: str,
        start: datetime,
        end: datetime,
        exclude_ids: frozenset[str] = frozenset(),
    ) -> bool:
        """
        Reject ``[start, end)`` if it overlaps a live appointment.

        Returns:
            True if the remote calendar was consulted, False if only the
            local store could be checked

        Raises:
            SchedulingConflictException: If either source holds an overlap
        """
        collision = await self.store.find_overlapping(calendar_id, start, end, exclude_ids)
        if collision is not None:
            raise SchedulingConflictException(
                collision.title, collision.start, collision.end, collision.id, source="local"
            )

        if client is None:
            logger.info("remote_conflict_check_skipped", calendar_id=calendar_id, reason="no_credential")
            return False

        try:
            events = await client.list_events(calendar_id, start, end)
        except CalendarError as e:
            logger.warning(
                "remote_conflict_check_skipped",
                calendar_id=calendar_id,
                reason="credential_rejected" if isinstance(e, CalendarAuthError) else "unavailable",
                error=str(e),
            )
            return False

        for event in events:
            if event_status(event) == AppointmentStatus.CANCELLED or event.id in exclude_ids:
                continue
            event_start = event.start.to_datetime()
            event_end = event.end.to_datetime()
            if intervals_overlap(event_start, event_end, start, end):
                raise SchedulingConflictException(
                    event.summary, event_start, event_end, event.id, source="remote"
                )
        return True

    async def check_availability(self, request: ConflictCheckRequest) -> ConflictCheckResponse:
        """Dry-run conflict check without writing anything."""
        client = await self._calendar()
        exclude = frozenset([request.exclude_id]) if request.exclude_id else frozenset()
        try:
            remote_checked = await self._check_conflicts(
                client, request.calendar_id, request.start, request.end, exclude
            )
        except SchedulingConflictException as e:
            return ConflictCheckResponse(
                available=False,
                remote_checked=e.source == "remote",
                conflict=e.extra_content()["conflict"],
            )
        return ConflictCheckResponse(available=True, remote_checked=remote_checked)

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def _push(
        self,
        client: GoogleCalendarClient | None,
        draft: Appointment,
        previous: Appointment | None,
        notices: list[Notice],
    ) -> Appointment:
        if client is None:
            notices.append(NOT_CONNECTED_NOTICE)
            return draft

        event = appointment_to_event(draft)
        try:
            if previous is not None and previous.google_event_id:
                remote = await client.update_event(draft.calendar_id, previous.google_event_id, event)
            else:
                remote = await client.create_event(draft.calendar_id, event)
        except CalendarAuthError as e:
            logger.warning(
                "calendar_write_skipped",
                appointment_id=draft.id,
                reason="credential_rejected",
                error=str(e),
            )
            notices.append(REAUTH_NOTICE)
            return draft
        except CalendarTransportError as e:
            logger.warning(
                "calendar_write_skipped",
                appointment_id=draft.id,
                reason="unavailable",
                error=str(e),
            )
            notices.append(NOT_SYNCED_NOTICE)
            return draft

        if not remote.id:
            notices.append(NOT_SYNCED_NOTICE)
            return draft
        return draft.model_copy(update={"id": remote.id, "google_event_id": remote.id})

    async def _write(
        self,
        draft: Appointment,
        previous: Appointment | None = None,
    ) -> AppointmentWriteResponse:
        client = await self._calendar()
        exclude: frozenset[str] = frozenset()
        if previous is not None:
            exclude = frozenset(filter(None, [previous.id, previous.google_event_id]))

        notices: list[Notice] = []
        await self.store.lock_calendar(draft.calendar_id)
        try:
            if draft.status != AppointmentStatus.CANCELLED:
                remote_checked = await self._check_conflicts(
                    client, draft.calendar_id, draft.start, draft.end, exclude
                )
                if client is not None and not remote_checked:
                    logger.warning("appointment_written_with_local_check_only", appointment_id=draft.id)

            saved = await self._push(client, draft, previous, notices)
            if previous is not None and previous.id != saved.id:
                await self.store.replace(previous.id, saved)
            else:
                await self.store.upsert([saved])
        except Exception:
            await self.store.rollback()
            raise

        logger.info(
            "appointment_saved",
            appointment_id=saved.id,
            calendar_id=saved.calendar_id,
            synced=saved.is_synced,
        )
        # A notice may be raised twice (e.g. reauth); report it once
        unique = list({notice.code: notice for notice in notices}.values())
        return AppointmentWriteResponse(appointment=saved, synced=saved.is_synced, notices=unique)

    async def create_appointment(
        self,
        data: AppointmentCreate,
        calendar_id: str,
    ) -> AppointmentWriteResponse:
        """
        Book a new appointment on ``calendar_id``.

        Raises:
            SchedulingConflictException: If the slot is taken
        """
        end = data.end or data.start + timedelta(minutes=settings.default_appointment_minutes)
        description = description_codec.encode(
            DescriptionFields(
                patient_name=data.patient_name,
                phone=data.patient_phone,
                notes=data.notes,
            )
        )
        draft = Appointment(
            id=new_local_id(),
            title=data.title,
            start=data.start,
            end=end,
            specialist_id=data.specialist_id,
            calendar_id=calendar_id,
            patient_name=data.patient_name,
            patient_phone=data.patient_phone,
            description=description,
            status=data.status,
        )
        return await self._write(draft)

    async def _get_or_404(self, appointment_id: str) -> Appointment:
        appointment = await self.store.get(appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        return appointment

    async def update_appointment(
        self,
        appointment_id: str,
        data: AppointmentUpdate,
    ) -> AppointmentWriteResponse:
        """
        Edit an appointment. Moving only the start keeps the duration.

        Raises:
            NotFoundException: If appointment not found
            ValidationException: If the resulting interval is empty
            SchedulingConflictException: If the new slot is taken
        """
        current = await self._get_or_404(appointment_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        start = changes.get("start", current.start)
        if "end" in changes:
            end = changes["end"]
        else:
            end = start + (current.end - current.start)
        if end <= start:
            raise ValidationException("End time must be after start time", field="end")

        patient_name = changes.get("patient_name", current.patient_name)
        patient_phone = changes.get("patient_phone", current.patient_phone)
        description = current.description
        if changes.keys() & {"patient_name", "patient_phone", "notes"}:
            # Free text written outside the app survives as the notes field
            if description_codec.has_labels(current.description):
                existing_notes = description_codec.decode(current.description).notes
            else:
                existing_notes = current.description or ""
            description = description_codec.encode(
                DescriptionFields(
                    patient_name=patient_name,
                    phone=patient_phone,
                    notes=changes.get("notes", existing_notes),
                )
            )

        updates: dict[str, Any] = {
            "title": changes.get("title", current.title),
            "start": start,
            "end": end,
            "patient_name": patient_name,
            "patient_phone": patient_phone,
            "description": description,
            "status": changes.get("status", current.status),
        }
        draft = Appointment(**{**current.model_dump(), **updates})
        return await self._write(draft, previous=current)

    async def update_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
    ) -> AppointmentWriteResponse:
        """Set the status tag. Leaving ``cancelled`` re-runs the conflict check."""
        return await self.update_appointment(appointment_id, AppointmentUpdate(status=status))

    async def delete_appointment(self, appointment_id: str) -> RemoteDeletion | None:
        """
        Delete the local row now and describe the remote deletion still owed.

        Returns:
            The remote deletion to run after the response, or None when the
            appointment was never pushed or no credential is available
        """
        current = await self._get_or_404(appointment_id)
        await self.store.delete_by_id(appointment_id)
        logger.info("appointment_deleted", appointment_id=appointment_id)

        if not current.google_event_id:
            return None

        token = await self.token_provider()
        if not token:
            logger.warning(
                "remote_delete_skipped",
                appointment_id=appointment_id,
                reason="no_credential",
            )
            return None
        return RemoteDeletion(
            calendar_id=current.calendar_id,
            event_id=current.google_event_id,
            access_token=token,
        )

    async def purge_remote_event(self, deletion: RemoteDeletion) -> bool:
        """
        Delete a remote event, retrying transport failures with backoff.

        Runs detached from the request; failures are logged, never raised.
        """
        client = self.calendar_factory(deletion.access_token)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.delete_attempts),
                wait=wait_exponential(multiplier=self.delete_backoff),
                retry=retry_if_exception_type(CalendarTransportError),
                reraise=True,
            ):
                with attempt:
                    await client.delete_event(deletion.calendar_id, deletion.event_id)
        except CalendarAuthError as e:
            logger.warning(
                "remote_delete_failed",
                event_id=deletion.event_id,
                reason="credential_rejected",
                error=str(e),
            )
            return False
        except CalendarError as e:
            logger.error(
                "remote_delete_failed",
                event_id=deletion.event_id,
                reason="unavailable",
                attempts=self.delete_attempts,
                error=str(e),
            )
            return False

        logger.info("remote_event_deleted", calendar_id=deletion.calendar_id, event_id=deletion.event_id)
        return True

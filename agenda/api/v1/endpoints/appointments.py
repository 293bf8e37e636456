"""Appointment endpoints."""

from datetime import UTC, datetime
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status

from agenda.api.v1.endpoints.specialists import get_specialist_service
from agenda.config import settings
from agenda.core.exceptions import BadRequestException, NotFoundException, ValidationException
from agenda.dependencies import (
    CalendarSync,
    CanCreate,
    CanDelete,
    CanEdit,
    CurrentUser,
    DatabaseSession,
)
from agenda.schemas.appointments import (
    AppointmentCreate,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    AppointmentWriteResponse,
    CalendarViewResponse,
    ConflictCheckRequest,
    ConflictCheckResponse,
)
from agenda.services.specialist_service import SpecialistService

router = APIRouter()


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


@router.get(
    "/",
    response_model=CalendarViewResponse,
    status_code=status.HTTP_200_OK,
    summary="List appointments in a window",
)
async def list_appointments(
    current_user: CurrentUser,
    db: DatabaseSession,
    sync_service: CalendarSync,
    start: datetime = Query(..., description="Window start (naive values are read as UTC)"),
    end: datetime = Query(..., description="Window end (naive values are read as UTC)"),
    specialist_id: UUID | None = Query(None, description="Only this specialist's calendar"),
    specialist_service: SpecialistService = Depends(get_specialist_service),
) -> CalendarViewResponse:
    """
    List appointments intersecting ``[start, end)``.

    Remote calendars are read when a calendar account is connected; otherwise,
    or for calendars that cannot be reached, saved appointments are returned.
    """
    start, end = _as_utc(start), _as_utc(end)
    if end <= start:
        raise ValidationException("end must be after start", field="end")

    if specialist_id is not None:
        specialist = await specialist_service.get_specialist_by_id(db, specialist_id)
        if not specialist:
            raise NotFoundException("Specialist not found")
        calendars = {specialist["calendar_id"]: specialist_id} if specialist["calendar_id"] else {}
    else:
        owners = await specialist_service.get_calendar_owners(db)
        calendars = {settings.default_calendar_id: None, **owners}

    return await sync_service.fetch_events(start, end, calendars)


@router.post(
    "/",
    response_model=AppointmentWriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    current_user: CanCreate,
    db: DatabaseSession,
    sync_service: CalendarSync,
    specialist_service: SpecialistService = Depends(get_specialist_service),
) -> AppointmentWriteResponse:
    """
    Book an appointment on a specialist's calendar (or an explicit calendar).

    Responds 409 with the colliding appointment when the slot is taken.
    """
    if data.calendar_id is not None:
        calendar_id = data.calendar_id
        if data.specialist_id is None:
            owners = await specialist_service.get_calendar_owners(db)
            data = data.model_copy(update={"specialist_id": owners.get(calendar_id)})
        else:
            specialist = await specialist_service.get_specialist_by_id(db, data.specialist_id)
            if not specialist:
                raise NotFoundException("Specialist not found")
            if specialist["calendar_id"] != calendar_id:
                raise BadRequestException("Calendar does not belong to the specialist")
    else:
        specialist = await specialist_service.get_specialist_by_id(db, data.specialist_id)
        if not specialist:
            raise NotFoundException("Specialist not found")
        if not specialist["calendar_id"]:
            raise BadRequestException("Specialist has no linked calendar")
        calendar_id = specialist["calendar_id"]

    return await sync_service.create_appointment(data, calendar_id)


@router.post(
    "/conflicts",
    response_model=ConflictCheckResponse,
    status_code=status.HTTP_200_OK,
    summary="Check a slot without booking",
)
async def check_conflicts(
    data: ConflictCheckRequest,
    current_user: CurrentUser,
    sync_service: CalendarSync,
) -> ConflictCheckResponse:
    """Report whether a slot is free on a calendar."""
    return await sync_service.check_availability(data)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentWriteResponse,
    status_code=status.HTTP_200_OK,
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    current_user: CanEdit,
    sync_service: CalendarSync,
) -> AppointmentWriteResponse:
    """Edit an appointment's details or reschedule it."""
    return await sync_service.update_appointment(appointment_id, data)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentWriteResponse,
    status_code=status.HTTP_200_OK,
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: str,
    data: AppointmentStatusUpdate,
    current_user: CanEdit,
    sync_service: CalendarSync,
) -> AppointmentWriteResponse:
    """Set an appointment to confirmed, pending or cancelled."""
    return await sync_service.update_status(appointment_id, data.status)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: str,
    current_user: CanDelete,
    sync_service: CalendarSync,
    background_tasks: BackgroundTasks,
) -> Response:
    """
    Delete an appointment.

    The saved appointment is removed immediately; its calendar event is
    removed after the response is sent.
    """
    deletion = await sync_service.delete_appointment(appointment_id)
    if deletion is not None:
        background_tasks.add_task(sync_service.purge_remote_event, deletion)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

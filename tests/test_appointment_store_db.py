"""Tests for the appointment store against a PostgreSQL test database."""

import pytest
from conftest import at, make_appointment
from sqlalchemy import func, select

from agenda.models.appointments import appointments
from agenda.schemas.appointments import AppointmentStatus
from agenda.services.appointment_store import AppointmentStore

PRIMARY = "primary"


async def count_rows(db_session) -> int:
    return (await db_session.execute(select(func.count()).select_from(appointments))).scalar_one()


@pytest.mark.asyncio
async def test_back_to_back_intervals_do_not_overlap(db_session):
    store = AppointmentStore(db_session)
    booked = make_appointment(start=at(9), end=at(9, 30))
    await store.upsert([booked])

    assert await store.find_overlapping(PRIMARY, at(9, 30), at(10)) is None
    assert await store.find_overlapping(PRIMARY, at(8, 30), at(9)) is None
    assert (await store.find_overlapping(PRIMARY, at(9, 29), at(10))).id == booked.id
    assert await store.fetch_in_range(at(9, 30), at(10)) == []
    assert [a.id for a in await store.fetch_in_range(at(9), at(9, 1))] == [booked.id]


@pytest.mark.asyncio
async def test_overlap_ignores_cancelled_excluded_and_other_calendars(db_session):
    store = AppointmentStore(db_session)
    cancelled = make_appointment(status=AppointmentStatus.CANCELLED)
    other_calendar = make_appointment(calendar_id="derm@group.calendar.google.com")
    live = make_appointment(start=at(10), end=at(10, 30))
    await store.upsert([cancelled, other_calendar, live])

    assert await store.find_overlapping(PRIMARY, at(9), at(9, 30)) is None
    assert await store.find_overlapping(PRIMARY, at(10), at(11), exclude_ids=[live.id]) is None
    assert (await store.find_overlapping(PRIMARY, at(9), at(11))).id == live.id


@pytest.mark.asyncio
async def test_replaying_remote_events_does_not_duplicate_rows(db_session):
    store = AppointmentStore(db_session)
    synced = make_appointment(id="evt1", google_event_id="evt1")

    await store.upsert([synced])
    await store.upsert([synced.model_copy(update={"title": "Retorno"}), synced])
    await store.upsert([synced.model_copy(update={"title": "Retorno"})])

    assert await count_rows(db_session) == 1
    assert (await store.get("evt1")).title == "Retorno"


@pytest.mark.asyncio
async def test_replace_swaps_local_row_for_synced_copy(db_session):
    store = AppointmentStore(db_session)
    local = make_appointment()
    await store.upsert([local])

    synced = local.model_copy(update={"id": "evt9", "google_event_id": "evt9"})
    await store.replace(local.id, synced)

    assert await store.get(local.id) is None
    stored = await store.get("evt9")
    assert stored.is_synced
    assert (stored.start, stored.end) == (local.start, local.end)


@pytest.mark.asyncio
async def test_delete_by_ids(db_session):
    store = AppointmentStore(db_session)
    rows = [
        make_appointment(id="a", google_event_id="a"),
        make_appointment(id="b", google_event_id="b", start=at(10), end=at(10, 30)),
        make_appointment(id="c", google_event_id="c", start=at(11), end=at(11, 30)),
    ]
    await store.upsert(rows)

    assert await store.delete_by_ids(["a", "c", "missing"]) == 2
    assert await store.delete_by_ids([]) == 0
    assert [a.id for a in await store.fetch_in_range(at(0), at(23))] == ["b"]


@pytest.mark.asyncio
async def test_calendar_lock_is_released_on_rollback(db_session):
    store = AppointmentStore(db_session)

    await store.lock_calendar(PRIMARY)
    await store.rollback()
    await store.lock_calendar(PRIMARY)
    await store.upsert([make_appointment()])

    assert await count_rows(db_session) == 1

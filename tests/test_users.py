"""Tests for dashboard users, write permissions and the clinic settings."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from conftest import at
from httpx import AsyncClient
from pydantic import ValidationError
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError

from agenda.core.exceptions import ConflictException, ForbiddenException, NotFoundException
from agenda.schemas.company import BusinessDay, CompanySettingsUpdate, Weekday
from agenda.schemas.users import UserCreate, UserUpdate
from agenda.services.company_service import CompanyService
from agenda.services.user_service import UserService

APPOINTMENTS = "/api/v1/appointments/"


def fake_db(*results) -> MagicMock:
    """Session whose successive ``execute`` calls return ``results`` in order."""
    db = MagicMock()
    db.execute = AsyncMock(side_effect=list(results))
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


def first(row: dict | None) -> MagicMock:
    result = MagicMock()
    result.mappings.return_value.first.return_value = row
    return result


def stored_user(**overrides) -> dict:
    user = {
        "id": uuid4(),
        "email": "desk@clinic.example",
        "full_name": "Front Desk",
        "role": "user",
        "is_active": True,
        "can_create": True,
        "can_edit": True,
        "can_delete": False,
        "google_email": None,
        "created_at": datetime(2026, 10, 1, tzinfo=UTC),
    }
    user.update(overrides)
    return user


def booking(**overrides) -> dict:
    data = {
        "title": "Avaliação",
        "calendar_id": "primary",
        "start": at(9).isoformat(),
        "end": at(9, 30).isoformat(),
        "patient_name": "Ana",
    }
    data.update(overrides)
    return data


# ============================================================================
# Write permissions
# ============================================================================


@pytest.mark.asyncio
async def test_user_without_create_permission_cannot_book(
    client: AsyncClient, current_user, google
) -> None:
    current_user.update(role="user", can_create=False)

    response = await client.post(APPOINTMENTS, json=booking())

    assert response.status_code == 403
    assert response.json()["message"] == "You do not have permission to perform this action"
    assert google.calls("POST") == []


@pytest.mark.asyncio
async def test_user_with_create_permission_can_book(client: AsyncClient, current_user) -> None:
    current_user.update(role="user", can_create=True, can_delete=False)

    response = await client.post(APPOINTMENTS, json=booking())

    assert response.status_code == 201


@pytest.mark.asyncio
async def test_delete_needs_delete_permission(client: AsyncClient, current_user, store) -> None:
    created = await client.post(APPOINTMENTS, json=booking())
    appointment_id = created.json()["appointment"]["id"]
    current_user.update(role="user", can_edit=True, can_delete=False)

    denied = await client.delete(f"{APPOINTMENTS}{appointment_id}")
    edited = await client.patch(
        f"{APPOINTMENTS}{appointment_id}/status", json={"status": "pending"}
    )

    assert denied.status_code == 403
    assert appointment_id in store.rows
    assert edited.status_code == 200


@pytest.mark.asyncio
async def test_listing_needs_no_write_permission(client: AsyncClient, current_user) -> None:
    current_user.update(role="user", can_create=False, can_edit=False, can_delete=False)

    response = await client.get(
        APPOINTMENTS, params={"start": at(0).isoformat(), "end": at(23).isoformat()}
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_user_and_company_management_is_admin_only(
    client: AsyncClient, current_user
) -> None:
    current_user.update(role="user")

    users = await client.get("/api/v1/users/")
    company = await client.put("/api/v1/company/", json={"name": "Clínica Sorriso"})

    assert users.status_code == 403
    assert company.status_code == 403
    assert users.json()["message"] == "Admin access required"


# ============================================================================
# User service
# ============================================================================


@pytest.mark.asyncio
async def test_create_user_defaults_to_user_role():
    db = fake_db(first(stored_user()))

    user = await UserService(db).create_user(UserCreate(email="desk@clinic.example"))

    assert user["role"] == "user"
    compiled = db.execute.call_args.args[0].compile(dialect=postgresql.dialect())
    assert compiled.params["role"] == "user"
    assert compiled.params["can_delete"] is False
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_user_with_taken_email():
    db = fake_db(IntegrityError("INSERT", {}, Exception("duplicate key")))

    with pytest.raises(ConflictException):
        await UserService(db).create_user(UserCreate(email="desk@clinic.example"))
    db.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_user_permissions():
    user = stored_user(can_delete=True)
    db = fake_db(first(user))

    updated = await UserService(db).update_user(user["id"], UserUpdate(can_delete=True))

    assert updated["can_delete"] is True
    compiled = db.execute.call_args.args[0].compile(dialect=postgresql.dialect())
    assert compiled.params["can_delete"] is True
    assert "role" not in compiled.params


@pytest.mark.asyncio
async def test_update_missing_user():
    db = fake_db(first(None))

    with pytest.raises(NotFoundException):
        await UserService(db).update_user(uuid4(), UserUpdate(full_name="X"))


@pytest.mark.asyncio
async def test_main_admin_cannot_be_deleted():
    admin = stored_user(role="admin")
    db = fake_db(first(admin))

    with pytest.raises(ForbiddenException):
        await UserService(db).delete_user(admin["id"])
    assert db.execute.await_count == 1
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_regular_user_is_deleted():
    user = stored_user()
    db = fake_db(first(user), MagicMock())

    await UserService(db).delete_user(user["id"])

    assert db.execute.await_count == 2
    db.commit.assert_awaited_once()


# ============================================================================
# Company settings
# ============================================================================


@pytest.mark.asyncio
async def test_settings_default_to_weekday_hours():
    settings = await CompanyService(fake_db(first(None))).get_settings()

    open_days = [d.day for d in settings.business_hours if d.open]
    assert settings.name == ""
    assert open_days == [
        Weekday.MONDAY,
        Weekday.TUESDAY,
        Weekday.WEDNESDAY,
        Weekday.THURSDAY,
        Weekday.FRIDAY,
    ]


@pytest.mark.asyncio
async def test_update_settings_merges_into_the_stored_row():
    stored = {
        "id": 1,
        "name": "Clínica Sorriso",
        "whatsapp_phone": "5511999999999",
        "address": "Rua A, 1",
        "business_hours": [{"day": "saturday", "open": True, "start": "08:00", "end": "12:00"}],
        "updated_at": datetime(2026, 10, 1, tzinfo=UTC),
    }
    db = fake_db(first(stored), MagicMock())

    settings = await CompanyService(db).update_settings(CompanySettingsUpdate(address="Rua B, 2"))

    assert settings.name == "Clínica Sorriso"
    assert settings.address == "Rua B, 2"
    assert [d.day for d in settings.business_hours] == [Weekday.SATURDAY]
    upsert = str(db.execute.call_args.args[0].compile(dialect=postgresql.dialect()))
    assert "ON CONFLICT (id) DO UPDATE" in upsert
    db.commit.assert_awaited_once()


def test_open_day_must_close_after_opening():
    with pytest.raises(ValidationError):
        BusinessDay(day=Weekday.MONDAY, open=True, start="18:00", end="08:00")

    # A closed day keeps whatever hours it was given
    assert BusinessDay(day=Weekday.SUNDAY, open=False, start="18:00", end="08:00")


@pytest.mark.parametrize("value", ["8:00", "24:00", "08:60", "noon"])
def test_hours_use_hhmm(value):
    with pytest.raises(ValidationError):
        BusinessDay(day=Weekday.MONDAY, start=value)


def test_weekday_listed_twice_is_rejected():
    with pytest.raises(ValidationError):
        CompanySettingsUpdate(
            business_hours=[
                BusinessDay(day=Weekday.MONDAY, open=True),
                BusinessDay(day=Weekday.MONDAY, open=False),
            ]
        )

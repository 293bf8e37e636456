"""Dashboard user management endpoints (admin only)."""

from uuid import UUID

from fastapi import APIRouter, Response, status

from agenda.dependencies import AdminUser, CurrentUser, DatabaseSession
from agenda.schemas.users import UserCreate, UserResponse, UserUpdate
from agenda.services.user_service import UserService

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser, db: DatabaseSession):
    """Get the authenticated user's profile and permissions."""
    return await UserService(db).get_user(current_user["id"])


@router.get("/", response_model=list[UserResponse])
async def list_users(admin_user: AdminUser, db: DatabaseSession):
    """List dashboard users, admins first."""
    return await UserService(db).list_users()


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(data: UserCreate, admin_user: AdminUser, db: DatabaseSession):
    """
    Add a dashboard user.

    - **email**: Login email (unique)
    - **role**: ``admin`` or ``user``
    - **can_create** / **can_edit** / **can_delete**: Write permissions of a ``user``
    """
    return await UserService(db).create_user(data)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    admin_user: AdminUser,
    db: DatabaseSession,
):
    """Update a user's name, role, active flag or permissions."""
    return await UserService(db).update_user(user_id, data)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: UUID, admin_user: AdminUser, db: DatabaseSession) -> Response:
    """Remove a user. Administrators cannot be removed."""
    await UserService(db).delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

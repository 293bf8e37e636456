"""FastAPI dependencies."""

from collections.abc import Awaitable, Callable
from functools import partial
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.redis_client import CacheManager, get_redis_client
from agenda.core.security import decode_access_token
from agenda.database import get_db
from agenda.models.users import users
from agenda.services.appointment_store import AppointmentStore
from agenda.services.calendar_sync_service import CalendarSyncService
from agenda.services.google_auth_service import GoogleAuthService
from agenda.services.google_calendar_client import GoogleCalendarClient

logger = structlog.get_logger()

# Security
security = HTTPBearer()


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _credentials_error()

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise _credentials_error()

    try:
        return UUID(user_id_str)
    except ValueError:
        raise _credentials_error("Invalid user ID format") from None


async def get_current_user(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """
    Get current dashboard user from database.

    Raises:
        HTTPException: If user not found or inactive
    """
    query = select(
        users.c.id,
        users.c.email,
        users.c.full_name,
        users.c.role,
        users.c.is_active,
        users.c.can_create,
        users.c.can_edit,
        users.c.can_delete,
    ).where(users.c.id == user_id)
    result = await db.execute(query)
    user = result.mappings().first()

    if not user:
        raise _credentials_error("User not found")

    if not user["is_active"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    return dict(user)


def get_cache_manager() -> CacheManager:
    """Get cache manager bound to the shared Redis client."""
    return CacheManager(get_redis_client())


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
Cache = Annotated[CacheManager, Depends(get_cache_manager)]


async def require_admin(current_user: CurrentUser) -> dict:
    """
    Dependency to ensure current user has admin role.

    Raises:
        HTTPException: If user is not admin
    """
    if current_user.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


AdminUser = Annotated[dict, Depends(require_admin)]


def require_permission(permission: str) -> Callable[[dict], Awaitable[dict]]:
    """
    Build a dependency that lets through admins and users holding ``permission``.

    Args:
        permission: One of ``can_create``, ``can_edit``, ``can_delete``
    """

    async def check(current_user: CurrentUser) -> dict:
        if current_user.get("role") == "admin" or current_user.get(permission):
            return current_user
        logger.info("permission_denied", user_id=str(current_user["id"]), permission=permission)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to perform this action",
        )

    return check


CanCreate = Annotated[dict, Depends(require_permission("can_create"))]
CanEdit = Annotated[dict, Depends(require_permission("can_edit"))]
CanDelete = Annotated[dict, Depends(require_permission("can_delete"))]


def get_google_auth_service(db: DatabaseSession, cache: Cache) -> GoogleAuthService:
    """Get Google credential service instance."""
    return GoogleAuthService(db, cache_manager=cache)


GoogleAuth = Annotated[GoogleAuthService, Depends(get_google_auth_service)]


def get_calendar_sync_service(
    db: DatabaseSession,
    current_user: CurrentUser,
    auth_service: GoogleAuth,
) -> CalendarSyncService:
    """Get scheduling service acting with the current user's calendar credential."""
    return CalendarSyncService(
        AppointmentStore(db),
        token_provider=partial(auth_service.get_provider_token, current_user["id"]),
    )


CalendarSync = Annotated[CalendarSyncService, Depends(get_calendar_sync_service)]


async def get_calendar_client(
    current_user: CurrentUser,
    auth_service: GoogleAuth,
) -> GoogleCalendarClient | None:
    """Get a calendar client for the current user, or None when no account is connected."""
    token = await auth_service.get_provider_token(current_user["id"])
    return GoogleCalendarClient(token) if token else None


CalendarClient = Annotated[GoogleCalendarClient | None, Depends(get_calendar_client)]

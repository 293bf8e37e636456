"""Google OAuth credential management and the calendar token provider."""

from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlencode
from uuid import UUID

import httpx
import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.config import settings
from agenda.core.exceptions import BadRequestException
from agenda.core.redis_client import CacheManager
from agenda.core.security import create_oauth_state, verify_oauth_state
from agenda.models.users import users
from agenda.schemas.integrations import AuthUrlResponse, IntegrationStatusResponse

logger = structlog.get_logger()


class GoogleAuthService:
    """Connects a dashboard user to Google Calendar and hands out access tokens."""

    def __init__(
        self,
        db: AsyncSession,
        cache_manager: CacheManager | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize service with database session and optional cache/HTTP client."""
        self.db = db
        self.cache = cache_manager
        self._http = http_client

    @staticmethod
    def _get_token_cache_key(user_id: UUID) -> str:
        """Generate cache key for a user's access token."""
        return f"google_token:{user_id}"

    def _cache_token(self, user_id: UUID, token: str, expires_at: datetime) -> None:
        if not self.cache:
            return
        margin = timedelta(seconds=settings.token_refresh_margin_seconds)
        ttl = int((expires_at - margin - datetime.now(UTC)).total_seconds())
        if ttl > 0:
            self.cache.set(self._get_token_cache_key(user_id), token, ttl=ttl)

    async def _post_token_endpoint(self, data: dict[str, str]) -> dict[str, Any]:
        if self._http is not None:
            response = await self._http.post(settings.google_token_url, data=data)
        else:
            async with httpx.AsyncClient(timeout=settings.google_calendar_timeout) as client:
                response = await client.post(settings.google_token_url, data=data)

        try:
            payload = response.json()
        except ValueError:
            payload = {"error": "invalid_response", "error_description": response.text[:200]}
        if response.status_code != 200 and "error" not in payload:
            payload["error"] = f"http_{response.status_code}"
        return payload

    async def _load_credential(self, user_id: UUID) -> dict[str, Any] | None:
        query = select(
            users.c.id,
            users.c.google_access_token,
            users.c.google_refresh_token,
            users.c.google_token_expires_at,
            users.c.google_email,
        ).where(users.c.id == user_id)
        result = await self.db.execute(query)
        row = result.mappings().first()
        return dict(row) if row else None

    async def _load_clinic_credential(self) -> dict[str, Any] | None:
        """Credential of the earliest active admin who connected a calendar."""
        query = (
            select(
                users.c.id,
                users.c.google_access_token,
                users.c.google_refresh_token,
                users.c.google_token_expires_at,
                users.c.google_email,
            )
            .where(
                users.c.role == "admin",
                users.c.is_active.is_(True),
                users.c.google_access_token.is_not(None),
            )
            .order_by(users.c.created_at)
            .limit(1)
        )
        result = await self.db.execute(query)
        row = result.mappings().first()
        return dict(row) if row else None

    async def _resolve_credential(self, user_id: UUID) -> dict[str, Any] | None:
        credential = await self._load_credential(user_id)
        if credential and credential["google_access_token"]:
            return credential
        # Staff without their own connection use the clinic account
        return await self._load_clinic_credential()

    async def get_provider_token(self, user_id: UUID) -> str | None:
        """
        Get a usable Google access token for the user.

        Looks in the session cache first, then at the persisted credential,
        refreshing it when it is about to expire. A user who never connected
        a calendar account gets the clinic admin's token.

        Args:
            user_id: Dashboard user ID

        Returns:
            Access token, or None when no usable credential exists
        """
        if self.cache:
            cached = self.cache.get(self._get_token_cache_key(user_id))
            if cached:
                return cached

        credential = await self._resolve_credential(user_id)
        if not credential or not credential["google_access_token"]:
            return None

        owner_id: UUID = credential["id"]
        if owner_id != user_id and self.cache:
            cached = self.cache.get(self._get_token_cache_key(owner_id))
            if cached:
                return cached

        expires_at = credential["google_token_expires_at"]
        margin = timedelta(seconds=settings.token_refresh_margin_seconds)
        if expires_at is None or expires_at - margin <= datetime.now(UTC):
            refresh_token = credential["google_refresh_token"]
            if not refresh_token:
                logger.info("google_token_expired_without_refresh", user_id=str(owner_id))
                return None
            return await self._refresh(owner_id, refresh_token)

        token = credential["google_access_token"]
        self._cache_token(owner_id, token, expires_at)
        return token

    async def _refresh(self, user_id: UUID, refresh_token: str) -> str | None:
        try:
            tokens = await self._post_token_endpoint(
                {
                    "client_id": settings.google_client_id,
                    "client_secret": settings.google_client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                }
            )
        except httpx.HTTPError as e:
            logger.warning("google_token_refresh_failed", user_id=str(user_id), error=str(e))
            return None

        access_token = tokens.get("access_token")
        if tokens.get("error") or not access_token:
            logger.warning(
                "google_token_refresh_rejected",
                user_id=str(user_id),
                error=tokens.get("error"),
            )
            return None

        expires_at = datetime.now(UTC) + timedelta(seconds=int(tokens.get("expires_in", 3600)))
        await self.db.execute(
            update(users)
            .where(users.c.id == user_id)
            .values(
                google_access_token=access_token,
                google_token_expires_at=expires_at,
                updated_at=datetime.now(UTC),
            )
        )
        await self.db.commit()

        self._cache_token(user_id, access_token, expires_at)
        logger.info("google_token_refreshed", user_id=str(user_id))
        return access_token

    def build_auth_url(self, user_id: UUID, redirect_uri: str | None = None) -> AuthUrlResponse:
        """Build the consent URL requesting offline calendar access."""
        state = create_oauth_state(str(user_id))
        params = {
            "client_id": settings.google_client_id.strip(),
            "redirect_uri": redirect_uri or settings.google_redirect_uri,
            "response_type": "code",
            "scope": " ".join(settings.google_scopes),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return AuthUrlResponse(url=f"{settings.google_auth_url}?{urlencode(params)}", state=state)

    async def exchange_code(
        self,
        user: dict,
        code: str,
        state: str,
        redirect_uri: str | None = None,
    ) -> IntegrationStatusResponse:
        """
        Exchange an authorization code and persist the resulting credential.

        Args:
            user: Current dashboard user
            code: Authorization code from the consent redirect
            state: State value issued by ``build_auth_url``
            redirect_uri: Redirect URI used for the consent screen

        Returns:
            Connection status

        Raises:
            BadRequestException: If the state is invalid or Google rejects the code
        """
        user_id: UUID = user["id"]
        if not verify_oauth_state(state, str(user_id)):
            raise BadRequestException("Invalid or expired OAuth state")

        try:
            tokens = await self._post_token_endpoint(
                {
                    "code": code,
                    "client_id": settings.google_client_id.strip(),
                    "client_secret": settings.google_client_secret.strip(),
                    "redirect_uri": redirect_uri or settings.google_redirect_uri,
                    "grant_type": "authorization_code",
                }
            )
        except httpx.HTTPError as e:
            logger.error("google_code_exchange_failed", user_id=str(user_id), error=str(e))
            raise BadRequestException("Could not reach Google to connect the calendar") from e

        access_token = tokens.get("access_token")
        if tokens.get("error") or not access_token:
            logger.warning("google_code_exchange_rejected", user_id=str(user_id), error=tokens.get("error"))
            detail = tokens.get("error_description") or tokens.get("error") or "no access token"
            raise BadRequestException(f"Google rejected the authorization code: {detail}")

        expires_at = datetime.now(UTC) + timedelta(seconds=int(tokens.get("expires_in", 3600)))
        values: dict[str, Any] = {
            "google_access_token": access_token,
            "google_token_expires_at": expires_at,
            "google_email": user["email"],
            "updated_at": datetime.now(UTC),
        }
        # Google only returns a refresh token on the first consent
        if tokens.get("refresh_token"):
            values["google_refresh_token"] = tokens["refresh_token"]

        await self.db.execute(update(users).where(users.c.id == user_id).values(**values))
        await self.db.commit()

        self._cache_token(user_id, access_token, expires_at)
        logger.info("google_calendar_connected", user_id=str(user_id))
        return IntegrationStatusResponse(connected=True, google_email=user["email"])

    async def disconnect(self, user_id: UUID) -> None:
        """Forget the user's Google credential."""
        await self.db.execute(
            update(users)
            .where(users.c.id == user_id)
            .values(
                google_access_token=None,
                google_refresh_token=None,
                google_token_expires_at=None,
                google_email=None,
                updated_at=datetime.now(UTC),
            )
        )
        await self.db.commit()

        if self.cache:
            self.cache.delete(self._get_token_cache_key(user_id))
        logger.info("google_calendar_disconnected", user_id=str(user_id))

    async def get_status(self, user_id: UUID) -> IntegrationStatusResponse:
        """Report whether the user, or the clinic account, has a usable credential."""
        credential = await self._resolve_credential(user_id)
        connected = await self.get_provider_token(user_id) is not None
        return IntegrationStatusResponse(
            connected=connected,
            google_email=credential["google_email"] if credential else None,
        )

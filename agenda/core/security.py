"""JWT helpers for API callers and OAuth state."""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from agenda.config import settings

# OAuth consent round-trips are short lived
OAUTH_STATE_EXPIRE_MINUTES = 10


def _encode(data: dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    now = datetime.now(UTC)
    to_encode.update(
        {
            "exp": now + expires_delta,
            "iat": now,
            "type": token_type,
        }
    )
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def _decode(token: str, token_type: str) -> dict[str, Any] | None:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    if payload.get("type") != token_type:
        return None
    return payload


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Tokens are normally minted by the hosted auth provider; this is used by
    scripts and tests that share the signing secret.

    Args:
        data: Payload data to encode
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token
    """
    return _encode(
        data,
        "access",
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a JWT access token.

    Args:
        token: JWT token to decode

    Returns:
        Decoded payload or None if invalid
    """
    return _decode(token, "access")


def create_oauth_state(user_id: str) -> str:
    """Sign the OAuth ``state`` parameter binding a consent flow to a user."""
    return _encode(
        {"sub": user_id},
        "oauth_state",
        timedelta(minutes=OAUTH_STATE_EXPIRE_MINUTES),
    )


def verify_oauth_state(state: str, user_id: str) -> bool:
    """Check that ``state`` was issued for ``user_id`` and has not expired."""
    payload = _decode(state, "oauth_state")
    return payload is not None and payload.get("sub") == user_id

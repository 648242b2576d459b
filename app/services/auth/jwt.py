"""
Bearer token verification for client actions and the X-Admin-Key check for
admin / scheduler calls.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Header

from app.bonus.errors import AuthenticationError
from app.core.config import settings

logger = logging.getLogger(__name__)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Issue an HS256 token. Used by tests and local tooling; production tokens come from the identity provider."""
    now = datetime.now(timezone.utc)
    payload = dict(data)
    payload.update({"iat": now, "exp": now + (expires_delta or timedelta(hours=1))})
    if settings.jwt_audience and "aud" not in payload:
        payload["aud"] = settings.jwt_audience
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict | None:
    """Decoded claims, or None when the token is expired or invalid."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience or None,
            options={"verify_aud": bool(settings.jwt_audience), "require": ["exp", "sub"]},
            leeway=30,
        )
    except jwt.ExpiredSignatureError:
        logger.info("auth_token_expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.info("auth_token_invalid", extra={"error": str(e)})
        return None


def get_current_user_id(authorization: str | None = Header(default=None)) -> str:
    """FastAPI dependency: user id (`sub`) from the bearer token."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError()
    payload = verify_token(authorization[7:].strip())
    if not payload or not payload.get("sub"):
        raise AuthenticationError("Invalid token")
    return str(payload["sub"])


def is_admin_key(key: str | None) -> bool:
    if not key or not settings.admin_api_key:
        return False
    return secrets.compare_digest(key, settings.admin_api_key)


def require_admin(x_admin_key: str | None = Header(default=None)) -> None:
    """FastAPI dependency for /admin routes."""
    if not is_admin_key(x_admin_key):
        raise AuthenticationError("Admin credentials required")

"""Bearer-token authentication for protected routes."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.core.config import settings
from app.core.errors import UnauthorizedError

logger = logging.getLogger(__name__)

# auto_error=False so a missing header yields 401 instead of FastAPI's 403
security = HTTPBearer(auto_error=False)

ACCESS_TOKEN_EXPIRE_MINUTES = 60


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: UUID
    email: Optional[str] = None


def create_access_token(
    user_id: UUID,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Mint a signed token carrying ``sub`` and ``email`` claims."""
    if not settings.auth_jwt_secret:
        raise RuntimeError("AUTH_JWT_SECRET is not configured")
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    claims: Dict[str, Any] = {"sub": str(user_id), "exp": expire}
    if email:
        claims["email"] = email
    if settings.auth_jwt_audience:
        claims["aud"] = settings.auth_jwt_audience
    return jwt.encode(claims, settings.auth_jwt_secret, algorithm=settings.auth_jwt_algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the token claims, or None when the token cannot be trusted."""
    if not settings.auth_jwt_secret:
        logger.warning("AUTH_JWT_SECRET is not configured; rejecting bearer token.")
        return None
    options = {"verify_aud": bool(settings.auth_jwt_audience)}
    try:
        return jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
            options=options,
        )
    except JWTError as exc:
        logger.warning("Invalid bearer token provided: %s", exc)
        return None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedUser:
    if credentials is None:
        raise UnauthorizedError("Authorization header is required")

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise UnauthorizedError("Invalid or expired token")

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise UnauthorizedError("Invalid or expired token") from None

    email = payload.get("email")
    return AuthenticatedUser(user_id=user_id, email=email if isinstance(email, str) else None)

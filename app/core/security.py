from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import jwt
from fastapi import HTTPException, status

from app.config import get_settings


@dataclass(frozen=True)
class AuthContext:
    method: str
    subject: Optional[str] = None
    claims: dict = field(default_factory=dict)

    @property
    def actor(self) -> str:
        """Label recorded on stock movements made under this context."""
        return self.subject or self.method


def _configured_api_keys() -> frozenset[str]:
    raw = get_settings().API_KEYS or ""
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def decode_token(token: str) -> dict:
    settings = get_settings()
    if not settings.JWT_SECRET:
        raise _unauthorized("JWT auth is not configured")
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options={"verify_aud": bool(settings.JWT_AUDIENCE)},
        )
    except jwt.PyJWTError as exc:
        raise _unauthorized("Invalid JWT") from exc


def authenticate_request(
    api_key: Optional[str],
    authorization: Optional[str],
    *,
    require_auth: bool = False,
) -> Optional[AuthContext]:
    """Resolve the caller from an API key or bearer JWT.

    Returns ``None`` for anonymous access when no credentials are configured
    at all (local development); otherwise unauthenticated calls get a 401.
    """
    settings = get_settings()
    keys = _configured_api_keys()
    require_auth = require_auth or settings.JWT_REQUIRED

    if api_key and api_key in keys and not settings.JWT_REQUIRED:
        return AuthContext(method="api_key")

    token = _bearer_token(authorization)
    if token:
        try:
            claims = decode_token(token)
        except HTTPException:
            if settings.JWT_REQUIRED:
                raise
        else:
            subject = claims.get("sub") or claims.get("email")
            return AuthContext(
                method="jwt",
                subject=str(subject) if subject else None,
                claims=claims,
            )

    credentials_configured = bool(keys or settings.JWT_SECRET or settings.JWT_REQUIRED)
    if require_auth and credentials_configured:
        raise _unauthorized("Not authenticated")
    return None


__all__ = ["AuthContext", "authenticate_request", "decode_token"]

"""
Identity-provider token handling.

The identity provider issues signed JWT bearer tokens. ``get_current_user``
verifies the token and returns the caller's identity; anything missing or
invalid fails fast with ``AuthorizationError``.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import Settings, get_settings
from .errors import AuthorizationError

# auto_error=False so a missing header goes through our own error type
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    uid: str
    name: str = ""
    email: str = ""
    avatar_url: Optional[str] = None


def _settings_for(request: Request) -> Settings:
    container = getattr(request.app.state, "container", None)
    return container.settings if container is not None else get_settings()


def create_access_token(
    uid: str,
    name: str = "",
    email: str = "",
    picture: Optional[str] = None,
    settings: Optional[Settings] = None,
    expires_in: Optional[timedelta] = None,
) -> str:
    """Issue a token the way the identity provider does (local development and tests)."""
    settings = settings or get_settings()
    expire = datetime.now(timezone.utc) + (expires_in or timedelta(days=settings.access_token_expire_days))
    claims = {"sub": uid, "name": name, "email": email, "exp": expire}
    if picture:
        claims["picture"] = picture
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> AuthenticatedUser:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthorizationError(f"Invalid token: {e}") from e

    uid = payload.get("sub")
    if not uid or "/" in uid:
        raise AuthorizationError("Token has no usable subject")
    return AuthenticatedUser(
        uid=uid,
        name=payload.get("name") or "",
        email=payload.get("email") or "",
        avatar_url=payload.get("picture"),
    )


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """FastAPI dependency resolving the signed-in user."""
    if credentials is None or not credentials.credentials:
        raise AuthorizationError("Missing bearer token")
    return decode_access_token(credentials.credentials, _settings_for(request))

"""
This module contains the authentication cookie handling and the role checks.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import Cookie, Depends, Request, Response
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings
from .db import get_db_session
from .errors import Forbidden, Unauthorized
from .models import User

logger = logging.getLogger(__name__)

COOKIE_NAME = "token"
ALGORITHM = "HS256"


@dataclass
class Identity:
    """
    The authenticated caller.

    Attributes:
        email (str): Email signed into the cookie.
        role (str): Role stored for the email, guest when the user is unknown.
    """
    email: str
    role: str = "guest"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def create_access_token(claims: dict, settings: Settings) -> str:
    """
    Signs the claims into a token valid for `settings.token_expire_days`.
    """
    payload = dict(claims)
    payload["exp"] = datetime.now(timezone.utc) + timedelta(days=settings.token_expire_days)
    return jwt.encode(payload, settings.access_token_secret, algorithm=ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> dict:
    try:
        return jwt.decode(token, settings.access_token_secret, algorithms=[ALGORITHM])
    except JWTError as exc:
        logger.info(f"Rejected token: {exc}")
        raise Unauthorized("unauthorized access") from None


def _cookie_options(settings: Settings) -> dict:
    return {
        "httponly": True,
        "secure": settings.production,
        "samesite": "none" if settings.production else "strict",
    }


def set_auth_cookie(response: Response, token: str, settings: Settings):
    response.set_cookie(COOKIE_NAME, token, **_cookie_options(settings))


def clear_auth_cookie(response: Response, settings: Settings):
    response.delete_cookie(COOKIE_NAME, **_cookie_options(settings))


def get_settings_dependency(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_identity(
    token: str | None = Cookie(default=None),
    settings: Settings = Depends(get_settings_dependency),
    db: AsyncSession = Depends(get_db_session),
) -> Identity:
    """
    Dependency that verifies the cookie and resolves the caller's role.
    """
    if not token:
        raise Unauthorized("unauthorized access")
    claims = decode_access_token(token, settings)
    email = claims.get("email")
    if not email:
        raise Unauthorized("unauthorized access")

    role = await db.scalar(select(User.role).where(User.email == email))
    return Identity(email=email, role=role or "guest")


def require_role(*roles: str):
    """
    Builds a dependency that only lets callers with one of `roles` through.
    """
    async def dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in roles:
            logger.warning(f"{identity.email} ({identity.role}) denied, requires {roles}")
            raise Forbidden("unauthorized access")
        return identity

    return dependency


def ensure_self_or_admin(identity: Identity, email: str):
    if identity.email != email and not identity.is_admin:
        raise Forbidden("unauthorized access")

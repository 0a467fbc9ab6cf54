"""Stateless session tokens and the cookie that carries them."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import jwt

from ..config import Settings, get_settings

_JWT_ALG = "HS256"


@dataclass(slots=True)
class SessionToken:
    """Signed session token plus the expiry the cookie must advertise."""

    token: str
    max_age: int
    expires_at: datetime


def session_ttl_seconds(remember_me: bool, settings: Settings | None = None) -> int:
    settings = settings or get_settings()
    return settings.remember_me_ttl_seconds if remember_me else settings.session_ttl_seconds


def issue_session_token(*, account_id: str, user_name: str, remember_me: bool = False) -> SessionToken:
    """Create a signed JWT bound to ``account_id``.

    Parameters
    ----------
    account_id:
        Account identifier embedded in the ``sub`` claim.
    user_name:
        Handle embedded for display purposes only; lookups always use ``sub``.
    remember_me:
        Selects the extended expiry class instead of the short default.

    Returns
    -------
    SessionToken
        The encoded token with its ``Max-Age`` and absolute expiry.
    """

    settings = get_settings()
    now = int(time.time())
    ttl = session_ttl_seconds(remember_me, settings)
    payload: dict[str, Any] = {
        "iss": settings.jwt_issuer,
        "sub": account_id,
        "username": user_name,
        "iat": now,
        "exp": now + ttl,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=_JWT_ALG)
    return SessionToken(
        token=token,
        max_age=ttl,
        expires_at=datetime.fromtimestamp(now + ttl, tz=timezone.utc),
    )


def decode_session_token(token: str) -> dict[str, Any]:
    """Verify signature, issuer and expiry and return the claims.

    Raises
    ------
    jwt.PyJWTError
        Propagated when the token is invalid, expired, or signed by another issuer.
    """

    settings = get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[_JWT_ALG],
        issuer=settings.jwt_issuer,
        options={"require": ["exp", "iat", "sub"]},
    )


def cookie_attributes(settings: Settings | None = None) -> dict[str, Any]:
    """Attributes shared by the Set-Cookie and the clearing directive."""
    settings = settings or get_settings()
    return {
        "path": "/",
        "domain": settings.cookie_domain,
        "secure": True,
        "httponly": True,
        "samesite": settings.cookie_samesite,
    }

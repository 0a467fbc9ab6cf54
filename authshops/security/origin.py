"""Admission control for cross-origin browser requests.

Only the configured base domain and its direct subdomains are accepted::

    https://example.com          allowed
    https://shop1.example.com    allowed
    https://a.b.example.com      rejected
    http://example.com           rejected (scheme)

Requests without an ``Origin`` header (curl, server-to-server) pass through.
"""

from __future__ import annotations

import logging
import re

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from ..errors import ConfigurationError, CrossOriginRejection
from ..metrics import ORIGIN_REJECTIONS

logger = logging.getLogger(__name__)

SUBDOMAIN_LABEL = r"[a-z0-9][a-z0-9-]*"


class OriginGuard:
    """Decides whether an ``Origin`` header belongs to the tenant domain."""

    def __init__(self, base_domain: str, scheme: str = "https") -> None:
        base_domain = (base_domain or "").strip()
        scheme = (scheme or "").strip()
        if not base_domain:
            raise ConfigurationError("CORS_DOMAIN must be set to the base tenant domain")
        if not scheme:
            raise ConfigurationError("CORS_PROTOCOL must not be empty")
        self.base_domain = base_domain
        self.scheme = scheme
        self.pattern = rf"{re.escape(scheme)}://(?:{SUBDOMAIN_LABEL}\.)?{re.escape(base_domain)}"
        self._regex = re.compile(self.pattern)

    def allows(self, origin: str | None) -> bool:
        if origin is None:
            return True
        return self._regex.fullmatch(origin) is not None


class OriginGuardMiddleware:
    """ASGI middleware answering 403 for origins the guard rejects."""

    def __init__(self, app: ASGIApp, guard: OriginGuard) -> None:
        self.app = app
        self.guard = guard

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        origin = Headers(scope=scope).get("origin")
        if self.guard.allows(origin):
            await self.app(scope, receive, send)
            return

        logger.warning(
            "rejected cross-origin %s %s from origin %r",
            scope.get("method"),
            scope.get("path"),
            origin,
        )
        ORIGIN_REJECTIONS.inc()
        rejection = CrossOriginRejection()
        response = JSONResponse({"detail": rejection.message}, status_code=rejection.status_code)
        await response(scope, receive, send)

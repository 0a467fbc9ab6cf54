"""FastAPI application wiring for the AuthShops API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.routes import router
from .config import Settings, get_settings
from .domain.service import AuthService
from .errors import ConfigurationError
from .log import configure_logging
from .repository import AccountRepository
from .security.origin import OriginGuard, OriginGuardMiddleware
from .security.rate_limiter import build_rate_limiter

logger = logging.getLogger(__name__)

_SAMESITE_VALUES = {"strict", "lax", "none"}


def build_origin_guard(settings: Settings) -> OriginGuard:
    """Validate the origin and cookie configuration, failing fast when it is unusable."""
    if settings.cookie_samesite not in _SAMESITE_VALUES:
        raise ConfigurationError(
            f"COOKIE_SAMESITE must be one of {sorted(_SAMESITE_VALUES)}, got {settings.cookie_samesite!r}"
        )
    return OriginGuard(settings.cors_domain, settings.cors_protocol)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the Postgres pool, make sure the schema exists and wire the service."""
    settings: Settings = app.state.settings
    pool = ConnectionPool(settings.database_url, open=False)
    pool.open()
    repository = AccountRepository(pool)
    repository.ensure_schema()
    app.state.pool = pool
    app.state.auth_service = AuthService(repository)
    try:
        yield
    finally:
        pool.close()


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer malformed bodies with 400 and one message per offending field."""
    details = []
    for error in exc.errors():
        loc = [part for part in error.get("loc", ()) if part != "body"]
        ctx_error = (error.get("ctx") or {}).get("error")
        details.append(
            {
                "field": ".".join(str(part) for part in loc) or None,
                "message": str(ctx_error) if ctx_error is not None else error.get("msg"),
            }
        )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": details})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    guard = build_origin_guard(settings)

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    app.state.origin_guard = guard
    app.state.rate_limiter = build_rate_limiter(settings)

    # Added first so the guard below wraps it and rejects before any CORS handling.
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=guard.pattern,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
        max_age=600,
    )
    app.add_middleware(OriginGuardMiddleware, guard=guard)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    @app.get("/healthz", tags=["health"])
    def healthz() -> dict[str, str]:
        """Return a minimal readiness indicator used by orchestration systems."""
        return {"status": "ok"}

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(router)
    logger.info(
        "accepting origins %s://%s and its direct subdomains",
        guard.scheme,
        guard.base_domain,
    )
    return app


def run() -> None:
    """Console entry point: configure logging, build the app and serve it."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    try:
        application = create_app(settings)
    except ConfigurationError as exc:
        logger.critical("refusing to start: %s", exc)
        raise SystemExit(1) from exc
    uvicorn.run(application, host=settings.http_host, port=settings.http_port, log_config=None)


if __name__ == "__main__":
    run()

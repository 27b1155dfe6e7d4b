"""Application factory and top-level wiring.

``create_app`` builds one FastAPI instance from explicit collaborators: the
settings object and the storage handle. The module-level ``app`` is what
``uvicorn techtracker.main:app`` serves; tests build their own through
``create_app``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.middleware.sessions import SessionMiddleware

from .core.errors import register_exception_handlers
from .core.logging import configure_logging
from .core.settings import AppSettings, get_settings
from .db.session import Database
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware
from .routers import api_auth, api_equipment, api_history, api_lookups, api_users

logger = logging.getLogger("techtracker")


def _bootstrap_admin(settings: AppSettings) -> dict[str, str] | None:
    if not settings.bootstrap_admin_enabled:
        return None
    return {
        "username": settings.BOOTSTRAP_ADMIN_USERNAME.strip(),
        "password": settings.BOOTSTRAP_ADMIN_PASSWORD,
        "department": settings.BOOTSTRAP_ADMIN_DEPARTMENT,
    }


def create_app(settings: AppSettings | None = None, database: Database | None = None) -> FastAPI:
    settings = settings or get_settings()
    database = database or Database(settings.DB_URL)
    configure_logging(settings.LOG_LEVEL, service=settings.APP_NAME, env=settings.APP_ENV)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.init(bootstrap_admin=_bootstrap_admin(settings))
        logger.info("app.started", extra={"extra_data": {"env": settings.APP_ENV}})
        try:
            yield
        finally:
            database.dispose()
            logger.info("app.stopped")

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database

    # Middleware added last runs first: request ids wrap everything.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SESSION_SECRET,
        session_cookie=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=settings.SESSION_HTTPS_ONLY,
    )
    app.add_middleware(SecurityHeadersMiddleware, https_only=settings.SESSION_HTTPS_ONLY)
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    app.include_router(api_auth.router)
    app.include_router(api_equipment.router)
    app.include_router(api_lookups.router)
    app.include_router(api_history.router)
    app.include_router(api_users.router)

    @app.get("/health")
    def health(request: Request):
        ok = request.app.state.database.ping()
        return JSONResponse({"ok": ok, "database": "up" if ok else "down"}, status_code=200 if ok else 503)

    if settings.METRICS_ENABLED:
        Instrumentator().instrument(app).expose(app, include_in_schema=False)

    return app


app = create_app()

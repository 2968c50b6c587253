"""Application factory and top-level wiring for the admin dashboard.

Request path, outermost first: request id / access log, security headers,
session gate, Starlette session (flash messages), then the routers. Page
handlers talk to the chat backend only through ``AdminApiClient``.
"""

from __future__ import annotations

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .core.config import AppSettings, settings as default_settings
from .core.errors import (
    InvalidCredential,
    NoCredential,
    credential_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .middlewares import (
    GatePolicy,
    RequestIdMiddleware,
    SecurityHeadersMiddleware,
    SessionGate,
    SessionGateMiddleware,
)
from .routers import auth_ui as auth_ui_router
from .routers import ui as ui_router
from .services.api_client import AdminApiClient
from .services.fetching import StaleFetch
from .services.records import SnapshotCache


async def _stale_fetch_handler(request: Request, exc: StaleFetch) -> Response:
    # Nobody is listening any more; send nothing worth rendering.
    return Response(status_code=204)


def create_app(
    app_settings: AppSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the dashboard app.

    ``transport`` replaces the network for every backend call (session
    validation included); tests pass an ``httpx.MockTransport``.
    """

    app_settings = app_settings or default_settings
    app = FastAPI(title=app_settings.APP_NAME, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.settings = app_settings
    app.state.api_transport = transport
    app.state.snapshots = SnapshotCache()

    if app_settings.static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=str(app_settings.static_dir)), name="static")

    validator = AdminApiClient.from_settings(app_settings, transport=transport)
    gate = SessionGate(GatePolicy.from_settings(app_settings), validator.validate_session)

    # add_middleware wraps, so the last one added runs first.
    app.add_middleware(
        SessionMiddleware,
        secret_key=app_settings.APP_SECRET,
        session_cookie="chatadmin_flash",
        same_site="lax",
        https_only=app_settings.is_production,
    )
    app.add_middleware(SessionGateMiddleware, gate=gate, app_settings=app_settings)
    app.add_middleware(SecurityHeadersMiddleware, hsts=app_settings.is_production)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(auth_ui_router.build_router(app_settings.LOGIN_PATH))
    app.include_router(ui_router.router)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(InvalidCredential, credential_exception_handler)
    app.add_exception_handler(NoCredential, credential_exception_handler)
    app.add_exception_handler(StaleFetch, _stale_fetch_handler)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    return app


__all__ = ["create_app"]

"""Login surface. The session gate never checks credentials on these routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette import status

from ..core.config import settings_for
from ..core.errors import AdminApiError
from ..core.flash import flash, pop_flashes
from ..core.jinja import get_templates
from ..deps.auth import get_api_client, get_credential_store, get_snapshots
from ..services.api_client import AdminApiClient
from ..services.credentials import CredentialStore, fingerprint
from ..services.records import SnapshotCache

logger = logging.getLogger(__name__)

templates = get_templates()


def _login_page(request: Request, *, email: str = "", error: str | None = None, status_code: int = 200):
    context = {
        "email": email,
        "error": error,
        "flashes": pop_flashes(request),
        "login_path": settings_for(request).LOGIN_PATH,
    }
    return templates.TemplateResponse(request, "login.html", context, status_code=status_code)


def login_page(request: Request):
    return _login_page(request)


async def login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    client: AdminApiClient = Depends(get_api_client),
    credentials: CredentialStore = Depends(get_credential_store),
):
    email = email.strip()
    if not email or not password:
        return _login_page(request, email=email, error="Email and password are required.", status_code=400)
    try:
        token = await client.login(email, password)
    except AdminApiError as exc:
        return _login_page(request, email=email, error=exc.user_message, status_code=status.HTTP_401_UNAUTHORIZED)
    credentials.set(token)
    logger.info("login.succeeded", extra={"extra_data": {"principal": fingerprint(token)}})
    return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)


def logout(
    request: Request,
    credentials: CredentialStore = Depends(get_credential_store),
    snapshots: SnapshotCache = Depends(get_snapshots),
):
    snapshots.drop_owner(fingerprint(credentials.get()))
    credentials.clear()
    flash(request, "You have been logged out.")
    return RedirectResponse(url=settings_for(request).LOGIN_PATH, status_code=status.HTTP_302_FOUND)


def build_router(login_path: str) -> APIRouter:
    """Login and logout routes, with the login form served at ``login_path``."""

    router = APIRouter()
    router.add_api_route(login_path, login_page, methods=["GET"], response_class=HTMLResponse)
    router.add_api_route(login_path, login_submit, methods=["POST"], response_class=HTMLResponse)
    router.add_api_route("/logout", logout, methods=["GET"])
    return router
